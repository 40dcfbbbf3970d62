from typing import List

from supportbot.models import ConversationSession, ScenarioState
from supportbot.services.outcome import Claimed, TurnOutcome
from supportbot.services.scenarios.base import ANSWER_YES_NO, Question, QuestionScenario, TurnContext

CLOSING = "Спасибо. Сейчас подберём подходящую помощь."


class BreakdownScenario(QuestionScenario):
    name = "breakdown"
    terminal_step = "complete"
    triggers = ("поломка", "эвакуатор", "не заводится")
    intro = "Понял. Сейчас задам несколько вопросов."
    questions = (
        Question("car", "Какая марка и модель автомобиля?"),
        Question("problem", "Что произошло с машиной?"),
        Question("can_move", "Автомобиль может двигаться? (да / нет)", ANSWER_YES_NO),
    )

    def closing_replies(self, state: ScenarioState) -> List[str]:
        return [CLOSING]

    async def on_terminal(self, message: str, context: TurnContext, session: ConversationSession) -> TurnOutcome:
        return Claimed(stage=self.name, replies=[CLOSING])
