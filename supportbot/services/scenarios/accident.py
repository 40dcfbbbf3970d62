import json
from typing import List, Optional

from supportbot.logging_config import get_logger
from supportbot.models import ConversationSession, ScenarioState
from supportbot.services.completion_service import CompletionGateway
from supportbot.services.outcome import Claimed, TurnOutcome
from supportbot.services.scenarios.base import ANSWER_YES_NO, Question, QuestionScenario, TurnContext

logger = get_logger("scenarios.accident")

FREE_COMPLETIONS_QUOTA = 2

CHECKLIST = """❗ ВАЖНО ПРИ ДТП:
— Не покидайте место происшествия
— Включите аварийную сигнализацию
— Установите знак аварийной остановки
— Сделайте фото повреждений, номеров и места ДТП
— Не подписывайте документы, если не уверены"""

INTRO = (
    "Я с вами. Сохраняйте спокойствие.\n\n"
    "Пожалуйста, ответьте на несколько вопросов ниже, чтобы я мог помочь.\n"
    "Отвечайте: **да** или **нет**."
)

UPGRADE_REQUIRED = (
    "Я могу продолжить сопровождение и дать подробную консультацию.\n\n"
    "Полный доступ доступен по подписке."
)

ADVISOR_PROMPT = "Ты автоюрист. Дай краткий, чёткий и понятный совет при ДТП. Без воды."


class AccidentScenario(QuestionScenario):
    name = "dtp"
    terminal_step = "checklist"
    triggers = ("дтп", "авария")
    intro = INTRO
    questions = (
        Question("injured", "Есть ли пострадавшие? (да / нет)", ANSWER_YES_NO),
        Question("can_move", "Автомобиль может двигаться? (да / нет)", ANSWER_YES_NO),
        Question("on_road", "Вы на проезжей части? (да / нет)", ANSWER_YES_NO),
    )

    def __init__(self, completion: Optional[CompletionGateway], quota: int = FREE_COMPLETIONS_QUOTA):
        self.completion = completion
        self.quota = quota

    def closing_replies(self, state: ScenarioState) -> List[str]:
        return [CHECKLIST]

    def build_advice_request(self, message: str, state: ScenarioState) -> List[dict]:
        context = json.dumps(state.answers, ensure_ascii=False)
        return [
            {"role": "system", "content": ADVISOR_PROMPT},
            {"role": "user", "content": f"Ответы клиента: {context}\nВопрос клиента: {message}"},
        ]

    async def on_terminal(self, message: str, context: TurnContext, session: ConversationSession) -> TurnOutcome:
        state = session.scenario
        if self.completion is None or state.free_completions_used >= self.quota:
            return Claimed(stage=self.name, replies=[UPGRADE_REQUIRED])

        # completion errors propagate to the dispatcher
        advice = await self.completion.complete(self.build_advice_request(message, state))
        state.free_completions_used += 1
        logger.info(
            "Accident advice sent",
            extra={
                "context": {
                    "conversation_id": str(context.conversation_id),
                    "free_completions_used": state.free_completions_used,
                }
            },
        )
        return Claimed(stage=self.name, replies=[advice])
