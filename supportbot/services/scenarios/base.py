from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from supportbot.models import ConversationSession, ScenarioState
from supportbot.services.outcome import NOT_CLAIMED, Claimed, TurnOutcome
from supportbot.services.text_service import classify_yes_no, contains_any, normalize_text

STEP_QUESTIONS = "questions"

ANSWER_FREE = "free"
ANSWER_YES_NO = "yes_no"

EXIT_PHRASES = ("отмена", "отменить", "стоп", "выход")
EXIT_RESPONSE = "Хорошо, остановились. Если понадобится помощь, просто напишите."
YES_NO_REPROMPT = "Пожалуйста, ответьте **да** или **нет**. Это важно, чтобы я мог правильно помочь."
EMPTY_ANSWER_REPROMPT = "Пожалуйста, напишите ответ на вопрос выше."


@dataclass(frozen=True)
class TurnContext:
    conversation_id: Union[int, str]


@dataclass(frozen=True)
class Question:
    key: str
    text: str
    kind: str = ANSWER_FREE


class ScenarioHandler(ABC):
    """A guided intake flow offered the turn by the dispatcher."""

    name: str

    @abstractmethod
    async def try_handle(self, message: str, context: TurnContext, session: ConversationSession) -> TurnOutcome:
        """Claim the turn (mutating `session`) or decline without side effects."""


class QuestionScenario(ScenarioHandler):
    """Fixed ordered questions, then a scenario-specific terminal step."""

    name: str = ""
    terminal_step: str = "complete"
    triggers: Tuple[str, ...] = ()
    questions: Tuple[Question, ...] = ()
    intro: str = ""

    def is_triggered(self, message: str) -> bool:
        return contains_any(message, self.triggers)

    def is_exit(self, message: str) -> bool:
        return normalize_text(message) in EXIT_PHRASES

    def validate_answer(self, question: Question, message: str) -> Optional[str]:
        if question.kind == ANSWER_YES_NO:
            return classify_yes_no(message)
        answer = (message or "").strip()
        return answer or None

    def reprompt(self, question: Question) -> List[str]:
        if question.kind == ANSWER_YES_NO:
            return [YES_NO_REPROMPT]
        return [EMPTY_ANSWER_REPROMPT, question.text]

    def closing_replies(self, state: ScenarioState) -> List[str]:
        return []

    def summary_note(self, state: ScenarioState) -> str:
        lines = [f"📋 Сценарий «{self.name}» заполнен:"]
        for question in self.questions:
            lines.append(f"— {question.key}: {state.answers.get(question.key, '—')}")
        return "\n".join(lines)

    @abstractmethod
    async def on_terminal(self, message: str, context: TurnContext, session: ConversationSession) -> TurnOutcome:
        """Reply to a message arriving after every question is answered."""

    async def try_handle(self, message: str, context: TurnContext, session: ConversationSession) -> TurnOutcome:
        state = session.scenario

        if state is None:
            if not self.is_triggered(message):
                return NOT_CLAIMED
            session.scenario = ScenarioState(name=self.name, step=STEP_QUESTIONS)
            return Claimed(stage=self.name, replies=[self.intro, self.questions[0].text])

        if state.name != self.name:
            return NOT_CLAIMED

        if self.is_exit(message):
            session.scenario = None
            return Claimed(stage=self.name, replies=[EXIT_RESPONSE])

        if state.step == self.terminal_step or state.q_index >= len(self.questions):
            state.step = self.terminal_step
            return await self.on_terminal(message, context, session)

        question = self.questions[state.q_index]
        answer = self.validate_answer(question, message)
        if answer is None:
            return Claimed(stage=self.name, replies=self.reprompt(question))

        state.answers[question.key] = answer
        state.q_index += 1

        if state.q_index < len(self.questions):
            return Claimed(stage=self.name, replies=[self.questions[state.q_index].text])

        state.step = self.terminal_step
        return Claimed(
            stage=self.name,
            replies=self.closing_replies(state),
            notes=[self.summary_note(state)],
        )
