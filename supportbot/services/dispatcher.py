from collections import deque
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple, Union

from supportbot.logging_config import conversation_logger, get_logger
from supportbot.models import ConversationSession
from supportbot.schemas.webhook import (
    EVENT_MESSAGE_CREATED,
    MESSAGE_INCOMING,
    MESSAGE_OUTGOING,
    SENDER_AGENT_BOT,
    ChatwootWebhookEvent,
)
from supportbot.services.chatwoot_service import ChatwootService
from supportbot.services.completion_service import CompletionError, CompletionGateway, CompletionTimeout
from supportbot.services.fallback_service import FallbackScheduler
from supportbot.services.intent_service import FIXED_RULES, FixedRule, is_human_request_message, match_fixed_rule
from supportbot.services.knowledge_service import KnowledgeBase, format_knowledge_context
from supportbot.services.outcome import NOT_CLAIMED, Claimed, NotClaimed, TurnOutcome
from supportbot.services.scenarios import ScenarioHandler, TurnContext
from supportbot.services.session_store import SessionStore
from supportbot.services.stats_service import HANDOFF_MANUAL, HANDOFF_NO_CONTEXT, HANDOFF_TIMEOUT, BotStats

logger = get_logger("dispatcher")

ConversationId = Union[int, str]
Stage = Callable[[str, TurnContext, ConversationSession], Awaitable[TurnOutcome]]

REPLY_MODE_RETRIEVAL = "retrieval"
REPLY_MODE_PLAIN = "plain"
RETRIEVAL_HISTORY_LIMIT = 6
PLAIN_HISTORY_LIMIT = 10
OWN_MESSAGE_MEMORY = 500

GREETING_RESPONSE = "Здравствуйте! Чем могу помочь?"
MSG_HANDOFF = "Передаю диалог оператору. Пожалуйста, подождите."
MSG_FALLBACK_RESUME = "Похоже, оператор пока не подключился. Я продолжу помогать вам."

NOTE_MANUAL_HANDOFF = "🧑‍💼 Диалог передан оператору по запросу клиента"
NOTE_TIMEOUT_HANDOFF = "⏱ GPT не ответил — диалог передан оператору"
NOTE_ERROR_HANDOFF = "⚠️ Ошибка GPT — диалог передан оператору"
NOTE_NO_CONTEXT_HANDOFF = "📚 В базе знаний нет ответа — диалог передан оператору"
NOTE_COMPLETION_REPLY = "🧠 GPT ответил пользователю"
NOTE_FALLBACK = "🔁 Оператор не ответил — бот продолжил диалог"

RETRIEVAL_INSTRUCTION = (
    "Отвечай только по информации из базы знаний ниже. "
    "Если в ней нет ответа, честно скажи, что уточнишь у оператора."
)


class ConversationDispatcher:
    """Decides what the bot does with each Chatwoot event.

    Incoming client messages go through an ordered list of stages; the first stage
    that claims the turn wins and its side effects are applied. The session is
    written back to the store after every processed message.
    """

    def __init__(
        self,
        store: SessionStore,
        chatwoot: ChatwootService,
        completion: CompletionGateway,
        *,
        scenarios: Optional[Iterable[ScenarioHandler]] = None,
        knowledge: Optional[KnowledgeBase] = None,
        fallback: Optional[FallbackScheduler] = None,
        stats: Optional[BotStats] = None,
        reply_mode: str = REPLY_MODE_RETRIEVAL,
        rules: Tuple[FixedRule, ...] = FIXED_RULES,
        account_id: Optional[ConversationId] = None,
        bot_sender_id: Optional[ConversationId] = None,
    ):
        if reply_mode not in (REPLY_MODE_RETRIEVAL, REPLY_MODE_PLAIN):
            raise ValueError(f"Unknown reply mode: {reply_mode}")

        self.store = store
        self.chatwoot = chatwoot
        self.completion = completion
        self.scenarios: List[ScenarioHandler] = list(scenarios or [])
        self.knowledge = knowledge
        self.fallback = fallback or FallbackScheduler()
        self.stats = stats or BotStats()
        self.reply_mode = reply_mode
        self.rules = rules
        self.account_id = account_id
        self.bot_sender_id = bot_sender_id
        self._own_message_ids: deque = deque(maxlen=OWN_MESSAGE_MEMORY)

        self.stages: List[Tuple[str, Stage]] = [
            ("greeting", self._greeting_stage),
            ("fixed_rule", self._fixed_rule_stage),
            ("operator_request", self._operator_request_stage),
            ("scenario", self._scenario_stage),
            ("completion", self._completion_stage),
        ]

    # ---- entry points ----

    async def handle_event(self, event: ChatwootWebhookEvent) -> TurnOutcome:
        if event.event != EVENT_MESSAGE_CREATED:
            return NotClaimed("ignored_event")

        if (
            self.account_id is not None
            and event.account is not None
            and event.account.id is not None
            and str(event.account.id) != str(self.account_id)
        ):
            return NotClaimed("foreign_account")

        conversation_id = event.conversation_id
        if conversation_id is None:
            return NotClaimed("no_conversation")

        if event.message_type == MESSAGE_OUTGOING:
            return await self._handle_outgoing(event, conversation_id)

        if event.message_type != MESSAGE_INCOMING:
            return NotClaimed("ignored_message_type")

        text = event.text
        if not text:
            return NotClaimed("empty_content")

        return await self.handle_message(conversation_id, text)

    async def handle_message(self, conversation_id: ConversationId, text: str) -> TurnOutcome:
        log = conversation_logger(logger, conversation_id)
        self.stats.total_incoming += 1

        session = await self.store.get(conversation_id)
        if session.handed_over:
            log.info("Conversation is with an operator, bot stays silent")
            return NotClaimed("handed_over")

        persisted = False
        try:
            outcome = await self._run_pipeline(text, TurnContext(conversation_id), session)
            if outcome.claimed and outcome.handoff_reason:
                self._start_handoff(conversation_id, session, outcome.handoff_reason)

            # persisted before any platform call
            await self.store.set(conversation_id, session)
            persisted = True

            if outcome.claimed:
                await self._apply(conversation_id, outcome)
                log.info(
                    "Turn handled",
                    context={
                        "stage": outcome.stage,
                        "replies": len(outcome.replies),
                        "handoff_reason": outcome.handoff_reason,
                    },
                )
            return outcome
        finally:
            if not persisted:
                await self.store.set(conversation_id, session)

    # ---- pipeline ----

    async def _run_pipeline(self, text: str, context: TurnContext, session: ConversationSession) -> TurnOutcome:
        for _name, stage in self.stages:
            outcome = await stage(text, context, session)
            if outcome.claimed:
                return outcome
        return NotClaimed("unhandled")

    async def _greeting_stage(self, text: str, context: TurnContext, session: ConversationSession) -> TurnOutcome:
        if session.greeted:
            return NOT_CLAIMED
        session.greeted = True
        self.stats.greeted += 1
        return Claimed(stage="greeting", replies=[GREETING_RESPONSE])

    async def _fixed_rule_stage(self, text: str, context: TurnContext, session: ConversationSession) -> TurnOutcome:
        rule = match_fixed_rule(text, self.rules)
        if rule is None:
            return NOT_CLAIMED
        return Claimed(stage=f"rule:{rule.name}", replies=[rule.response])

    async def _operator_request_stage(
        self, text: str, context: TurnContext, session: ConversationSession
    ) -> TurnOutcome:
        if not is_human_request_message(text):
            return NOT_CLAIMED
        return Claimed(
            stage="operator_request",
            replies=[MSG_HANDOFF],
            notes=[NOTE_MANUAL_HANDOFF],
            handoff_reason=HANDOFF_MANUAL,
        )

    async def _scenario_stage(self, text: str, context: TurnContext, session: ConversationSession) -> TurnOutcome:
        for scenario in self.scenarios:
            was_idle = session.scenario is None
            try:
                outcome = await scenario.try_handle(text, context, session)
            except CompletionError as exc:
                return self._completion_failure(f"scenario:{scenario.name}", exc, context)
            if outcome.claimed:
                if was_idle and session.scenario is not None:
                    self.stats.scenarios_started += 1
                return outcome
        return NOT_CLAIMED

    async def _completion_stage(self, text: str, context: TurnContext, session: ConversationSession) -> TurnOutcome:
        session.add_turn("user", text)

        if self.reply_mode == REPLY_MODE_RETRIEVAL and self.knowledge is not None:
            results = self.knowledge.retrieve(text)
            if not results:
                return Claimed(
                    stage="retrieval",
                    replies=[MSG_HANDOFF],
                    notes=[NOTE_NO_CONTEXT_HANDOFF],
                    handoff_reason=HANDOFF_NO_CONTEXT,
                )
            grounding = f"{RETRIEVAL_INSTRUCTION}\n\n{format_knowledge_context(results)}"
            messages = [{"role": "system", "content": grounding}, *session.recent_history(RETRIEVAL_HISTORY_LIMIT)]
        else:
            messages = session.recent_history(PLAIN_HISTORY_LIMIT)

        try:
            answer = await self.completion.complete(messages)
        except CompletionError as exc:
            return self._completion_failure("completion", exc, context)

        session.add_turn("assistant", answer)
        self.stats.completion_replies += 1
        return Claimed(stage="completion", replies=[answer], notes=[NOTE_COMPLETION_REPLY])

    def _completion_failure(self, stage: str, exc: CompletionError, context: TurnContext) -> Claimed:
        conversation_logger(logger, context.conversation_id).warning(
            f"Completion failed in {stage}, handing off: {exc}",
            context={"stage": stage, "error_type": type(exc).__name__},
        )
        note = NOTE_TIMEOUT_HANDOFF if isinstance(exc, CompletionTimeout) else NOTE_ERROR_HANDOFF
        return Claimed(stage=stage, replies=[MSG_HANDOFF], notes=[note], handoff_reason=HANDOFF_TIMEOUT)

    # ---- side effects ----

    def _start_handoff(self, conversation_id: ConversationId, session: ConversationSession, reason: str) -> None:
        session.start_handoff(reason)
        self.stats.record_handoff(reason)
        self.fallback.schedule(conversation_id, self._resume_after_fallback)

    async def _apply(self, conversation_id: ConversationId, outcome: Claimed) -> None:
        for note in outcome.notes:
            await self.chatwoot.add_private_note(conversation_id, note)

        for reply in outcome.replies:
            await self._send(conversation_id, reply)

        if outcome.handoff_reason:
            await self.chatwoot.assign_conversation(conversation_id)

    async def _send(self, conversation_id: ConversationId, content: str) -> None:
        sent = await self.chatwoot.send_message(conversation_id, content)
        if isinstance(sent, dict) and sent.get("id") is not None:
            self._own_message_ids.append(str(sent["id"]))

    # ---- operator side ----

    def _is_own_message(self, event: ChatwootWebhookEvent) -> bool:
        if event.id is not None and str(event.id) in self._own_message_ids:
            return True
        if event.sender is None:
            return False
        if event.sender.type == SENDER_AGENT_BOT:
            return True
        return self.bot_sender_id is not None and str(event.sender.id) == str(self.bot_sender_id)

    async def _handle_outgoing(self, event: ChatwootWebhookEvent, conversation_id: ConversationId) -> TurnOutcome:
        if event.private:
            return NotClaimed("private_note")
        if self._is_own_message(event):
            return NotClaimed("own_message")

        self.fallback.cancel(conversation_id)

        session = await self.store.get(conversation_id)
        if session.handed_over:
            session.end_handoff()
            await self.store.set(conversation_id, session)
            conversation_logger(logger, conversation_id).info("Operator engaged, handoff cleared")
        return NotClaimed("operator_message")

    async def _resume_after_fallback(self, conversation_id: ConversationId) -> None:
        session = await self.store.get(conversation_id)
        if not session.handed_over:
            return

        session.end_handoff()
        await self.store.set(conversation_id, session)
        self.stats.operator_fallbacks += 1
        conversation_logger(logger, conversation_id).info("Operator did not answer, bot resumes")

        await self.chatwoot.add_private_note(conversation_id, NOTE_FALLBACK)
        await self._send(conversation_id, MSG_FALLBACK_RESUME)
