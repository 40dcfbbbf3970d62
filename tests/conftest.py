import asyncio
from typing import List, Optional

import pytest

from supportbot.schemas.webhook import ChatwootWebhookEvent
from supportbot.services.completion_service import CompletionGateway
from supportbot.services.dispatcher import REPLY_MODE_RETRIEVAL, ConversationDispatcher
from supportbot.services.fallback_service import FallbackScheduler
from supportbot.services.knowledge_service import KnowledgeBase, KnowledgeSnippet
from supportbot.services.llm import LLMProvider, LLMResponse
from supportbot.services.scenarios import default_scenarios
from supportbot.services.session_store import InMemorySessionStore
from supportbot.services.stats_service import BotStats


class FakeChatwoot:
    """Records outbound platform calls instead of sending them."""

    def __init__(self):
        self.messages: List[tuple] = []
        self.notes: List[tuple] = []
        self.assignments: List = []
        self._next_id = 1000

    async def send_message(self, conversation_id, content: str) -> dict:
        self._next_id += 1
        self.messages.append((conversation_id, content))
        return {"id": self._next_id, "content": content}

    async def add_private_note(self, conversation_id, content: str) -> bool:
        self.notes.append((conversation_id, content))
        return True

    async def assign_conversation(self, conversation_id) -> bool:
        self.assignments.append(conversation_id)
        return True

    def texts(self) -> List[str]:
        return [content for _, content in self.messages]


class FakeProvider(LLMProvider):
    """Provider returning canned answers, or hanging forever when `hang` is set."""

    def __init__(self, answers: Optional[List[str]] = None, hang: bool = False, error: Optional[Exception] = None):
        self.answers = list(answers or ["Ответ модели"])
        self.hang = hang
        self.error = error
        self.calls: List[List[dict]] = []

    async def generate(self, messages, model=None, temperature=0.7, max_tokens=1000, timeout_seconds=None):
        self.calls.append(messages)
        if self.hang:
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error
        content = self.answers[min(len(self.calls), len(self.answers)) - 1]
        return LLMResponse(content=content, model="fake")


class FakeClock:
    """Hand-driven replacement for asyncio.sleep."""

    def __init__(self):
        self.now = 0.0
        self._waiters: List[tuple] = []

    async def sleep(self, seconds: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self._waiters.append((self.now + seconds, future))
        await future

    @property
    def sleepers(self) -> int:
        return sum(1 for _, future in self._waiters if not future.done())

    async def advance(self, seconds: float) -> None:
        self.now += seconds
        for deadline, future in list(self._waiters):
            if deadline <= self.now and not future.done():
                future.set_result(None)
        self._waiters = [(d, f) for d, f in self._waiters if not f.done()]
        for _ in range(10):
            await asyncio.sleep(0)


def knowledge_from_texts(texts, source: str = "inline") -> KnowledgeBase:
    return KnowledgeBase(KnowledgeSnippet(source=source, text=text) for text in texts)


def make_event(
    content: Optional[str] = "Привет",
    conversation_id=42,
    message_type: str = "incoming",
    event: str = "message_created",
    **extra,
) -> ChatwootWebhookEvent:
    payload = {
        "event": event,
        "message_type": message_type,
        "content": content,
        "conversation": {"id": conversation_id} if conversation_id is not None else None,
        **extra,
    }
    return ChatwootWebhookEvent.model_validate(payload)


@pytest.fixture
def chatwoot():
    return FakeChatwoot()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def knowledge():
    return knowledge_from_texts(
        [
            "Поддержка работает с 9 до 18",
            "Оплата картой",
            "Подписка открывает безлимитные консультации автоюриста",
        ]
    )


@pytest.fixture
def make_dispatcher(store, chatwoot, provider, clock, knowledge):
    def _make(
        reply_mode: str = REPLY_MODE_RETRIEVAL,
        provider_override: Optional[LLMProvider] = None,
        timeout_seconds: float = 1.0,
        **kwargs,
    ) -> ConversationDispatcher:
        completion = CompletionGateway(provider_override or provider, timeout_seconds=timeout_seconds)
        options = {
            "scenarios": default_scenarios(completion),
            "knowledge": knowledge,
            "fallback": FallbackScheduler(delay_seconds=180, sleep_func=clock.sleep),
            "stats": BotStats(),
            "reply_mode": reply_mode,
        }
        options.update(kwargs)
        return ConversationDispatcher(store, chatwoot, completion, **options)

    return _make


async def greet(dispatcher: ConversationDispatcher, chatwoot: FakeChatwoot, conversation_id=42) -> None:
    """Consume the greeting turn and forget its side effects."""
    await dispatcher.handle_event(make_event("Привет", conversation_id=conversation_id))
    chatwoot.messages.clear()
    chatwoot.notes.clear()
