import copy
import json
from abc import ABC, abstractmethod
from typing import Dict, Union

import redis.asyncio as redis_async

from supportbot.logging_config import get_logger
from supportbot.models import ConversationSession

logger = get_logger("session_store")

ConversationId = Union[int, str]

REDIS_KEY_PREFIX = "supportbot:session"


class SessionStore(ABC):
    """Keyed session storage: get-or-default, full overwrite on set."""

    @abstractmethod
    async def get(self, conversation_id: ConversationId) -> ConversationSession:
        """Return the stored session or a fresh one."""

    @abstractmethod
    async def set(self, conversation_id: ConversationId, session: ConversationSession) -> None:
        """Replace the stored session."""

    @abstractmethod
    async def clear(self, conversation_id: ConversationId) -> None:
        """Forget the session."""


class InMemorySessionStore(SessionStore):
    """Process-local store. Sessions are copied in and out so callers must `set` to persist."""

    def __init__(self):
        self._sessions: Dict[str, ConversationSession] = {}

    async def get(self, conversation_id: ConversationId) -> ConversationSession:
        session = self._sessions.get(str(conversation_id))
        if session is None:
            return ConversationSession()
        return copy.deepcopy(session)

    async def set(self, conversation_id: ConversationId, session: ConversationSession) -> None:
        self._sessions[str(conversation_id)] = copy.deepcopy(session)

    async def clear(self, conversation_id: ConversationId) -> None:
        self._sessions.pop(str(conversation_id), None)

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionStore(SessionStore):
    """Sessions as JSON values in Redis, no expiry."""

    def __init__(self, redis_client, key_prefix: str = REDIS_KEY_PREFIX):
        self.redis_client = redis_client
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, redis_url: str, socket_timeout_seconds: float = 2.0) -> "RedisSessionStore":
        client = redis_async.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout_seconds,
            socket_connect_timeout=socket_timeout_seconds,
        )
        return cls(client)

    def _key(self, conversation_id: ConversationId) -> str:
        return f"{self.key_prefix}:{conversation_id}"

    async def get(self, conversation_id: ConversationId) -> ConversationSession:
        raw = await self.redis_client.get(self._key(conversation_id))
        if not raw:
            return ConversationSession()
        try:
            return ConversationSession.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(
                f"Discarding unreadable session for conversation {conversation_id}: {e}",
                extra={"context": {"conversation_id": str(conversation_id)}},
            )
            return ConversationSession()

    async def set(self, conversation_id: ConversationId, session: ConversationSession) -> None:
        await self.redis_client.set(self._key(conversation_id), json.dumps(session.to_dict(), ensure_ascii=False))

    async def clear(self, conversation_id: ConversationId) -> None:
        await self.redis_client.delete(self._key(conversation_id))


def get_session_store(provider: str, redis_url: str = "") -> SessionStore:
    """Build the store selected by STATE_PROVIDER."""
    provider = (provider or "memory").strip().lower()
    if provider == "memory":
        return InMemorySessionStore()
    if provider == "redis":
        if not redis_url:
            raise ValueError("REDIS_URL is required for the redis state provider")
        logger.info("Using redis session store")
        return RedisSessionStore.from_url(redis_url)
    raise ValueError(f"Unknown state provider: {provider}")
