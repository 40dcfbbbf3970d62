import asyncio
from typing import Awaitable, Callable, Dict, Union

from supportbot.logging_config import get_logger

logger = get_logger("fallback_service")

ConversationId = Union[int, str]
FallbackCallback = Callable[[ConversationId], Awaitable[None]]

DEFAULT_FALLBACK_SECONDS = 180.0


class FallbackScheduler:
    """One-shot deferred tasks keyed by conversation id.

    At most one task per conversation; scheduling again while one is pending is a no-op.
    `sleep_func` is injectable so tests can drive time by hand.
    """

    def __init__(self, delay_seconds: float = DEFAULT_FALLBACK_SECONDS, sleep_func=asyncio.sleep):
        self.delay_seconds = delay_seconds
        self._sleep = sleep_func
        self._tasks: Dict[str, asyncio.Task] = {}

    @staticmethod
    def _key(conversation_id: ConversationId) -> str:
        return str(conversation_id)

    def schedule(self, conversation_id: ConversationId, callback: FallbackCallback) -> bool:
        if self.is_pending(conversation_id):
            return False
        key = self._key(conversation_id)
        self._tasks[key] = asyncio.create_task(self._run(conversation_id, callback))
        logger.info(
            "Fallback timer scheduled",
            extra={"context": {"conversation_id": key, "delay_seconds": self.delay_seconds}},
        )
        return True

    def cancel(self, conversation_id: ConversationId) -> bool:
        task = self._tasks.pop(self._key(conversation_id), None)
        if task is None:
            return False
        task.cancel()
        logger.info("Fallback timer canceled", extra={"context": {"conversation_id": str(conversation_id)}})
        return True

    def is_pending(self, conversation_id: ConversationId) -> bool:
        return self._key(conversation_id) in self._tasks

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    async def _run(self, conversation_id: ConversationId, callback: FallbackCallback) -> None:
        await self._sleep(self.delay_seconds)

        key = self._key(conversation_id)
        if self._tasks.get(key) is asyncio.current_task():
            del self._tasks[key]

        try:
            await callback(conversation_id)
        except Exception as exc:
            logger.error(
                "Fallback callback failed",
                extra={"context": {"conversation_id": key, "error": str(exc)}},
                exc_info=True,
            )

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
