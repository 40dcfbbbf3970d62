import asyncio
from typing import List, Optional

import httpx

from supportbot.logging_config import get_logger
from supportbot.services.llm import LLMProvider

logger = get_logger("completion_service")

SYSTEM_PROMPT = "Ты ИИ ассистент поддержки. Отвечай ТОЛЬКО на русском языке, кратко и по делу."
DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_TEMPERATURE = 0.4
DEFAULT_MAX_TOKENS = 600


class CompletionError(Exception):
    """Completion could not be produced."""


class CompletionTimeout(CompletionError):
    pass


class CompletionUpstreamError(CompletionError):
    pass


class CompletionGateway:
    """Single entry point to the language model: fixed system prompt, deadline, typed failures.

    No retries here; the dispatcher decides what a failure means for the conversation.
    """

    def __init__(
        self,
        provider: LLMProvider,
        *,
        system_prompt: str = SYSTEM_PROMPT,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        model: Optional[str] = None,
    ):
        self.provider = provider
        self.system_prompt = system_prompt
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.model = model

    def build_messages(self, messages: List[dict]) -> List[dict]:
        return [{"role": "system", "content": self.system_prompt}, *messages]

    async def complete(
        self,
        messages: List[dict],
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        payload = self.build_messages(messages)
        try:
            response = await asyncio.wait_for(
                self.provider.generate(
                    payload,
                    model=self.model,
                    temperature=self.temperature if temperature is None else temperature,
                    max_tokens=max_tokens or self.max_tokens,
                    timeout_seconds=self.timeout_seconds,
                ),
                timeout=self.timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning(f"LLM timeout after {self.timeout_seconds}s: {exc!r}")
            raise CompletionTimeout(f"no completion within {self.timeout_seconds}s") from exc
        except Exception as exc:
            logger.error(f"LLM call failed: {exc}")
            raise CompletionUpstreamError(str(exc)) from exc

        content = (response.content or "").strip()
        if not content:
            raise CompletionUpstreamError("empty completion")
        if response.finish_reason == "length":
            logger.warning(f"Completion cut at max_tokens={max_tokens or self.max_tokens}")
        return content
