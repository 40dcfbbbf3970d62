from typing import List, Optional

import httpx

from supportbot.logging_config import get_logger
from supportbot.services.llm.base import ChatMessage, LLMProvider, LLMProviderError, LLMResponse

logger = get_logger("llm.openai")

DEFAULT_REQUEST_TIMEOUT = 60.0


class OpenAIProvider(LLMProvider):
    """OpenAI-compatible `/chat/completions` endpoint over httpx."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
    ):
        self.api_key = api_key
        self.default_model = default_model
        self.endpoint = f"{base_url.rstrip('/')}/chat/completions"

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def generate(
        self,
        messages: List[ChatMessage],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        model = model or self.default_model
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        logger.debug(f"Chat completion request: model={model}, messages={len(messages)}")

        timeout = DEFAULT_REQUEST_TIMEOUT if timeout_seconds is None else timeout_seconds
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(self.endpoint, headers=self._headers(), json=payload)

        if response.status_code != 200:
            logger.error(
                "Chat completion rejected",
                extra={"context": {"status_code": response.status_code, "body": response.text[:500]}},
            )
            raise LLMProviderError(
                f"OpenAI API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMProviderError(f"OpenAI returned invalid JSON: {exc}") from exc

        choices = data.get("choices") or []
        first = choices[0] if choices else {}
        content = (first.get("message") or {}).get("content") or ""

        return LLMResponse(
            content=content,
            model=data.get("model", model),
            usage=data.get("usage"),
            finish_reason=first.get("finish_reason"),
        )
