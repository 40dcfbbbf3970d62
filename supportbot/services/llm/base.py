from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

ChatMessage = Dict[str, str]


@dataclass
class LLMResponse:
    content: str
    model: str
    usage: Optional[dict] = None
    finish_reason: Optional[str] = None


class LLMProviderError(Exception):
    """Provider answered with an error status or a payload we cannot read."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LLMProvider(ABC):
    """Chat-completion backend used by the completion gateway.

    Implementations raise `LLMProviderError` for upstream failures and let transport
    timeouts escape as-is; the gateway maps both to its own error types.
    """

    @abstractmethod
    async def generate(
        self,
        messages: List[ChatMessage],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        """Return the assistant reply for `messages` (role/content dicts, oldest first)."""
