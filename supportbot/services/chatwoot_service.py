from typing import Optional, Union

import httpx

from supportbot.logging_config import get_logger

logger = get_logger("chatwoot_service")

ConversationId = Union[int, str]


class ChatwootError(Exception):
    """Chatwoot API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ChatwootService:
    """Outbound calls to the Chatwoot account API."""

    def __init__(
        self,
        base_url: str,
        account_id: Union[int, str],
        api_token: str,
        operator_assignee_id: Optional[int] = None,
        timeout_seconds: float = 10.0,
    ):
        self.base_url = f"{base_url.rstrip('/')}/api/v1/accounts/{account_id}"
        self.api_token = api_token
        self.operator_assignee_id = operator_assignee_id
        self.timeout_seconds = timeout_seconds

    async def _post(self, path: str, data: dict) -> dict:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(url, json=data, headers={"api_access_token": self.api_token})
        except httpx.HTTPError as e:
            raise ChatwootError(f"Chatwoot request failed: {e}") from e

        if response.status_code >= 400:
            raise ChatwootError(
                f"Chatwoot API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError:
            return {}

    async def send_message(self, conversation_id: ConversationId, content: str) -> dict:
        """Post a message visible to the customer."""
        return await self._post(f"/conversations/{conversation_id}/messages", {"content": content})

    async def add_private_note(self, conversation_id: ConversationId, content: str) -> bool:
        """Post an internal note. Best effort: failures are logged, not raised."""
        try:
            await self._post(
                f"/conversations/{conversation_id}/messages",
                {"content": content, "private": True},
            )
            return True
        except ChatwootError as e:
            logger.warning(f"Private note failed for conversation {conversation_id}: {e}")
            return False

    async def assign_conversation(self, conversation_id: ConversationId) -> bool:
        """Assign the conversation to the configured operator, if any."""
        if not self.operator_assignee_id:
            logger.info(f"No operator configured, conversation {conversation_id} left unassigned")
            return False
        await self._post(
            f"/conversations/{conversation_id}/assignments",
            {"assignee_id": self.operator_assignee_id},
        )
        return True
