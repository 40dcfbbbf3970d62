from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

EVENT_MESSAGE_CREATED = "message_created"
MESSAGE_INCOMING = "incoming"
MESSAGE_OUTGOING = "outgoing"
SENDER_AGENT_BOT = "agent_bot"


class WebhookConversation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[int, str]] = None


class WebhookAccount(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[int, str]] = None


class WebhookSender(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[int, str]] = None
    type: Optional[str] = None


class ChatwootWebhookEvent(BaseModel):
    """Subset of the Chatwoot webhook envelope the bot reads."""

    model_config = ConfigDict(extra="ignore")

    event: Optional[str] = None
    id: Optional[Union[int, str]] = None
    message_type: Optional[str] = None
    content: Optional[str] = None
    private: bool = False
    conversation: Optional[WebhookConversation] = None
    account: Optional[WebhookAccount] = None
    sender: Optional[WebhookSender] = None

    @property
    def conversation_id(self) -> Optional[Union[int, str]]:
        return self.conversation.id if self.conversation else None

    @property
    def text(self) -> str:
        return (self.content or "").strip()


class WebhookResponse(BaseModel):
    success: bool
    message: str
    conversation_id: Optional[Union[int, str]] = None
    action: Optional[str] = None
