from supportbot.schemas.webhook import ChatwootWebhookEvent, WebhookResponse

__all__ = ["ChatwootWebhookEvent", "WebhookResponse"]
