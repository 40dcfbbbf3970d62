from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from supportbot.dependencies import get_dispatcher
from supportbot.logging_config import get_logger
from supportbot.schemas.webhook import ChatwootWebhookEvent, WebhookResponse
from supportbot.services.dispatcher import ConversationDispatcher

logger = get_logger("webhook")

router = APIRouter()


@router.post("/webhook", response_model=WebhookResponse)
async def handle_webhook(request: Request, dispatcher: ConversationDispatcher = Depends(get_dispatcher)):
    """Handle a Chatwoot webhook event. Malformed events are acknowledged and dropped."""

    try:
        payload = await request.json()
        event = ChatwootWebhookEvent.model_validate(payload)
    except (ValueError, ValidationError) as e:
        logger.info(f"Ignoring malformed webhook: {e}")
        return WebhookResponse(success=True, message="ignored: malformed")

    try:
        outcome = await dispatcher.handle_event(event)
    except Exception as e:
        logger.error(
            f"Webhook processing failed: {e}",
            extra={"context": {"conversation_id": str(event.conversation_id)}},
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Internal error"},
        )

    if outcome.claimed:
        return WebhookResponse(
            success=True,
            message="handled",
            conversation_id=event.conversation_id,
            action=outcome.stage,
        )
    return WebhookResponse(
        success=True,
        message=f"ignored: {outcome.reason}",
        conversation_id=event.conversation_id,
        action=None,
    )
