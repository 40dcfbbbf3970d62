import uvicorn
from fastapi import Depends, FastAPI

from supportbot.config import settings
from supportbot.dependencies import get_dispatcher, shutdown_dispatcher
from supportbot.logging_config import get_logger, setup_logging
from supportbot.routers import webhook
from supportbot.services.dispatcher import ConversationDispatcher

setup_logging(settings.log_level)

logger = get_logger("main")

app = FastAPI(
    title="Support Bot",
    description="Chatwoot webhook bot with scenarios, retrieval and operator handoff",
    version="0.1.0",
)

app.include_router(webhook.router)


@app.on_event("shutdown")
async def stop_fallback_timers() -> None:
    await shutdown_dispatcher()


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/stats")
async def stats(dispatcher: ConversationDispatcher = Depends(get_dispatcher)):
    return {**dispatcher.stats.to_dict(), "pending_fallbacks": dispatcher.fallback.pending_count}


def run() -> None:
    logger.info(f"Bot running on port {settings.bot_port}, webhook at /webhook")
    uvicorn.run(app, host="0.0.0.0", port=settings.bot_port)


if __name__ == "__main__":
    run()
