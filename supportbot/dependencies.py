from typing import Optional

from supportbot.config import Settings, settings
from supportbot.logging_config import get_logger
from supportbot.services.chatwoot_service import ChatwootService
from supportbot.services.completion_service import CompletionGateway
from supportbot.services.dispatcher import REPLY_MODE_RETRIEVAL, ConversationDispatcher
from supportbot.services.fallback_service import FallbackScheduler
from supportbot.services.knowledge_service import KnowledgeBase
from supportbot.services.llm import OpenAIProvider
from supportbot.services.scenarios import default_scenarios
from supportbot.services.session_store import get_session_store
from supportbot.services.stats_service import BotStats

logger = get_logger("dependencies")

_dispatcher: Optional[ConversationDispatcher] = None


def build_dispatcher(config: Settings) -> ConversationDispatcher:
    """Wire every collaborator of the dispatcher from settings."""
    chatwoot = ChatwootService(
        base_url=config.chatwoot_url,
        account_id=config.chatwoot_account_id,
        api_token=config.chatwoot_api_key,
        operator_assignee_id=config.operator_assignee_id,
    )
    provider = OpenAIProvider(
        api_key=config.openai_api_key,
        default_model=config.openai_model,
        base_url=config.openai_base_url,
    )
    completion = CompletionGateway(
        provider,
        timeout_seconds=config.llm_timeout_seconds,
        temperature=config.llm_temperature,
        model=config.openai_model,
    )

    knowledge = None
    if config.reply_mode == REPLY_MODE_RETRIEVAL:
        knowledge = KnowledgeBase.from_path(config.knowledge_path)
        if not len(knowledge):
            logger.warning("Knowledge base is empty, every open question will go to an operator")

    return ConversationDispatcher(
        store=get_session_store(config.state_provider, config.redis_url),
        chatwoot=chatwoot,
        completion=completion,
        scenarios=default_scenarios(completion),
        knowledge=knowledge,
        fallback=FallbackScheduler(delay_seconds=config.operator_fallback_seconds),
        stats=BotStats(),
        reply_mode=config.reply_mode,
        account_id=config.chatwoot_account_id,
        bot_sender_id=config.bot_sender_id,
    )


def get_dispatcher() -> ConversationDispatcher:
    """Get or create the process-wide dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = build_dispatcher(settings)
    return _dispatcher


async def shutdown_dispatcher() -> None:
    global _dispatcher
    if _dispatcher is None:
        return
    await _dispatcher.fallback.shutdown()
    _dispatcher = None
