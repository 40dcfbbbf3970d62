from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    bot_port: int = 5005
    log_level: str = "INFO"

    chatwoot_url: str = "http://localhost:3000"
    chatwoot_account_id: str = "1"
    chatwoot_api_key: str = ""
    operator_assignee_id: Optional[int] = None
    bot_sender_id: Optional[int] = None

    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"
    llm_temperature: float = 0.4
    llm_timeout_seconds: float = 15.0

    operator_fallback_seconds: float = 180.0

    state_provider: str = "memory"
    redis_url: str = "redis://localhost:6379/0"

    reply_mode: str = "retrieval"
    knowledge_path: str = "knowledge"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
