from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "AI Job Application Assistant API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database (defaults to SQLite for easy local dev)
    DATABASE_URL: str = "sqlite+aiosqlite:///./job_assistant.db"

    # LLM
    LLM_PROVIDER: str = "deepseek"  # deepseek, kimi, openai, gemini
    LLM_API_KEY: str = ""
    LLM_MODEL: Optional[str] = None  # falls back to the provider default
    LLM_BASE_URL: Optional[str] = None

    # Chat
    CHAT_HISTORY_WINDOW: int = 10
    CHAT_MAX_TOKENS: int = 2048
    CHAT_TEMPERATURE: float = 0.7
    HISTORY_DEFAULT_LIMIT: int = 50

    # Pipeline
    PIPELINE_CONCURRENT_STAGES: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()
