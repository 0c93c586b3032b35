from app.core.config import Settings
from app.services.llm.base import LLMProviderBase
from app.services.llm.openai_compatible import OpenAICompatibleProvider
from app.services.llm.gemini import GeminiProvider


class LLMProvider:
    """Supported LLM providers"""
    DEEPSEEK = "deepseek"
    KIMI = "kimi"
    OPENAI = "openai"
    GEMINI = "gemini"

    @classmethod
    def all(cls):
        return [cls.DEEPSEEK, cls.KIMI, cls.OPENAI, cls.GEMINI]

    @classmethod
    def info(cls):
        return {
            cls.DEEPSEEK: {
                "default_model": "deepseek-chat",
                "base_url": "https://api.deepseek.com/v1"
            },
            cls.KIMI: {
                "default_model": "moonshot-v1-8k",
                "base_url": "https://api.moonshot.cn/v1"
            },
            cls.OPENAI: {
                "default_model": "gpt-4.1-mini",
                "base_url": None  # SDK default
            },
            cls.GEMINI: {
                "default_model": "gemini-2.0-flash",
                "base_url": None  # Uses Google SDK
            }
        }


def create_llm_provider(settings: Settings) -> LLMProviderBase:
    """Factory function to create the configured LLM provider."""

    provider = settings.LLM_PROVIDER.lower()
    if provider not in LLMProvider.all():
        raise ValueError(f"Unsupported provider: {settings.LLM_PROVIDER}")

    info = LLMProvider.info()[provider]
    model = settings.LLM_MODEL or info["default_model"]

    if provider == LLMProvider.GEMINI:
        return GeminiProvider(
            api_key=settings.LLM_API_KEY,
            model=model
        )
    return OpenAICompatibleProvider(
        api_key=settings.LLM_API_KEY,
        model=model,
        base_url=settings.LLM_BASE_URL or info["base_url"]
    )
