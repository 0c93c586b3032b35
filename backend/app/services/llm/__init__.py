from app.services.llm.base import LLMProviderBase
from app.services.llm.factory import LLMProvider, create_llm_provider
from app.services.llm.openai_compatible import OpenAICompatibleProvider
from app.services.llm.gemini import GeminiProvider

__all__ = [
    "LLMProviderBase",
    "LLMProvider",
    "create_llm_provider",
    "OpenAICompatibleProvider",
    "GeminiProvider"
]
