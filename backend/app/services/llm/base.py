from abc import ABC, abstractmethod

from app.core.errors import InferenceFailure
from app.core.logging import get_logger


logger = get_logger(__name__)


class LLMProviderBase(ABC):
    """Base class for LLM providers."""

    def __init__(self, api_key: str, model: str, base_url: str = None):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url

    @abstractmethod
    async def chat(
        self,
        messages: list[dict],
        max_tokens: int,
        temperature: float = 0.7
    ) -> str:
        """Non-streaming chat completion."""
        pass

    async def complete(
        self,
        messages: list[dict],
        max_tokens: int,
        temperature: float = 0.7
    ) -> str:
        """Run a chat completion, reporting any provider fault as InferenceFailure."""
        logger.debug("llm_request", model=self.model, message_count=len(messages), max_tokens=max_tokens)
        try:
            text = await self.chat(messages, max_tokens=max_tokens, temperature=temperature)
        except InferenceFailure:
            raise
        except Exception as e:
            logger.error("llm_error", model=self.model, error=str(e))
            raise InferenceFailure(f"Model call failed: {e}") from e

        if not text or not text.strip():
            raise InferenceFailure("Model returned an empty completion")
        return text
