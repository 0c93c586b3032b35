from openai import AsyncOpenAI
from app.services.llm.base import LLMProviderBase


class OpenAICompatibleProvider(LLMProviderBase):
    """Provider for any endpoint speaking the OpenAI chat completions API (OpenAI, DeepSeek, Kimi)."""

    def __init__(self, api_key: str, model: str, base_url: str = None):
        super().__init__(api_key, model, base_url)
        self.client = AsyncOpenAI(api_key=api_key, base_url=self.base_url)

    async def chat(
        self,
        messages: list[dict],
        max_tokens: int,
        temperature: float = 0.7
    ) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature
        )
        return response.choices[0].message.content
