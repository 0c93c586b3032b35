"""Shared pytest fixtures: a throwaway SQLite database and a scripted LLM."""

from __future__ import annotations

import asyncio
import os
from typing import Optional

import pytest
from fastapi.testclient import TestClient

# app.main builds the default app, and its LLM client, at import time
os.environ.setdefault("LLM_API_KEY", "test-key")

from app.core.config import Settings  # noqa: E402
from app.core.database import create_engine_and_sessionmaker, init_models  # noqa: E402
from app.main import create_app  # noqa: E402
from app.services.llm import LLMProviderBase  # noqa: E402
from app.services.memory import BlobStorage, ConversationRegistry  # noqa: E402


class FakeLLM(LLMProviderBase):
    """Answers every call with a numbered reply; can fail a given call or hold calls on a gate."""

    def __init__(self, fail_on: Optional[int] = None, gate: Optional[asyncio.Event] = None):
        super().__init__(api_key="test-key", model="fake-model")
        self.calls: list[dict] = []
        self.fail_on = fail_on
        self.gate = gate
        self.entered = asyncio.Event()

    async def chat(self, messages: list[dict], max_tokens: int, temperature: float = 0.7) -> str:
        self.calls.append({"messages": messages, "max_tokens": max_tokens, "temperature": temperature})
        call_number = len(self.calls)
        self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_on == call_number:
            raise RuntimeError("model unavailable")
        return f"reply {call_number}"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        LLM_PROVIDER="deepseek",
        LLM_API_KEY="test-key",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
async def session_factory(settings: Settings):
    engine, factory = create_engine_and_sessionmaker(settings.DATABASE_URL)
    await init_models(engine)
    yield factory
    await engine.dispose()


@pytest.fixture
def conversations(session_factory) -> ConversationRegistry:
    return ConversationRegistry(BlobStorage(session_factory))


@pytest.fixture
def client(settings: Settings, fake_llm: FakeLLM):
    app = create_app(settings, llm_provider=fake_llm)
    with TestClient(app) as test_client:
        yield test_client
