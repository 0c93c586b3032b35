"""FastAPI dependencies resolving the collaborators wired up in create_app()."""

from fastapi import Request

from app.core.config import Settings
from app.services.llm import LLMProviderBase
from app.services.memory import ConversationRegistry
from app.services.workflow import PipelineOrchestrator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_llm(request: Request) -> LLMProviderBase:
    return request.app.state.llm


def get_conversations(request: Request) -> ConversationRegistry:
    return request.app.state.conversations


def get_orchestrator(request: Request) -> PipelineOrchestrator:
    return request.app.state.orchestrator
