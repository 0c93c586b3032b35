from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from app.api import chat_router, workflow_router
from app.core.config import Settings, get_settings
from app.core.database import create_engine_and_sessionmaker, init_models
from app.core.errors import register_error_handlers
from app.core.logging import get_logger, setup_logging
from app.services.llm import LLMProviderBase, create_llm_provider
from app.services.memory import BlobStorage, ConversationRegistry
from app.services.workflow import PipelineExecutor, PipelineOrchestrator


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None, llm_provider: Optional[LLMProviderBase] = None) -> FastAPI:
    """Wire the database, LLM provider, conversation memory and pipeline into a FastAPI app."""
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    engine, session_factory = create_engine_and_sessionmaker(settings.DATABASE_URL, echo=settings.DEBUG)
    llm = llm_provider or create_llm_provider(settings)
    orchestrator = PipelineOrchestrator(
        session_factory,
        PipelineExecutor(llm, concurrent=settings.PIPELINE_CONCURRENT_STAGES),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        await init_models(engine)
        await orchestrator.recover()
        logger.info("app_started", llm_model=llm.model, database=engine.url.render_as_string())
        yield
        # Runs still in flight end up terminated
        await orchestrator.terminate_all()
        await engine.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Chat assistant with session memory and a job application generation pipeline",
        version=settings.APP_VERSION,
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.llm = llm
    app.state.conversations = ConversationRegistry(BlobStorage(session_factory))
    app.state.orchestrator = orchestrator

    register_error_handlers(app)

    # Register routers
    app.include_router(chat_router, prefix="/api")
    app.include_router(workflow_router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "message": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "endpoints": {
                "chat": "POST /api/chat",
                "workflow": "POST /api/workflow",
                "workflowStatus": "GET /api/workflow/:workflowId",
                "history": "GET /api/history/:sessionId",
                "clearHistory": "DELETE /api/history/:sessionId",
                "context": "POST /api/context/:sessionId",
            },
        }

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


app = create_app()
