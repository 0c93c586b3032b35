from app.api.chat import router as chat_router
from app.api.workflow import router as workflow_router

__all__ = ["chat_router", "workflow_router"]
