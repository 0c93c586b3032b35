from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.api.deps import get_app_settings, get_conversations, get_llm
from app.core.config import Settings
from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.services.llm import LLMProviderBase
from app.services.memory import ConversationRegistry, JobContext
from app.services.memory.store import now_ms


logger = get_logger(__name__)

router = APIRouter(tags=["Chat"])


class ChatRequest(BaseModel):
    message: Optional[str] = None
    sessionId: Optional[str] = None
    userId: Optional[str] = None


class ChatResponse(BaseModel):
    response: str
    sessionId: str
    timestamp: int


class ContextRequest(BaseModel):
    jobContext: JobContext


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    settings: Settings = Depends(get_app_settings),
    llm: LLMProviderBase = Depends(get_llm),
    conversations: ConversationRegistry = Depends(get_conversations),
):
    """Answer a chat message using the session's recent history as context."""
    if not request.message or not request.sessionId or not request.userId:
        raise ValidationError("Missing required fields: message, sessionId and userId are required")

    store = conversations.for_session(request.sessionId)
    await store.initialize(request.userId, request.sessionId)
    await store.append_message("user", request.message)

    history = await store.get_history(limit=settings.CHAT_HISTORY_WINDOW)
    messages = [{"role": m.role, "content": m.content} for m in history.messages]

    reply = await llm.complete(
        messages,
        max_tokens=settings.CHAT_MAX_TOKENS,
        temperature=settings.CHAT_TEMPERATURE
    )
    await store.append_message("assistant", reply)

    logger.info("chat_reply", session_id=request.sessionId, history_size=len(messages))
    return ChatResponse(response=reply, sessionId=request.sessionId, timestamp=now_ms())


@router.get("/history/{session_id}")
async def get_history(
    session_id: str,
    limit: Optional[int] = Query(default=None, ge=0),
    settings: Settings = Depends(get_app_settings),
    conversations: ConversationRegistry = Depends(get_conversations),
):
    if limit is None:
        limit = settings.HISTORY_DEFAULT_LIMIT
    history = await conversations.for_session(session_id).get_history(limit=limit)
    return history.to_json()


@router.delete("/history/{session_id}")
async def clear_history(
    session_id: str,
    conversations: ConversationRegistry = Depends(get_conversations),
):
    await conversations.for_session(session_id).clear()
    return {"success": True, "message": "History cleared"}


@router.post("/context/{session_id}")
async def update_context(
    session_id: str,
    request: ContextRequest,
    conversations: ConversationRegistry = Depends(get_conversations),
):
    """Merge job details into the conversation's context."""
    context = await conversations.for_session(session_id).update_context(request.jobContext)
    return {"success": True, "context": context.to_json()}
