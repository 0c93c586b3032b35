"""Per-session conversation memory.

Every operation loads the session's whole state blob, mutates it and writes it
back while holding that session's lock, so operations on one session never
interleave while different sessions proceed independently.
"""

import time
from typing import Optional

from app.core.errors import NotInitialized, ValidationError
from app.core.logging import get_logger
from app.prompts import load_prompt
from app.services.memory.locks import SessionLocks
from app.services.memory.state import (
    ConversationMetadata,
    ConversationState,
    History,
    JobContext,
    Message,
)
from app.services.memory.storage import BlobStorage


logger = get_logger(__name__)

APPENDABLE_ROLES = ("user", "assistant")


def now_ms() -> int:
    return int(time.time() * 1000)


class ConversationStore:
    """Conversation state belonging to exactly one session."""

    def __init__(self, session_id: str, storage: BlobStorage, locks: SessionLocks):
        self.session_id = session_id
        self.key = f"conversation:{session_id}"
        self._storage = storage
        self._locks = locks

    async def _load(self) -> Optional[ConversationState]:
        data = await self._storage.get(self.key)
        if data is None:
            return None
        return ConversationState.model_validate(data)

    async def _save(self, state: ConversationState) -> None:
        await self._storage.put(self.key, state.to_json())

    async def _load_initialized(self) -> ConversationState:
        state = await self._load()
        if state is None:
            raise NotInitialized(f"Conversation {self.session_id} not initialized")
        return state

    async def initialize(self, user_id: str, session_id: str) -> ConversationState:
        """Create the conversation with its seeded system message unless it already exists."""
        async with self._locks.hold(self.session_id):
            state = await self._load()
            if state is not None:
                return state

            now = now_ms()
            state = ConversationState(
                messages=[Message(role="system", content=load_prompt("system"), timestamp=now)],
                metadata=ConversationMetadata(
                    user_id=user_id,
                    session_id=session_id,
                    created_at=now,
                    last_activity_at=now,
                ),
            )
            await self._save(state)
            logger.info("conversation_initialized", session_id=self.session_id, user_id=user_id)
            return state

    async def append_message(self, role: str, content: str) -> Message:
        if role not in APPENDABLE_ROLES:
            raise ValidationError(f"Cannot append a message with role '{role}'")

        async with self._locks.hold(self.session_id):
            state = await self._load_initialized()

            # Keep timestamps non-decreasing even if the wall clock steps back
            timestamp = max(now_ms(), state.messages[-1].timestamp if state.messages else 0)
            message = Message(role=role, content=content, timestamp=timestamp)
            state.messages.append(message)
            state.metadata.last_activity_at = timestamp

            await self._save(state)
            return message

    async def get_history(self, limit: int = 50) -> History:
        """Return the last `limit` messages in original order, plus metadata."""
        if limit < 0:
            raise ValidationError("limit must be non-negative")

        async with self._locks.hold(self.session_id):
            state = await self._load()

        if state is None:
            return History(messages=[])
        messages = state.messages[-limit:] if limit else []
        return History(messages=messages, metadata=state.metadata)

    async def update_context(self, job_context: JobContext) -> JobContext:
        async with self._locks.hold(self.session_id):
            state = await self._load_initialized()

            current = state.metadata.job_context or JobContext()
            state.metadata.job_context = current.merged(job_context)

            await self._save(state)
            return state.metadata.job_context

    async def clear(self) -> None:
        async with self._locks.hold(self.session_id):
            await self._storage.delete(self.key)
        logger.info("conversation_cleared", session_id=self.session_id)


class ConversationRegistry:
    """Addresses conversation stores by session id over shared storage and locks."""

    def __init__(self, storage: BlobStorage, locks: Optional[SessionLocks] = None):
        self.storage = storage
        self.locks = locks or SessionLocks()

    def for_session(self, session_id: str) -> ConversationStore:
        return ConversationStore(session_id, self.storage, self.locks)
