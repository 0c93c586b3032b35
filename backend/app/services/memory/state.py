"""Conversation state as persisted in the per-session blob."""

from typing import Literal, Optional

from app.core.schemas import CamelModel


class Message(CamelModel):
    role: Literal["system", "user", "assistant"]
    content: str
    timestamp: int  # ms since epoch, assigned by the store


class JobContext(CamelModel):
    job_title: Optional[str] = None
    company: Optional[str] = None
    job_description: Optional[str] = None
    resume_text: Optional[str] = None

    def merged(self, update: "JobContext") -> "JobContext":
        """Shallow merge: fields present in the update win, absent ones are kept."""
        data = self.model_dump()
        data.update(update.model_dump(exclude_unset=True))
        return JobContext(**data)


class ConversationMetadata(CamelModel):
    user_id: str
    session_id: str
    created_at: int
    last_activity_at: int
    job_context: Optional[JobContext] = None


class ConversationState(CamelModel):
    messages: list[Message]
    metadata: ConversationMetadata


class History(CamelModel):
    messages: list[Message]
    metadata: Optional[ConversationMetadata] = None

    def to_json(self) -> dict:
        # metadata is reported as null for sessions that were never initialized
        return self.model_dump(mode="json", by_alias=True)
