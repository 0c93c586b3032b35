from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from app.core.database import Base


class ConversationRecord(Base):
    """One opaque JSON blob per storage key (one key per chat session)."""

    __tablename__ = "conversation_states"

    key = Column(String(512), primary_key=True)
    state = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
