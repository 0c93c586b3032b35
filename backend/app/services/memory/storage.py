"""Durable key/blob storage backed by the conversation_states table."""

from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import StorageFailure
from app.models.conversation import ConversationRecord


class BlobStorage:
    """Atomic get/put/delete of one JSON blob per key."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, key: str) -> Optional[dict]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(ConversationRecord.state).where(ConversationRecord.key == key)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageFailure(f"Failed to read {key}: {e}") from e

    async def put(self, key: str, value: dict) -> None:
        try:
            async with self._session_factory() as db:
                await db.merge(ConversationRecord(key=key, state=value))
                await db.commit()
        except SQLAlchemyError as e:
            raise StorageFailure(f"Failed to write {key}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            async with self._session_factory() as db:
                await db.execute(delete(ConversationRecord).where(ConversationRecord.key == key))
                await db.commit()
        except SQLAlchemyError as e:
            raise StorageFailure(f"Failed to delete {key}: {e}") from e
