from app.services.memory.locks import SessionLocks
from app.services.memory.state import ConversationMetadata, ConversationState, History, JobContext, Message
from app.services.memory.storage import BlobStorage
from app.services.memory.store import ConversationRegistry, ConversationStore

__all__ = [
    "BlobStorage",
    "ConversationMetadata",
    "ConversationRegistry",
    "ConversationState",
    "ConversationStore",
    "History",
    "JobContext",
    "Message",
    "SessionLocks",
]
