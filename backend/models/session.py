"""Session state models."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .chunk import Chunk
from .conversation import Message


class ProcessingStatus(str, Enum):
    """Lifecycle of a session's document index."""
    IDLE = "idle"
    PARSING = "parsing"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    READY = "ready"
    ERROR = "error"


BUSY_STATUSES = (ProcessingStatus.PARSING, ProcessingStatus.CHUNKING, ProcessingStatus.EMBEDDING)


@dataclass
class DocumentSession:
    """
    State owned by one user session.

    The index is only ever replaced as a whole; chunks are immutable, so
    readers can hold on to the list they were handed while a new upload runs.
    """
    session_id: str
    created_at: datetime
    status: ProcessingStatus = ProcessingStatus.IDLE
    progress_message: str = ""
    progress_value: int = 0
    filename: Optional[str] = None
    error_message: Optional[str] = None
    index: List[Chunk] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)

    @property
    def is_busy(self) -> bool:
        return self.status in BUSY_STATUSES
