"""Request and response models for the HTTP API."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from .conversation import Sender
from .session import ProcessingStatus


class QueryRequest(BaseModel):
    """Question asked against the session's document."""
    question: str = Field(..., description="User question about the uploaded document")


class Source(BaseModel):
    """A retrieved chunk that grounded an answer."""
    chunk_id: str
    page: int
    relevance_score: float


class MessageResponse(BaseModel):
    """A chat message as returned to the client."""
    message_id: str
    text: str
    sender: Sender
    timestamp: datetime


class QueryResponse(BaseModel):
    """Answer to a query plus the chunks it was grounded on."""
    message: MessageResponse
    sources: List[Source] = Field(default_factory=list)


class SessionResponse(BaseModel):
    """Current state of a session."""
    session_id: str
    status: ProcessingStatus
    progress_message: str
    progress_value: int
    filename: Optional[str] = None
    chunk_count: int = 0
    error_message: Optional[str] = None
    created_at: datetime
