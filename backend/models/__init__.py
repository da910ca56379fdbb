"""Data models for the DocQA RAG backend."""
from .document import Page
from .chunk import Chunk, ScoredChunk
from .conversation import Message, Sender
from .session import DocumentSession, ProcessingStatus
from .api import QueryRequest, QueryResponse, MessageResponse, SessionResponse, Source

__all__ = [
    "Page",
    "Chunk",
    "ScoredChunk",
    "Message",
    "Sender",
    "DocumentSession",
    "ProcessingStatus",
    "QueryRequest",
    "QueryResponse",
    "MessageResponse",
    "SessionResponse",
    "Source",
]
