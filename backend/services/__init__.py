"""Services for the DocQA RAG backend."""
from .document_loader import DocumentLoader, ParseError
from .chunking_engine import ChunkingEngine
from .embedding_model import EmbeddingModel, EmbeddingError
from .indexer import EmbeddingIndexer
from .retrieval_engine import RetrievalEngine, cosine_similarity
from .llm_client import LLMClient, LLMError, GenerationError
from .rag_pipeline import RAGPipeline, NoDocumentError
from .session_manager import SessionManager, SessionNotFoundError, DocumentBusyError

__all__ = [
    'DocumentLoader', 'ParseError', 'ChunkingEngine', 'EmbeddingModel', 'EmbeddingError',
    'EmbeddingIndexer', 'RetrievalEngine', 'cosine_similarity', 'LLMClient', 'LLMError',
    'GenerationError', 'RAGPipeline', 'NoDocumentError', 'SessionManager',
    'SessionNotFoundError', 'DocumentBusyError'
]
