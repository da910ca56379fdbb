"""Pipeline entry points: document processing and grounded question answering."""
import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

from models.chunk import Chunk, ScoredChunk
from services.document_loader import DocumentLoader
from services.chunking_engine import ChunkingEngine
from services.embedding_model import EmbeddingModel
from services.indexer import EmbeddingIndexer, ProgressFn
from services.retrieval_engine import RetrievalEngine
from services.llm_client import LLMClient

logger = logging.getLogger(__name__)


class NoDocumentError(Exception):
    """Raised when a query is made before any chunk has been indexed."""


class RAGPipeline:
    """Chains extract -> chunk -> index at upload, and retrieve -> generate per query."""

    def __init__(
        self,
        embedding_model: EmbeddingModel,
        llm_client: LLMClient,
        document_loader: Optional[DocumentLoader] = None,
        chunking_engine: Optional[ChunkingEngine] = None,
        indexer: Optional[EmbeddingIndexer] = None,
        retrieval_engine: Optional[RetrievalEngine] = None
    ):
        self.embedding_model = embedding_model
        self.llm_client = llm_client
        self.document_loader = document_loader or DocumentLoader()
        self.chunking_engine = chunking_engine or ChunkingEngine()
        self.indexer = indexer or EmbeddingIndexer()
        self.retrieval_engine = retrieval_engine or RetrievalEngine()

    async def process_document(
        self,
        file_bytes: bytes,
        on_progress: Optional[ProgressFn] = None
    ) -> List[Chunk]:
        """
        Build a fresh document index from PDF bytes.

        Args:
            file_bytes: Raw PDF contents
            on_progress: Optional callback receiving (message, percent)

        Returns:
            Indexed chunks; possibly fewer than were produced if some embeddings failed

        Raises:
            ParseError: If the PDF cannot be read; no partial index is returned
        """
        report = on_progress or (lambda message, percent: None)

        report("Parsing PDF...", 10)
        # PyMuPDF parsing blocks, so it runs off the event loop
        pages = await asyncio.to_thread(self.document_loader.extract_text, file_bytes)

        report("Splitting text...", 30)
        raw_chunks = self.chunking_engine.chunk_pages(pages)

        report(f"Embedding {len(raw_chunks)} chunks...", 40)
        index = await self.indexer.index(raw_chunks, self.embedding_model.embed_text, report)

        report("Finalizing index...", 95)
        logger.info(f"Processed document: {len(pages)} pages, {len(raw_chunks)} chunks, {len(index)} indexed")
        return index

    async def answer_query(self, query: str, index: Sequence[Chunk]) -> str:
        """
        Answer a question from the document index.

        Raises:
            NoDocumentError: If the index is empty
            EmbeddingError: If the query cannot be embedded
            GenerationError: If the generation provider fails
        """
        answer, _ = await self.answer_with_sources(query, index)
        return answer

    async def answer_with_sources(
        self,
        query: str,
        index: Sequence[Chunk]
    ) -> Tuple[str, List[ScoredChunk]]:
        """Like answer_query() but also returns the scored chunks the answer was grounded on."""
        if not index:
            raise NoDocumentError("No document loaded.")

        scored = await self.retrieval_engine.retrieve_scored(query, index, self.embedding_model.embed_text)
        answer = await self.llm_client.generate_answer(query, [item.chunk for item in scored])
        return answer, scored
