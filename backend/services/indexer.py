"""Embedding indexer: attaches vectors to raw chunks in bounded concurrent batches."""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from models.chunk import Chunk
from config import EMBEDDING_BATCH_SIZE

logger = logging.getLogger(__name__)

EmbedFn = Callable[[str], Awaitable[Sequence[float]]]
ProgressFn = Callable[[str, int], None]

# Progress range owned by this stage; earlier stages report below it.
PROGRESS_START = 40
PROGRESS_SPAN = 50


class EmbeddingIndexer:
    """Embed chunks batch by batch, dropping the ones whose embedding fails."""

    def __init__(self, batch_size: int = EMBEDDING_BATCH_SIZE):
        """
        Initialize the indexer.

        Args:
            batch_size: Maximum number of embedding calls in flight at once
        """
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.batch_size = batch_size

    async def index(
        self,
        raw_chunks: Sequence[Chunk],
        embed: EmbedFn,
        on_progress: Optional[ProgressFn] = None
    ) -> List[Chunk]:
        """
        Embed every chunk and return the ones that succeeded.

        Calls within a batch run concurrently and are joined before the next
        batch starts. A failed chunk is logged and left out of the result;
        it never aborts the run.

        Args:
            raw_chunks: Chunks without embeddings, in document order
            embed: Async callable mapping text to a vector
            on_progress: Optional callback receiving (message, percent)

        Returns:
            Indexed chunks in input order
        """
        total = len(raw_chunks)
        indexed: List[Chunk] = []
        dimension: Optional[int] = None

        for batch_start in range(0, total, self.batch_size):
            batch = raw_chunks[batch_start:batch_start + self.batch_size]

            # gather() returns results in argument order
            results = await asyncio.gather(*(self._embed_chunk(chunk, embed) for chunk in batch))

            for chunk in results:
                if chunk is None:
                    continue
                if dimension is None:
                    dimension = chunk.dimension
                elif chunk.dimension != dimension:
                    logger.error(
                        f"Dropping chunk {chunk.chunk_id}: embedding has {chunk.dimension} "
                        f"dimensions, expected {dimension}"
                    )
                    continue
                indexed.append(chunk)

            processed = min(batch_start + self.batch_size, total)
            if on_progress:
                on_progress(f"Embedding... ({processed}/{total})", progress_percent(processed, total))

        dropped = total - len(indexed)
        if dropped:
            logger.warning(f"Indexed {len(indexed)}/{total} chunks; {dropped} dropped after embedding failures")
        else:
            logger.info(f"Indexed {len(indexed)} chunks")

        return indexed

    async def _embed_chunk(self, chunk: Chunk, embed: EmbedFn) -> Optional[Chunk]:
        """Embed one chunk, returning None instead of raising on failure."""
        try:
            vector = await embed(chunk.text)
            if vector is None or len(vector) == 0:
                raise ValueError("empty embedding returned")
            return chunk.with_embedding(vector)
        except Exception as e:
            logger.error(
                f"Embedding error for chunk {chunk.chunk_id}: {str(e)}",
                extra={"chunk_id": chunk.chunk_id, "page_number": chunk.page_number}
            )
            return None


def progress_percent(processed: int, total: int) -> int:
    """Map embedding progress onto the 40-90% band of the overall pipeline."""
    if total <= 0:
        return PROGRESS_START + PROGRESS_SPAN
    return PROGRESS_START + (min(processed, total) * PROGRESS_SPAN) // total
