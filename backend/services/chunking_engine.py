"""Chunking engine with word-boundary-aware overlapping windows."""
import logging
from typing import Iterable, List

from models.document import Page
from models.chunk import Chunk
from config import CHUNK_SIZE, CHUNK_OVERLAP

logger = logging.getLogger(__name__)

# Trim back to a word boundary only when it keeps at least this share of the window.
TRIM_THRESHOLD = 0.8


class ChunkingEngine:
    """Segments page text into overlapping, page-bounded chunks."""

    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Maximum chunk size in characters
            chunk_overlap: Characters shared between consecutive chunks

        Raises:
            ValueError: If chunk_size < 1 or chunk_overlap < 0
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0:
            raise ValueError("chunk_overlap cannot be negative")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def chunk_pages(self, pages: Iterable[Page]) -> List[Chunk]:
        """
        Chunk every page independently; chunks never span pages.

        Args:
            pages: Pages in ascending page order

        Returns:
            Raw chunks ordered by (page, start offset)
        """
        all_chunks = []
        page_count = 0

        for page in pages:
            page_count += 1
            all_chunks.extend(self._chunk_text(page.text, page.page_number))

        logger.info(f"Created {len(all_chunks)} chunks from {page_count} pages")
        return all_chunks

    def _chunk_text(self, text: str, page_number: int) -> List[Chunk]:
        """
        Slide a chunk_size window over the text.

        When the window does not reach the end of the text and its last
        whitespace lies beyond TRIM_THRESHOLD of the window, the chunk is cut
        at that whitespace and the next window starts `overlap` characters
        before the cut. The cursor always advances by at least one character.

        Windows holding only whitespace are not emitted, so stitching the
        chunks back together by offset reproduces the page text except for
        the whitespace runs those skipped windows covered.
        """
        chunks = []
        start = 0

        while start < len(text):
            end = start + self.chunk_size
            candidate = text[start:end]
            next_start = end - self.chunk_overlap

            last_space = _last_whitespace(candidate)
            if last_space > self.chunk_size * TRIM_THRESHOLD and end < len(text):
                candidate = candidate[:last_space]
                next_start = start + last_space - self.chunk_overlap

            if candidate.strip():
                chunks.append(Chunk(
                    chunk_id=f"page-{page_number}-{start}",
                    text=candidate,
                    page_number=page_number
                ))
            else:
                logger.debug(f"Skipping blank window at page {page_number}, offset {start}")

            start = max(start + 1, next_start)

        return chunks


def _last_whitespace(text: str) -> int:
    """Index of the last whitespace character in text, or -1."""
    for idx in range(len(text) - 1, -1, -1):
        if text[idx].isspace():
            return idx
    return -1
