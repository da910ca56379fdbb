"""Chunk data models."""
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence
import numpy as np


@dataclass(frozen=True)
class Chunk:
    """Represents a page-bounded slice of document text for retrieval."""
    chunk_id: str  # Format: "page-{page_number}-{start_offset}"
    text: str
    page_number: int
    embedding: Optional[np.ndarray] = field(default=None, compare=False, repr=False)

    @property
    def is_indexed(self) -> bool:
        """True once an embedding has been attached."""
        return self.embedding is not None

    @property
    def dimension(self) -> int:
        """Embedding dimensionality, 0 for a raw chunk."""
        return 0 if self.embedding is None else int(self.embedding.shape[0])

    def with_embedding(self, vector: Sequence[float]) -> "Chunk":
        """Return an indexed copy of this chunk carrying `vector`."""
        if self.embedding is not None:
            raise ValueError(f"Chunk {self.chunk_id} already has an embedding")
        return replace(self, embedding=np.asarray(vector, dtype=np.float64))


@dataclass
class ScoredChunk:
    """Chunk with similarity score from retrieval."""
    chunk: Chunk
    relevance_score: float  # cosine similarity, -1.0 to 1.0
