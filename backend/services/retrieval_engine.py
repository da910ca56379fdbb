"""Retrieval engine for query embedding and cosine ranking over an in-memory index."""
import logging
from typing import List, Optional, Sequence
import numpy as np

from models.chunk import Chunk, ScoredChunk
from services.indexer import EmbedFn
from config import TOP_K

logger = logging.getLogger(__name__)


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    A zero-norm vector has no direction; its similarity to anything is 0.0.
    """
    a = np.asarray(vec_a, dtype=np.float64)
    b = np.asarray(vec_b, dtype=np.float64)
    denominator = np.linalg.norm(a) * np.linalg.norm(b)
    if denominator == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / denominator, -1.0, 1.0))


def rank_chunks(query_embedding: Sequence[float], index: Sequence[Chunk]) -> List[ScoredChunk]:
    """
    Score every indexed chunk against the query, best first.

    Ties keep their index order.
    """
    if not index:
        return []

    query = np.asarray(query_embedding, dtype=np.float64)
    matrix = np.vstack([chunk.embedding for chunk in index])
    if matrix.shape[1] != query.shape[0]:
        raise ValueError(
            f"Query embedding has {query.shape[0]} dimensions, index has {matrix.shape[1]}"
        )

    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    scores = np.zeros(len(index), dtype=np.float64)
    np.divide(dots, norms, out=scores, where=norms != 0)
    scores = np.clip(scores, -1.0, 1.0)

    order = np.argsort(-scores, kind="stable")
    return [ScoredChunk(chunk=index[i], relevance_score=float(scores[i])) for i in order]


class RetrievalEngine:
    """Embed the query and return the most similar chunks of a document index."""

    def __init__(self, top_k: int = TOP_K):
        """
        Initialize the retrieval engine.

        Args:
            top_k: Default number of chunks returned per query
        """
        if top_k < 1:
            raise ValueError("top_k must be positive")
        self.top_k = top_k
        logger.info(f"Initialized RetrievalEngine (top_k={top_k})")

    async def retrieve(
        self,
        query: str,
        index: Sequence[Chunk],
        embed: EmbedFn,
        top_k: Optional[int] = None
    ) -> List[Chunk]:
        """
        Retrieve the top_k chunks most similar to the query.

        Args:
            query: User question
            index: Indexed chunks of the current document
            embed: Async callable mapping text to a vector
            top_k: Override of the default result count

        Returns:
            Chunks ordered by descending similarity, at most top_k of them
        """
        scored = await self.retrieve_scored(query, index, embed, top_k)
        return [item.chunk for item in scored]

    async def retrieve_scored(
        self,
        query: str,
        index: Sequence[Chunk],
        embed: EmbedFn,
        top_k: Optional[int] = None
    ) -> List[ScoredChunk]:
        """
        Same as retrieve() but keeps the similarity scores.

        The query is embedded exactly once. An empty index or blank query
        returns [] without calling embed. An embedding failure propagates.

        Raises:
            ValueError: If top_k < 1
        """
        k = self.top_k if top_k is None else top_k
        if k < 1:
            raise ValueError("top_k must be positive")

        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        if not index:
            logger.info("Index is empty, nothing to retrieve")
            return []

        logger.debug(f"Embedding query: {query[:100]}...")
        try:
            query_embedding = await embed(query)
        except Exception as e:
            logger.error(f"Failed to embed query: {str(e)}")
            raise

        scored = rank_chunks(query_embedding, index)[:k]

        if scored:
            logger.info(
                f"Retrieved {len(scored)} chunks "
                f"(top score: {scored[0].relevance_score:.3f}, "
                f"lowest: {scored[-1].relevance_score:.3f})"
            )
        return scored
