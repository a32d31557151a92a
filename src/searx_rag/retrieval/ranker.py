"""Relevance ranking of sources by cosine similarity to the query."""

import logging
from collections.abc import Sequence

import numpy as np

from .embedding import EmbeddingClient
from .models import RankedSource, Source

logger = logging.getLogger(__name__)


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 for vectors of different length, empty vectors, and
    zero-magnitude vectors. A source whose embedding failed therefore scores
    0.0 (neutral): below any positively similar source, above negative ones.
    """
    if len(vec_a) != len(vec_b) or len(vec_a) == 0:
        return 0.0

    a = np.asarray(vec_a, dtype=np.float64)
    b = np.asarray(vec_b, dtype=np.float64)
    denom = float(np.linalg.norm(a) * np.linalg.norm(b))
    if denom == 0.0:
        return 0.0
    return float(np.dot(a, b) / denom)


class RelevanceRanker:
    """Scores sources against a query embedding and keeps the top K."""

    def __init__(self, embedder: EmbeddingClient, top_k: int = 3):
        self.embedder = embedder
        self.top_k = top_k

    def rank_with_embedding(
        self,
        query_embedding: Sequence[float],
        sources: Sequence[Source],
        top_k: int | None = None,
    ) -> list[RankedSource]:
        k = self.top_k if top_k is None else top_k
        ranked = [RankedSource(source=source, similarity=cosine_similarity(query_embedding, source.embedding)) for source in sources]
        # sorted() is stable: equal scores keep collection order
        ranked = sorted(ranked, key=lambda r: r.similarity, reverse=True)
        return ranked[:k]

    async def rank(self, query: str, sources: Sequence[Source], top_k: int | None = None) -> list[RankedSource]:
        """Embed ``query`` once and return the ``top_k`` most similar sources, best first."""
        query_embedding = await self.embedder.embed(query)
        if not query_embedding:
            logger.warning("Query embedding failed; sources keep collection order")

        ranked = self.rank_with_embedding(query_embedding, sources, top_k)
        for item in ranked:
            logger.debug(f"{item.similarity:.4f} {item.url}")
        return ranked
