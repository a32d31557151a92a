"""Retrieval: web search, page fetching, embedding and relevance ranking."""

from .collector import SourceCollector
from .embedding import EmbeddingClient
from .fetcher import PageFetcher, extract_text, normalize_text
from .models import FetchFailure, RankedSource, SearchResult, Source
from .ranker import RelevanceRanker, cosine_similarity
from .search import SearchClient

__all__ = [
    # Models
    "FetchFailure",
    "RankedSource",
    "SearchResult",
    "Source",
    # Components
    "EmbeddingClient",
    "PageFetcher",
    "RelevanceRanker",
    "SearchClient",
    "SourceCollector",
    # Helpers
    "cosine_similarity",
    "extract_text",
    "normalize_text",
]
