"""Web-grounded question answering over SearXNG results with local Ollama models."""

from .config import AppSettings, get_settings
from .exceptions import EmbeddingModelError, GenerationError, SearchError, SearxRagError
from .pipeline import FallbackReason, QueryMode, QueryOutcome, SearchPipeline, create_pipeline

__all__ = [
    "AppSettings",
    "get_settings",
    "SearchPipeline",
    "create_pipeline",
    "QueryMode",
    "QueryOutcome",
    "FallbackReason",
    "SearxRagError",
    "EmbeddingModelError",
    "SearchError",
    "GenerationError",
]
