"""Custom exceptions for the searx-rag pipeline."""


class SearxRagError(Exception):
    """Base exception for searx-rag errors."""

    pass


class EmbeddingModelError(SearxRagError):
    """Raised when the embedding model cannot be verified or pulled. Fatal."""

    pass


class SearchError(SearxRagError):
    """Raised when the search endpoint fails or returns an unusable response."""

    pass


class GenerationError(SearxRagError):
    """Raised when the generation endpoint rejects or drops a request."""

    pass
