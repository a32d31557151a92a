"""Data models for search results, fetched sources and ranked sources."""

from dataclasses import dataclass, field
from enum import Enum


class FetchFailure(str, Enum):
    """Why a page fetch produced no usable content."""

    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    NETWORK_ERROR = "network_error"
    PARSE_ERROR = "parse_error"
    EMPTY_CONTENT = "empty_content"


@dataclass
class SearchResult:
    """A single hit returned by the search engine."""

    url: str
    title: str = ""
    snippet: str = ""


@dataclass
class Source:
    """A fetched, normalized and embedded web page.

    Failed fetches keep the same shape with empty text and embedding, so
    callers only need to look at the text length. ``failure`` says why.
    """

    url: str
    text: str = ""
    embedding: list[float] = field(default_factory=list)
    failure: FetchFailure | None = None

    def is_valid(self, min_text_length: int = 100) -> bool:
        """A source is usable when its text is longer than ``min_text_length``."""
        return len(self.text) > min_text_length


@dataclass
class RankedSource:
    """A source scored against the query embedding."""

    source: Source
    similarity: float

    @property
    def url(self) -> str:
        return self.source.url

    @property
    def text(self) -> str:
        return self.source.text
