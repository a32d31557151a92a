"""Page fetching, readable-text extraction and embedding."""

import asyncio
import logging
import re

import httpx
from bs4 import BeautifulSoup

from .embedding import EmbeddingClient
from .models import FetchFailure, Source

logger = logging.getLogger(__name__)

# First match in document order wins
MAIN_CONTENT_SELECTOR = "article, main, .content"

_WHITESPACE = re.compile(r"\s+")
_NON_CONTENT_TAGS = ["script", "style", "noscript", "template"]


def normalize_text(text: str, max_length: int) -> str:
    """Collapse whitespace runs to single spaces and truncate to ``max_length`` characters."""
    return _WHITESPACE.sub(" ", text).strip()[:max_length]


def extract_text(html: str) -> str:
    """Extract readable text, preferring the primary content region of the page.

    Falls back to ``<body>``, then to the whole document when neither exists.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_NON_CONTENT_TAGS):
        tag.decompose()

    node = soup.select_one(MAIN_CONTENT_SELECTOR) or soup.body or soup
    return node.get_text(" ")


class PageFetcher:
    """Fetches a URL under a hard timeout and turns it into an embedded :class:`Source`.

    ``fetch`` never raises for page-level problems: timeouts, HTTP errors,
    transport errors and parse errors all come back as an empty Source with
    ``failure`` set. The only exception that escapes is
    :class:`EmbeddingModelError`, which means no page can ever be embedded.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        embedder: EmbeddingClient,
        timeout_ms: int = 5000,
        max_content_length: int = 3000,
        user_agent: str = "Mozilla/5.0",
    ):
        self._client = client
        self.embedder = embedder
        self.timeout_ms = timeout_ms
        self.max_content_length = max_content_length
        self.user_agent = user_agent

    async def _download(self, url: str) -> str:
        async with asyncio.timeout(self.timeout_ms / 1000):
            response = await self._client.get(
                url,
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
                timeout=None,
            )
            response.raise_for_status()
            return response.text

    async def fetch(self, url: str) -> Source:
        """Fetch, extract, normalize and embed one page."""
        logger.info(f"Fetching link: {url}")

        try:
            html = await self._download(url)
        except (TimeoutError, httpx.TimeoutException):
            logger.warning(f"Timed out after {self.timeout_ms}ms fetching {url}")
            return Source(url=url, failure=FetchFailure.TIMEOUT)
        except httpx.HTTPStatusError as e:
            logger.warning(f"HTTP {e.response.status_code} fetching {url}")
            return Source(url=url, failure=FetchFailure.HTTP_ERROR)
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch {url}: {e}")
            return Source(url=url, failure=FetchFailure.NETWORK_ERROR)
        except (httpx.InvalidURL, ValueError) as e:
            # Malformed hosts and ports, including IDNA errors (UnicodeError)
            logger.warning(f"Invalid URL {url!r}: {e}")
            return Source(url=url, failure=FetchFailure.NETWORK_ERROR)

        try:
            text = normalize_text(extract_text(html), self.max_content_length)
        except Exception as e:
            logger.warning(f"Failed to extract text from {url}: {e}")
            return Source(url=url, failure=FetchFailure.PARSE_ERROR)

        if not text:
            return Source(url=url, failure=FetchFailure.EMPTY_CONTENT)

        # EmbeddingModelError propagates from here
        embedding = await self.embedder.embed(text)
        return Source(url=url, text=text, embedding=embedding)
