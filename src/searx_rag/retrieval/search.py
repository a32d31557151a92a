"""SearXNG web search client."""

import logging

import httpx

from ..exceptions import SearchError
from .models import SearchResult

logger = logging.getLogger(__name__)


class SearchClient:
    """Queries a SearXNG instance through its JSON API."""

    def __init__(
        self,
        instance_url: str,
        client: httpx.AsyncClient,
        categories: str = "general",
        timeout: float | None = 30.0,
    ):
        self.instance_url = instance_url.rstrip("/")
        self.categories = categories
        self.timeout = timeout
        self._client = client

    async def search(self, query: str) -> list[SearchResult]:
        """Run ``query`` and return hits in engine rank order.

        Raises:
            SearchError: On a non-2xx response, a transport error or a malformed body.
        """
        try:
            response = await self._client.get(
                f"{self.instance_url}/search",
                params={"q": query, "format": "json", "categories": self.categories},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise SearchError(f"Search request failed: {e}") from e

        if not response.is_success:
            raise SearchError(f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise SearchError(f"Search returned invalid JSON: {e}") from e

        raw_results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(raw_results, list):
            raise SearchError("Search response has no 'results' list")

        results = [
            SearchResult(url=hit["url"], title=hit.get("title") or "", snippet=hit.get("content") or "")
            for hit in raw_results
            if isinstance(hit, dict) and hit.get("url")
        ]
        logger.info(f"Search for '{query}' returned {len(results)} results")
        return results
