"""Assembles a pool of valid sources from search results."""

import asyncio
import logging
from collections.abc import Callable, Sequence

from .fetcher import PageFetcher
from .models import SearchResult, Source

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]


class SourceCollector:
    """Scans search results in order until enough valid sources are collected.

    Pages are fetched in windows of ``concurrency`` results. Inside a window
    the fetched sources are considered in search-result order, never in
    completion order, and the quota is only checked against finished
    fetches. With ``concurrency=1`` the scan is strictly sequential.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        min_text_length: int = 100,
        concurrency: int = 1,
        on_status: StatusCallback | None = None,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.fetcher = fetcher
        self.min_text_length = min_text_length
        self.concurrency = concurrency
        self.on_status = on_status

    def _report(self, message: str) -> None:
        if self.on_status:
            self.on_status(message)

    async def collect(self, results: Sequence[SearchResult], required: int) -> list[Source]:
        """Return at most ``required`` valid sources, in search-result order.

        Running out of results before the quota is met is not an error; the
        partial (possibly empty) list is returned.
        """
        sources: list[Source] = []
        total = len(results)
        index = 0

        while index < total and len(sources) < required:
            window_size = min(self.concurrency, required - len(sources))
            window = results[index : index + window_size]
            for offset, result in enumerate(window):
                self._report(f"Fetching link {index + offset + 1} of {total}: {result.url}")

            fetched = await asyncio.gather(*(self.fetcher.fetch(result.url) for result in window))
            index += len(window)

            for source in fetched:
                if not source.is_valid(self.min_text_length):
                    reason = source.failure.value if source.failure else "too little text"
                    self._report(f"Skipping link ({reason}): {source.url}")
                    continue
                sources.append(source)
                if len(sources) >= required:
                    break

        logger.info(f"Collected {len(sources)}/{required} valid sources from {index} of {total} results")
        return sources
