"""Query pipeline: routes a query to web search or general knowledge and streams the answer."""

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

import httpx

from .config import AppSettings
from .exceptions import GenerationError, SearchError
from .generation import AnswerGenerator, get_general_prompt, get_web_prompt
from .observability import bind_query_context, clear_query_context, get_query_logger
from .retrieval import EmbeddingClient, PageFetcher, RankedSource, RelevanceRanker, SearchClient, SourceCollector

logger = get_query_logger("searx_rag.pipeline")

StatusCallback = Callable[[str], None]
FragmentCallback = Callable[[str], None]


class QueryMode(str, Enum):
    """How a query is answered."""

    WEB_SEARCH = "web_search"
    GENERAL = "general"


class FallbackReason(str, Enum):
    """Why a web-search query ended up with a general-knowledge answer."""

    SEARCH_FAILED = "search_failed"
    NO_VALID_CONTENT = "no_valid_content"
    GENERATION_FAILED = "generation_failed"


@dataclass
class QueryOutcome:
    """Result of one query iteration."""

    query: str
    mode: QueryMode
    answer: str = ""
    ranked: list[RankedSource] = field(default_factory=list)
    fallback_reason: FallbackReason | None = None
    error: str | None = None

    @property
    def grounded(self) -> bool:
        """True when the answer was generated from web sources."""
        return self.mode is QueryMode.WEB_SEARCH and self.fallback_reason is None and self.error is None


class SearchPipeline:
    """Per-query state machine.

    Classify -> WebSearch -> Collect -> Rank -> Generate, with every failure
    on the web path falling back to a general-knowledge answer. The only
    exception that escapes :meth:`answer` is ``EmbeddingModelError``.
    """

    def __init__(
        self,
        search_client: SearchClient,
        collector: SourceCollector,
        ranker: RelevanceRanker,
        generator: AnswerGenerator,
        required_sources: int = 10,
        top_k: int = 3,
        always_search: bool = False,
        trigger: str = "search",
        on_status: StatusCallback | None = None,
        on_fragment: FragmentCallback | None = None,
    ):
        self.search_client = search_client
        self.collector = collector
        self.ranker = ranker
        self.generator = generator
        self.required_sources = required_sources
        self.top_k = top_k
        self.always_search = always_search
        self.trigger = trigger
        self.on_status = on_status
        self.on_fragment = on_fragment

    def _report(self, message: str) -> None:
        """Report a status line if a status callback is set."""
        if self.on_status:
            self.on_status(message)

    def classify(self, query: str) -> QueryMode:
        """Decide whether ``query`` needs a web search."""
        if self.always_search:
            return QueryMode.WEB_SEARCH
        if self.trigger and self.trigger.lower() in query.lower():
            return QueryMode.WEB_SEARCH
        return QueryMode.GENERAL

    async def answer(self, query: str) -> QueryOutcome:
        """Answer one query, streaming fragments to ``on_fragment`` as they arrive."""
        mode = self.classify(query)
        outcome = QueryOutcome(query=query, mode=mode)
        bind_query_context(uuid.uuid4().hex[:12], mode.value)
        logger.info("query_received", query=query)

        try:
            if mode is QueryMode.WEB_SEARCH:
                await self._answer_from_web(outcome)
            else:
                await self._answer_general(outcome)
        finally:
            logger.info("query_finished", fallback=outcome.fallback_reason, answer_chars=len(outcome.answer), error=outcome.error)
            clear_query_context()

        return outcome

    async def _answer_from_web(self, outcome: QueryOutcome) -> None:
        # Phase 1: Search
        self._report("Searching...")
        try:
            results = await self.search_client.search(outcome.query)
        except SearchError as e:
            logger.warning("search_failed", error=str(e))
            self._report(f"Search failed ({e}); answering from general knowledge.")
            outcome.fallback_reason = FallbackReason.SEARCH_FAILED
            await self._answer_general(outcome)
            return

        self._report(f"Found {len(results)} results.")

        # Phase 2: Collect
        sources = await self.collector.collect(results, self.required_sources)
        if not sources:
            logger.warning("no_valid_content", results=len(results))
            self._report("No valid web content found; answering from general knowledge.")
            outcome.fallback_reason = FallbackReason.NO_VALID_CONTENT
            await self._answer_general(outcome)
            return

        # Phase 3: Rank
        outcome.ranked = await self.ranker.rank(outcome.query, sources, self.top_k)
        logger.info("sources_ranked", collected=len(sources), kept=len(outcome.ranked))

        # Phase 4: Generate
        self._report("Generating answer...")
        try:
            outcome.answer = await self._generate(get_web_prompt(outcome.query, outcome.ranked))
        except GenerationError as e:
            logger.warning("generation_failed", error=str(e))
            self._report(f"Answer generation failed ({e}); answering from general knowledge.")
            outcome.fallback_reason = FallbackReason.GENERATION_FAILED
            await self._answer_general(outcome)

    async def _answer_general(self, outcome: QueryOutcome) -> None:
        self._report("Generating answer from general knowledge...")
        try:
            outcome.answer = await self._generate(get_general_prompt(outcome.query))
        except GenerationError as e:
            logger.error("general_generation_failed", error=str(e))
            self._report(f"Answer generation failed: {e}")
            outcome.answer = ""
            outcome.error = str(e)

    async def _generate(self, prompt: str) -> str:
        """Stream the answer, echoing each fragment and concatenating them in arrival order."""
        parts: list[str] = []
        async for fragment in self.generator.stream(prompt):
            parts.append(fragment)
            if self.on_fragment:
                self.on_fragment(fragment)
        return "".join(parts)


def create_pipeline(
    settings: AppSettings,
    client: httpx.AsyncClient,
    on_status: StatusCallback | None = None,
    on_fragment: FragmentCallback | None = None,
) -> SearchPipeline:
    """Wire every pipeline component from settings around a shared HTTP client."""
    embedder = EmbeddingClient(
        host=settings.ollama.host,
        model=settings.ollama.embedding_model,
        client=client,
        timeout=settings.ollama.embedding_timeout_seconds,
    )
    fetcher = PageFetcher(
        client=client,
        embedder=embedder,
        timeout_ms=settings.fetch.timeout_ms,
        max_content_length=settings.fetch.max_content_length,
        user_agent=settings.fetch.user_agent,
    )
    collector = SourceCollector(
        fetcher=fetcher,
        min_text_length=settings.fetch.min_text_length,
        concurrency=settings.fetch.concurrency,
        on_status=on_status,
    )
    return SearchPipeline(
        search_client=SearchClient(
            instance_url=settings.search.instance_url,
            client=client,
            categories=settings.search.categories,
            timeout=settings.search.timeout_seconds,
        ),
        collector=collector,
        ranker=RelevanceRanker(embedder, top_k=settings.pipeline.top_k),
        generator=AnswerGenerator(
            host=settings.ollama.host,
            model=settings.ollama.generation_model,
            client=client,
            num_ctx=settings.ollama.num_ctx,
            temperature=settings.ollama.temperature,
            connect_timeout=settings.ollama.connect_timeout_seconds,
        ),
        required_sources=settings.pipeline.required_sources,
        top_k=settings.pipeline.top_k,
        always_search=settings.pipeline.always_search,
        trigger=settings.pipeline.trigger,
        on_status=on_status,
        on_fragment=on_fragment,
    )
