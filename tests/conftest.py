"""Pytest configuration and fixtures for searx-rag tests.

All HTTP traffic goes through ``httpx.MockTransport``; no test touches the network.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable, Iterator

import httpx
import pytest

from searx_rag.config import AppSettings

SEARX_URL = "http://searx.test"
OLLAMA_URL = "http://ollama.test"
EMBEDDING_MODEL = "nomic-embed-text"

KEYWORDS = ("pasta", "recipe", "engine", "france")

Handler = Callable[[httpx.Request], httpx.Response | Awaitable[httpx.Response]]


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: Tests that take longer to run")


@pytest.fixture
def anyio_backend():
    return "asyncio"


def keyword_vector(text: str) -> list[float]:
    """Deterministic toy embedding: keyword counts plus a constant component."""
    lower = text.lower()
    return [float(lower.count(k)) for k in KEYWORDS] + [0.1]


def html_page(body: str, wrapper: str = "article") -> str:
    return f"<html><head><title>t</title><script>var x = 1;</script></head><body><nav>menu</nav><{wrapper}>{body}</{wrapper}></body></html>"


def _route_key(url: httpx.URL) -> str:
    port = f":{url.port}" if url.port else ""
    return f"{url.scheme}://{url.host}{port}{url.path}"


class FakeWeb:
    """Routes requests by method and URL (query ignored) and records them."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, handler: Handler | httpx.Response) -> None:
        if isinstance(handler, httpx.Response):
            status, headers, content = handler.status_code, handler.headers, handler.content

            def handler(request: httpx.Request) -> httpx.Response:
                return httpx.Response(status, headers=headers, content=content)

        self.routes[(method, _route_key(httpx.URL(url)))] = handler

    def page(self, url: str, body: str, status: int = 200, wrapper: str = "article") -> None:
        self.add("GET", url, httpx.Response(status, text=html_page(body, wrapper), headers={"Content-Type": "text/html"}))

    def slow_page(self, url: str, delay: float = 1.0) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(delay)
            return httpx.Response(200, text=html_page("too late " * 50))

        self.add("GET", url, handler)

    def calls(self, url: str, method: str = "GET") -> int:
        key = _route_key(httpx.URL(url))
        return sum(1 for r in self.requests if r.method == method and _route_key(r.url) == key)

    def handle(self, request: httpx.Request) -> httpx.Response | Awaitable[httpx.Response]:
        self.requests.append(request)
        handler = self.routes.get((request.method, _route_key(request.url)))
        if handler is None:
            return httpx.Response(404, text="not found")
        return handler(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))


class FakeOllama:
    """Minimal Ollama API: tags, pull, embeddings and streaming generate."""

    def __init__(self, web: FakeWeb, models: tuple[str, ...] = (f"{EMBEDDING_MODEL}:latest",)) -> None:
        self.models = list(models)
        self.fragments = ["The answer", " is", " here."]
        self.tags_status = 200
        self.pull_status = 200
        self.embed_status = 200
        self.generate_status = 200
        self.embed_fn: Callable[[str], list[float]] = keyword_vector
        self.prompts: list[str] = []
        self.generate_bodies: list[dict] = []
        self.embedded: list[str] = []
        self.pull_requests = 0

        web.add("GET", f"{OLLAMA_URL}/api/tags", self._tags)
        web.add("POST", f"{OLLAMA_URL}/api/pull", self._pull)
        web.add("POST", f"{OLLAMA_URL}/api/embeddings", self._embed)
        web.add("POST", f"{OLLAMA_URL}/api/generate", self._generate)

    def _tags(self, request: httpx.Request) -> httpx.Response:
        if self.tags_status != 200:
            return httpx.Response(self.tags_status)
        return httpx.Response(200, json={"models": [{"name": m} for m in self.models]})

    def _pull(self, request: httpx.Request) -> httpx.Response:
        self.pull_requests += 1
        if self.pull_status != 200:
            return httpx.Response(self.pull_status, json={"error": "pull failed"})
        self.models.append(json.loads(request.content)["model"])
        return httpx.Response(200, json={"status": "success"})

    def _embed(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.embedded.append(body["prompt"])
        if self.embed_status != 200:
            return httpx.Response(self.embed_status, text="embedding failed")
        return httpx.Response(200, json={"embedding": self.embed_fn(body["prompt"])})

    def _generate(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.generate_bodies.append(body)
        self.prompts.append(body["prompt"])
        if self.generate_status != 200:
            return httpx.Response(self.generate_status, text="model crashed")
        lines = [json.dumps({"response": f, "done": False}) for f in self.fragments]
        lines.append(json.dumps({"done": True}))
        return httpx.Response(200, content=("\n".join(lines) + "\n").encode("utf-8"))


@pytest.fixture
def fake_web() -> FakeWeb:
    return FakeWeb()


@pytest.fixture
def fake_ollama(fake_web: FakeWeb) -> FakeOllama:
    return FakeOllama(fake_web)


@pytest.fixture
def settings(monkeypatch) -> Iterator[AppSettings]:
    """Settings pointing at the fake hosts, with a short fetch timeout."""
    monkeypatch.setenv("SEARX_RAG_SEARCH_INSTANCE_URL", SEARX_URL)
    monkeypatch.setenv("SEARX_RAG_OLLAMA_HOST", OLLAMA_URL)
    monkeypatch.setenv("SEARX_RAG_OLLAMA_EMBEDDING_MODEL", EMBEDDING_MODEL)
    monkeypatch.setenv("SEARX_RAG_FETCH_TIMEOUT_MS", "100")
    monkeypatch.delenv("SEARX_RAG_PIPELINE_ALWAYS_SEARCH", raising=False)
    monkeypatch.delenv("SEARX_RAG_PIPELINE_TRIGGER", raising=False)
    yield AppSettings()
