"""Tests for the Ollama embedding client and its one-shot model check."""

import asyncio
import json

import httpx
import pytest

from conftest import EMBEDDING_MODEL, OLLAMA_URL, FakeOllama, FakeWeb
from searx_rag.exceptions import EmbeddingModelError
from searx_rag.retrieval import EmbeddingClient


def _tags_calls(fake_web: FakeWeb) -> int:
    return fake_web.calls(f"{OLLAMA_URL}/api/tags")


@pytest.mark.asyncio
async def test_embed_returns_vector_and_checks_model_once(fake_web: FakeWeb, fake_ollama: FakeOllama):
    async with fake_web.client() as client:
        embedder = EmbeddingClient(OLLAMA_URL, EMBEDDING_MODEL, client)
        first = await embedder.embed("pasta")
        second = await embedder.embed("france")

    assert first == [1.0, 0.0, 0.0, 0.0, 0.1]
    assert second == [0.0, 0.0, 0.0, 1.0, 0.1]
    assert embedder.model_ready
    assert _tags_calls(fake_web) == 1
    assert fake_ollama.pull_requests == 0


@pytest.mark.asyncio
async def test_embed_request_body(fake_web: FakeWeb, fake_ollama: FakeOllama):
    async with fake_web.client() as client:
        await EmbeddingClient(OLLAMA_URL, EMBEDDING_MODEL, client).embed("hello")

    request = [r for r in fake_web.requests if r.url.path == "/api/embeddings"][0]
    assert request.method == "POST"
    assert json.loads(request.content) == {"model": "nomic-embed-text", "prompt": "hello"}


@pytest.mark.asyncio
async def test_missing_model_is_pulled(fake_web: FakeWeb):
    fake_ollama = FakeOllama(fake_web, models=("llama3:latest",))

    async with fake_web.client() as client:
        embedding = await EmbeddingClient(OLLAMA_URL, EMBEDDING_MODEL, client).embed("pasta")

    assert fake_ollama.pull_requests == 1
    assert EMBEDDING_MODEL in fake_ollama.models
    assert embedding


@pytest.mark.asyncio
async def test_concurrent_first_calls_share_one_check(fake_web: FakeWeb):
    fake_ollama = FakeOllama(fake_web, models=())

    async with fake_web.client() as client:
        embedder = EmbeddingClient(OLLAMA_URL, EMBEDDING_MODEL, client)
        results = await asyncio.gather(*(embedder.embed(f"text {i}") for i in range(5)))

    assert len(results) == 5
    assert _tags_calls(fake_web) == 1
    assert fake_ollama.pull_requests == 1


@pytest.mark.asyncio
async def test_unreachable_server_is_fatal(fake_web: FakeWeb, fake_ollama: FakeOllama):
    fake_ollama.tags_status = 503

    async with fake_web.client() as client:
        embedder = EmbeddingClient(OLLAMA_URL, EMBEDDING_MODEL, client)
        with pytest.raises(EmbeddingModelError, match="not responding"):
            await embedder.embed("pasta")

    assert not embedder.model_ready


@pytest.mark.asyncio
async def test_connection_refused_is_fatal(fake_web: FakeWeb):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    fake_web.add("GET", f"{OLLAMA_URL}/api/tags", handler)

    async with fake_web.client() as client:
        with pytest.raises(EmbeddingModelError):
            await EmbeddingClient(OLLAMA_URL, EMBEDDING_MODEL, client).ensure_model()


@pytest.mark.asyncio
async def test_failed_pull_is_fatal(fake_web: FakeWeb):
    fake_ollama = FakeOllama(fake_web, models=())
    fake_ollama.pull_status = 500

    async with fake_web.client() as client:
        with pytest.raises(EmbeddingModelError, match="download failed"):
            await EmbeddingClient(OLLAMA_URL, EMBEDDING_MODEL, client).embed("pasta")


@pytest.mark.asyncio
async def test_embed_failure_returns_empty_vector(fake_web: FakeWeb, fake_ollama: FakeOllama):
    fake_ollama.embed_status = 500

    async with fake_web.client() as client:
        assert await EmbeddingClient(OLLAMA_URL, EMBEDDING_MODEL, client).embed("pasta") == []


@pytest.mark.asyncio
async def test_malformed_embedding_response_returns_empty_vector(fake_web: FakeWeb, fake_ollama: FakeOllama):
    fake_web.add("POST", f"{OLLAMA_URL}/api/embeddings", httpx.Response(200, text="not json"))

    async with fake_web.client() as client:
        assert await EmbeddingClient(OLLAMA_URL, EMBEDDING_MODEL, client).embed("pasta") == []


@pytest.mark.asyncio
async def test_missing_embedding_field_returns_empty_vector(fake_web: FakeWeb, fake_ollama: FakeOllama):
    fake_web.add("POST", f"{OLLAMA_URL}/api/embeddings", httpx.Response(200, json={"other": 1}))

    async with fake_web.client() as client:
        assert await EmbeddingClient(OLLAMA_URL, EMBEDDING_MODEL, client).embed("pasta") == []
