"""Ollama embedding client with one-shot model availability check."""

import asyncio
import logging

import httpx

from ..exceptions import EmbeddingModelError

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """Turns text into embedding vectors through the Ollama HTTP API.

    The first call to :meth:`embed` makes sure the embedding model is present
    on the server and pulls it if it is missing. That check runs once per
    client; concurrent first callers wait on the same lock instead of
    triggering duplicate pulls.
    """

    def __init__(
        self,
        host: str,
        model: str,
        client: httpx.AsyncClient,
        timeout: float | None = 60.0,
    ):
        self.host = host.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._client = client
        self._model_ready = False
        self._lock = asyncio.Lock()

    @property
    def model_ready(self) -> bool:
        return self._model_ready

    async def ensure_model(self) -> None:
        """Verify the embedding model is available, pulling it if needed.

        Raises:
            EmbeddingModelError: If the server cannot be reached or the pull fails.
        """
        if self._model_ready:
            return

        async with self._lock:
            if self._model_ready:
                return

            try:
                if not await self._has_model():
                    logger.warning(f"Embedding model '{self.model}' not found, downloading...")
                    await self._pull_model()
            except EmbeddingModelError:
                raise
            except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
                raise EmbeddingModelError(f"Embedding model setup failed: {e}") from e

            logger.info(f"Embedding model '{self.model}' is available")
            self._model_ready = True

    async def _has_model(self) -> bool:
        response = await self._client.get(f"{self.host}/api/tags", timeout=self.timeout)
        if not response.is_success:
            raise EmbeddingModelError(f"Ollama not responding: HTTP {response.status_code}")

        models = response.json().get("models") or []
        return any(self.model in (m.get("name") or "") for m in models)

    async def _pull_model(self) -> None:
        # Pulls can take minutes; no timeout
        response = await self._client.post(
            f"{self.host}/api/pull",
            json={"model": self.model, "stream": False},
            timeout=None,
        )
        if not response.is_success:
            raise EmbeddingModelError(f"Model download failed: HTTP {response.status_code} {response.text[:200]}")

        data = response.json()
        if isinstance(data, dict) and data.get("error"):
            raise EmbeddingModelError(f"Model download failed: {data['error']}")

    async def embed(self, text: str) -> list[float]:
        """Embed ``text``. Returns an empty list when the request fails.

        Raises:
            EmbeddingModelError: Only from the first-use model check.
        """
        await self.ensure_model()

        try:
            response = await self._client.post(
                f"{self.host}/api/embeddings",
                json={"model": self.model, "prompt": text},
                timeout=self.timeout,
            )
            response.raise_for_status()
            embedding = response.json().get("embedding") or []
            return [float(x) for x in embedding]
        except (httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
            logger.error(f"Embedding error: {e}")
            return []
