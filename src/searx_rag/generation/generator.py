"""Streaming answer generation through the Ollama generate API."""

import json
import logging
from collections.abc import AsyncIterator

import httpx

from ..exceptions import GenerationError

logger = logging.getLogger(__name__)

STOP_SEQUENCES = ["\n\nYou:"]


class AnswerGenerator:
    """Streams answer text fragments for a prompt.

    ``stream`` is an async iterator: each item is one text fragment in
    arrival order, and exhaustion of the iterator is the end of the stream.
    """

    def __init__(
        self,
        host: str,
        model: str,
        client: httpx.AsyncClient,
        num_ctx: int = 4096,
        temperature: float = 0.3,
        connect_timeout: float = 10.0,
    ):
        self.host = host.rstrip("/")
        self.model = model
        self.num_ctx = num_ctx
        self.temperature = temperature
        # Tokens can take a long time to arrive; only the connect phase is bounded
        self.timeout = httpx.Timeout(None, connect=connect_timeout)
        self._client = client

    def build_payload(self, prompt: str) -> dict:
        """Request body for ``/api/generate``."""
        return {
            "model": self.model,
            "prompt": prompt,
            "stream": True,
            "num_ctx": self.num_ctx,
            "temperature": self.temperature,
            "stop": STOP_SEQUENCES,
            "options": {
                "num_ctx": self.num_ctx,
                "temperature": self.temperature,
                "stop": STOP_SEQUENCES,
            },
        }

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        """Yield answer fragments as they arrive.

        Raises:
            GenerationError: On a non-2xx response or a transport failure.
        """
        try:
            async with self._client.stream(
                "POST",
                f"{self.host}/api/generate",
                json=self.build_payload(prompt),
                timeout=self.timeout,
            ) as response:
                if not response.is_success:
                    await response.aread()
                    raise GenerationError(f"Generation error: HTTP {response.status_code} {response.text[:200]}")

                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        chunk = json.loads(line)
                    except json.JSONDecodeError as e:
                        logger.error(f"Error parsing response chunk: {e}")
                        continue
                    if not isinstance(chunk, dict):
                        continue
                    if chunk.get("error"):
                        raise GenerationError(f"Generation error: {chunk['error']}")

                    fragment = chunk.get("response")
                    if fragment:
                        yield fragment
                    if chunk.get("done"):
                        break
        except httpx.HTTPError as e:
            raise GenerationError(f"Generation request failed: {e}") from e
