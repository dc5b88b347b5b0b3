"""
Google Gemini embedding HTTP adapter.

Sends one text per request to the Gemini ``embedContent`` endpoint and
returns the raw vector. Rate-limited requests (HTTP 429) are retried with
exponential backoff; every other failure surfaces immediately.

Dependencies: httpx, tenacity
System role: Network boundary for the embedding client
"""

import logging
import math
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from backend.core.exceptions import EmbeddingProviderError
from backend.observability.log_utils import redact

logger = logging.getLogger(__name__)

RATE_LIMITED_STATUS = 429


def _is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, EmbeddingProviderError) and exc.status_code == RATE_LIMITED_STATUS


class GeminiEmbeddingClient:
    """Async client for the Gemini embedContent REST endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        timeout_seconds: float = 30.0,
        rate_limit_retries: int = 3,
        retry_initial_wait: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the Gemini adapter.

        Args:
            api_key: Gemini API key, sent as the "key" query parameter
            model: Model name without the "models/" prefix
            base_url: API base URL
            timeout_seconds: Timeout for every request
            rate_limit_retries: Extra attempts after an HTTP 429
            retry_initial_wait: First backoff delay in seconds
            transport: Optional transport override (tests)
        """
        self._api_key = api_key
        self._model = model
        self._rate_limit_retries = rate_limit_retries
        self._retry_initial_wait = retry_initial_wait
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds),
            params={"key": api_key},
            transport=transport,
        )

    @property
    def model(self) -> str:
        return self._model

    async def embed_one(self, text: str) -> list[float]:
        """
        Embed a single text.

        Args:
            text: Text to embed

        Returns:
            list[float]: Embedding values as returned by the provider

        Raises:
            EmbeddingProviderError: On HTTP, transport, timeout or payload errors
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception(_is_rate_limited),
            stop=stop_after_attempt(self._rate_limit_retries + 1),
            wait=wait_exponential_jitter(initial=self._retry_initial_wait, max=30, jitter=self._retry_initial_wait),
            before_sleep=lambda retry_state: logger.warning(
                f"{__name__}:embed_one - Retry {retry_state.attempt_number}/"
                f"{self._rate_limit_retries} after rate limiting"
            ),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._request(text)
        raise EmbeddingProviderError("Embedding request was not attempted")

    async def _request(self, text: str) -> list[float]:
        body = {
            "model": f"models/{self._model}",
            "content": {"parts": [{"text": text}]},
        }
        try:
            response = await self._client.post(f"/models/{self._model}:embedContent", json=body)
        except httpx.TimeoutException as e:
            raise EmbeddingProviderError(
                f"Gemini request timed out: {self._redact(str(e)) or type(e).__name__}"
            ) from e
        except httpx.HTTPError as e:
            raise EmbeddingProviderError(
                f"Gemini request failed: {self._redact(str(e)) or type(e).__name__}"
            ) from e

        if response.status_code >= 400:
            raise EmbeddingProviderError(
                f"Gemini API error: {response.status_code} {self._redact(response.text[:200])}",
                status_code=response.status_code,
            )

        return self._parse(response)

    def _parse(self, response: httpx.Response) -> list[float]:
        try:
            payload: Any = response.json()
            values = payload["embedding"]["values"]
        except (ValueError, KeyError, TypeError) as e:
            raise EmbeddingProviderError(
                "Malformed Gemini embedding response",
                status_code=response.status_code,
            ) from e

        if not isinstance(values, list) or not all(
            isinstance(value, (int, float)) and not isinstance(value, bool) for value in values
        ):
            raise EmbeddingProviderError(
                "Malformed Gemini embedding response: values is not a numeric list",
                status_code=response.status_code,
            )
        if not all(math.isfinite(value) for value in values):
            raise EmbeddingProviderError(
                "Malformed Gemini embedding response: values are not finite",
                status_code=response.status_code,
            )
        return [float(value) for value in values]

    def _redact(self, text: str) -> str:
        return redact(text, [self._api_key])

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "GeminiEmbeddingClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
