"""
Embedding Client

Turns a visitor query into a single embedding vector using the Gemini
``embedContent`` REST endpoint.

- One content part per request (queries are embedded one at a time)
- Strict response validation: a 2xx without a vector is an error
- No retries and no fallback; without a vector there is no retrieval

The class is stateless and safe to reuse across requests.
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional

import httpx

from ..config import settings
from ..core.errors import (
    EmbeddingFormatError,
    EmbeddingServiceError,
    upstream_error_from_response,
)

logger = logging.getLogger("assistant.embedder")


class EmbeddingClient:
    """
    Asynchronous embedding generator for a single query string.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize an EmbeddingClient.

        Parameters
        ----------
        api_key : Optional[str]
            Override for the Gemini API key. Defaults to settings.gemini_api_key.

        model : Optional[str]
            Override for the embedding model. Defaults to settings.gemini_embedding_model.

        base_url : Optional[str]
            Base URL of the Gemini REST API.

        timeout : Optional[float]
            HTTP timeout for each request.

        transport : Optional[httpx.AsyncBaseTransport]
            Custom transport, used by tests to stub the provider.
        """
        self.api_key = api_key or settings.gemini_api_key.get_secret_value()
        self.model = model or settings.gemini_embedding_model
        self.base_url = (base_url or settings.gemini_api_base_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:embedContent"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> List[float]:
        """
        Generate the embedding vector for ``text``.

        Returns
        -------
        List[float]
            Non-empty embedding vector.

        Raises
        ------
        EmbeddingServiceError
            On transport failure or any non-2xx response other than 429.

        UpstreamRateLimitedError, QuotaExceededError
            On 429 responses.

        EmbeddingFormatError
            If the 2xx response carries no vector.
        """
        payload = {"content": {"parts": [{"text": text}]}}
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(self.endpoint, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Embedding request failed (%s): %s", type(exc).__name__, exc)
            raise EmbeddingServiceError(
                f"Embedding request failed: {type(exc).__name__}",
                reason=type(exc).__name__,
            ) from exc

        if not response.is_success:
            raise upstream_error_from_response(response, EmbeddingServiceError, "Embedding")

        return self._extract_vector(response)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_vector(response: httpx.Response) -> List[float]:
        """
        Parse and validate the embedding payload.

        Gemini returns:
            { "embedding": { "values": [...] } }
        """
        try:
            data = response.json()
        except ValueError as exc:
            raise EmbeddingFormatError(
                f"Embedding response is not JSON: {response.text[:500]}",
                upstream_status=response.status_code,
                body=response.text,
            ) from exc

        values = None
        if isinstance(data, dict) and isinstance(data.get("embedding"), dict):
            values = data["embedding"].get("values")

        if (
            not isinstance(values, list)
            or not values
            or not all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in values)
        ):
            details = json.dumps(data, indent=2)
            logger.error("Embedding response structure: %s", details)
            raise EmbeddingFormatError(
                f"Failed to generate embedding vector. Response: {details}",
                upstream_status=response.status_code,
                body=response.text,
            )

        return [float(x) for x in values]
