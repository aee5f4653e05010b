"""
Similarity Search Client

Queries the Pinecone index for the nearest neighbours of a query vector.

Retrieval is an optimization, not a requirement for answering: the call runs
under a hard deadline and every failure (timeout, transport error, non-2xx,
malformed payload) is logged and reported as an unavailable SearchOutcome.
Nothing in this module raises to the caller.

On deadline expiry the in-flight HTTP request is cancelled rather than left
running in the background.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

import httpx
from pydantic import ValidationError

from ..config import settings
from ..core.errors import UpstreamDegradedError
from .models import Match, SearchOutcome

logger = logging.getLogger("assistant.search")

TOP_K = 3
SEARCH_DEADLINE_SECONDS = 2.0
PINECONE_API_VERSION = "2025-10"


class _InvalidSearchResponse(UpstreamDegradedError):
    """The index answered 2xx with an unusable payload."""


class _SearchHTTPError(UpstreamDegradedError):
    """The index answered with a non-2xx status."""


class SimilaritySearchClient:
    """
    Deadline-bounded nearest-neighbour lookup against a Pinecone index host.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        top_k: int = TOP_K,
        deadline: float = SEARCH_DEADLINE_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.pinecone_url).rstrip("/")
        self.api_key = api_key or settings.pinecone_api_key.get_secret_value()
        self.top_k = top_k
        self.deadline = deadline
        self._transport = transport

    async def query(self, vector: Sequence[float]) -> SearchOutcome:
        """
        Return the top-K matches for ``vector``, or an unavailable outcome.

        Parameters
        ----------
        vector : Sequence[float]
            Query embedding.

        Returns
        -------
        SearchOutcome
            ``available=True`` with matches in relevance order, or
            ``available=False`` with the failure reason.
        """
        try:
            matches = await asyncio.wait_for(self._query(vector), timeout=self.deadline)
        except asyncio.TimeoutError:
            logger.warning("Vector search timed out after %.0f ms", self.deadline * 1000)
            return SearchOutcome.unavailable("timeout")
        except _SearchHTTPError as exc:
            logger.warning("Vector search failed: %s", exc)
            return SearchOutcome.unavailable("http_error")
        except _InvalidSearchResponse as exc:
            logger.warning("Vector search returned an invalid payload: %s", exc)
            return SearchOutcome.unavailable("invalid_response")
        except httpx.HTTPError as exc:
            logger.warning("Vector search transport error (%s): %s", type(exc).__name__, exc)
            return SearchOutcome.unavailable("transport_error")
        except Exception as exc:
            logger.exception("Unexpected vector search failure (%s): %s", type(exc).__name__, exc)
            return SearchOutcome.unavailable("transport_error")

        logger.info("Vector search returned %d match(es)", len(matches))
        return SearchOutcome.found(matches)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _query(self, vector: Sequence[float]) -> List[Match]:
        payload = {
            "vector": list(vector),
            "topK": self.top_k,
            "includeMetadata": True,
        }
        headers = {
            "Api-Key": self.api_key,
            "Content-Type": "application/json",
            "X-Pinecone-Api-Version": PINECONE_API_VERSION,
        }

        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.post(f"{self.base_url}/query", json=payload, headers=headers)

        if not response.is_success:
            raise _SearchHTTPError(
                f"{response.status_code} {response.reason_phrase}: {response.text[:200]}"
            )

        return self._parse_matches(response)

    @staticmethod
    def _parse_matches(response: httpx.Response) -> List[Match]:
        """
        Parse the Pinecone query payload:
            { "matches": [ {"id": ..., "score": ..., "metadata": {...}}, ... ] }
        """
        try:
            data = response.json()
        except ValueError as exc:
            raise _InvalidSearchResponse("response is not JSON") from exc

        if not isinstance(data, dict):
            raise _InvalidSearchResponse("response is not an object")

        raw_matches = data.get("matches") or []
        if not isinstance(raw_matches, list):
            raise _InvalidSearchResponse("'matches' must be a list")

        matches: List[Match] = []
        for index, raw in enumerate(raw_matches):
            if not isinstance(raw, dict):
                raise _InvalidSearchResponse(f"malformed match at index {index}")
            try:
                matches.append(
                    Match(
                        id=str(raw.get("id", "")),
                        score=raw.get("score"),
                        metadata=raw.get("metadata") or {},
                    )
                )
            except ValidationError as exc:
                raise _InvalidSearchResponse(f"malformed match at index {index}") from exc

        return matches
