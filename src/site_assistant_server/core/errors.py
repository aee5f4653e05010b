"""
Error Taxonomy and Global Error Handling

This module defines the exception hierarchy used by the assistant pipeline
and the FastAPI exception handlers that turn it into client responses.

Design Goals
------------
- Never leak provider payloads or stack traces to clients
- Always return a JSON object with ``error`` and a human-readable ``message``
- Log full upstream details internally for debugging
- Keep the 429 quota / rate-limit / generic failure split intact

Taxonomy
--------
AssistantError
    QueryValidationError        -> 400
    UpstreamDegradedError       -> absorbed by the search step, never surfaced
    UpstreamFatalError          -> 500
        EmbeddingServiceError
        EmbeddingFormatError
        GenerationError
        UpstreamRateLimitedError -> 429
        QuotaExceededError       -> 503
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type

import httpx
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("assistant.errors")

QUOTA_FAILURE_TYPE = "type.googleapis.com/google.rpc.QuotaFailure"

# Newsletter endpoints answer every outcome as {success, message}
NEWSLETTER_PATH_PREFIX = "/email-list"


# ---------------------------------------------------------------------
# Exception Hierarchy
# ---------------------------------------------------------------------

class AssistantError(Exception):
    """Base class for all errors raised by the assistant pipeline."""

    status_code: int = 500
    error: str = "Failed to generate response"
    message: str = (
        "An error occurred while processing your request. Please try again later."
    )


class QueryValidationError(AssistantError):
    """Raised when the submitted query is missing or blank."""

    status_code = 400
    error = "Query is required"
    message = "Please enter a question."


class UpstreamDegradedError(AssistantError):
    """Raised inside the search step for non-fatal upstream failures."""


class UpstreamFatalError(AssistantError):
    """
    An upstream call the request cannot continue without has failed.

    Attributes
    ----------
    upstream_status : Optional[int]
        HTTP status returned by the provider, if any.
    reason : str
        Provider reason phrase or transport error name.
    body : str
        Raw provider response body (logged, never returned to clients).
    details : List[Dict[str, Any]]
        Structured ``error.details`` entries from the provider payload.
    """

    def __init__(
        self,
        detail: str,
        *,
        upstream_status: Optional[int] = None,
        reason: str = "",
        body: str = "",
        details: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        super().__init__(detail)
        self.upstream_status = upstream_status
        self.reason = reason
        self.body = body
        self.details = details or []


class EmbeddingServiceError(UpstreamFatalError):
    """The embedding endpoint returned a non-2xx response or was unreachable."""


class EmbeddingFormatError(UpstreamFatalError):
    """The embedding endpoint answered 2xx without a usable vector."""


class GenerationError(UpstreamFatalError):
    """The generative endpoint failed or returned no text."""


class UpstreamRateLimitedError(UpstreamFatalError):
    """The provider answered 429 without a quota failure detail."""

    status_code = 429
    error = "Rate limit exceeded"
    message = "Too many requests to the AI service. Please wait a moment and try again."


class QuotaExceededError(UpstreamFatalError):
    """The provider answered 429 with a QuotaFailure detail."""

    status_code = 503
    error = "API quota exceeded"
    message = (
        "The AI service has reached its daily limit. "
        "Please try again tomorrow or contact support."
    )


# ---------------------------------------------------------------------
# Upstream Response Classification
# ---------------------------------------------------------------------

def _error_details(payload: Any) -> List[Dict[str, Any]]:
    if not isinstance(payload, dict):
        return []
    error = payload.get("error")
    if isinstance(error, list):
        error = error[0] if error else None
    if not isinstance(error, dict):
        return []
    details = error.get("details")
    if not isinstance(details, list):
        return []
    return [d for d in details if isinstance(d, dict)]


def is_quota_failure(details: List[Dict[str, Any]]) -> bool:
    """Return True if any provider error detail is a QuotaFailure."""
    return any(d.get("@type") == QUOTA_FAILURE_TYPE for d in details)


def upstream_error_from_response(
    response: httpx.Response,
    default_cls: Type[UpstreamFatalError],
    stage: str,
) -> UpstreamFatalError:
    """
    Build the exception matching a failed provider response.

    429 responses are split into quota exhaustion and plain rate limiting;
    every other status maps to ``default_cls``.
    """
    body = response.text
    try:
        details = _error_details(response.json())
    except ValueError:
        details = []

    reason = response.reason_phrase
    detail = f"{stage} API error: {response.status_code} {reason} - {body}"

    if response.status_code == 429:
        cls: Type[UpstreamFatalError] = (
            QuotaExceededError if is_quota_failure(details) else UpstreamRateLimitedError
        )
    else:
        cls = default_cls

    return cls(
        detail,
        upstream_status=response.status_code,
        reason=reason,
        body=body,
        details=details,
    )


# ---------------------------------------------------------------------
# Response Helpers
# ---------------------------------------------------------------------

def error_payload(error: str, message: str, **extra: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"error": error, "message": message}
    payload.update(extra)
    return payload


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def assistant_exception_handler(
    request: Request,
    exc: AssistantError,
) -> JSONResponse:
    """
    Map an AssistantError to its sanitized JSON response.

    Upstream failures are logged with the raw provider body; the client
    only ever sees the class-level ``error``/``message`` pair.
    """
    if isinstance(exc, QueryValidationError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.error})

    if isinstance(exc, UpstreamFatalError):
        logger.error(
            "Upstream failure on %s %s (%s, status=%s): %s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc.upstream_status,
            exc,
        )
    else:
        logger.error("Assistant error on %s: %s", request.url.path, exc)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(exc.error, exc.message),
    )


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Malformed request bodies are a client error, reported as 400."""
    logger.info("Rejected malformed request body on %s", request.url.path)
    if request.url.path.startswith(NEWSLETTER_PATH_PREFIX):
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Invalid request. Please try again."},
        )
    return JSONResponse(
        status_code=400,
        content=error_payload("Invalid request", "The request body could not be parsed."),
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Logs the full stack trace and returns a generic 500 with no internal
    details.
    """
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    return JSONResponse(
        status_code=500,
        content=error_payload(AssistantError.error, AssistantError.message),
    )
