"""
Assistant Routes: Grounded Q&A Endpoint

This module implements ``POST /ai``, the website's "ask me anything" box.

Request Flow
------------
1. Honeypot check: bots get a fake acknowledgement and nothing else runs.
2. Query validation: blank queries are rejected with 400.
3. Rate limiting (when configured): per-IP fixed window, 429 when exhausted.
4. Assistant pipeline: embed → search (best effort) → prompt → generate.
5. Response: ``{"text": ...}`` plus ``remaining`` when rate limiting is on.
6. Persistence: the answer record is written in a background task after the
   response has been sent.

Upstream failures raised by the pipeline are mapped to 500/429/503 by the
handlers in ``core.errors``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.responses import JSONResponse

from .models import AssistantRequest, AssistantResponse
from .dependencies import get_answer_sink, get_pipeline, get_rate_limiter
from ..assistant.abuse import BOT_ACKNOWLEDGEMENT, is_bot
from ..assistant.models import AnswerRecord
from ..assistant.pipeline import AssistantPipeline
from ..core.errors import QueryValidationError, error_payload
from ..db import AnswerSink
from ..ratelimit import FixedWindowRateLimiter, client_ip

logger = logging.getLogger("assistant.routes")

router = APIRouter(tags=["assistant"])

RATE_LIMITED_ERROR = "Rate limit exceeded"
RATE_LIMITED_MESSAGE = (
    "You have reached the maximum number of questions for now. Please try again later."
)


# ---------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------

def _iso_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    return (
        moment.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def _country_code(request: Request) -> Optional[str]:
    code = (request.headers.get("cf-ipcountry") or "").strip().upper()
    return code or None


# ---------------------------------------------------------------------
# Assistant Route
# ---------------------------------------------------------------------

@router.post(
    "/ai",
    response_model=AssistantResponse,
    response_model_exclude_none=True,
    summary="Ask the website assistant a question",
    status_code=status.HTTP_200_OK,
)
async def ask_assistant(
    req: AssistantRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    pipeline: Annotated[AssistantPipeline, Depends(get_pipeline)],
    rate_limiter: Annotated[Optional[FixedWindowRateLimiter], Depends(get_rate_limiter)],
    sink: Annotated[AnswerSink, Depends(get_answer_sink)],
):
    """
    Answer a visitor question from the knowledge base.

    Parameters
    ----------
    req : AssistantRequest
        ``query`` plus the ``website`` honeypot.

    Returns
    -------
    AssistantResponse
        Generated text, and the remaining quota when rate limiting is on.
    """

    # -------------------------------------------------------------
    # 1. Honeypot
    # -------------------------------------------------------------
    if is_bot(req.website):
        logger.info("Honeypot triggered; returning fake acknowledgement")
        return AssistantResponse(text=BOT_ACKNOWLEDGEMENT)

    # -------------------------------------------------------------
    # 2. Validation
    # -------------------------------------------------------------
    if not isinstance(req.query, str) or not req.query.strip():
        raise QueryValidationError("Query is required")

    ip = client_ip(request.headers)

    # -------------------------------------------------------------
    # 3. Rate Limiting
    # -------------------------------------------------------------
    remaining: Optional[int] = None
    if rate_limiter is not None:
        decision = await rate_limiter.check(ip)
        if not decision.allowed:
            logger.warning("Rate limit exceeded for client %s", ip)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=error_payload(
                    RATE_LIMITED_ERROR,
                    RATE_LIMITED_MESSAGE,
                    resetAt=_iso_timestamp(decision.reset_at),
                ),
            )
        remaining = decision.remaining

    # -------------------------------------------------------------
    # 4. Pipeline
    # -------------------------------------------------------------
    answer = await pipeline.answer(req.query)

    # -------------------------------------------------------------
    # 5. Persistence (after the response is sent)
    # -------------------------------------------------------------
    background_tasks.add_task(
        sink.save,
        AnswerRecord(
            query=req.query,
            knowledge_found=answer.knowledge_found,
            article_url=answer.article_url,
            article_section=answer.article_section,
            response_text=answer.text,
            client_ip=ip,
            country_code=_country_code(request),
        ),
    )

    return AssistantResponse(text=answer.text, remaining=remaining)
