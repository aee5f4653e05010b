"""
Newsletter Routes

Proxies newsletter signups from the website to Listmonk.

- ``POST /email-list``: subscribe an email address to a list, then queue the
  optional welcome email.
- ``GET /email-list``: fetch the subscription form nonce.

The Listmonk instance is taken from the ``baseUrl`` sent by the page, falling
back to the configured ``LISTMONK_BASE_URL``.
"""

from __future__ import annotations

import logging
import re
from typing import Annotated, Any, Optional
from urllib.parse import urlparse

import httpx
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from fastapi.responses import JSONResponse

from .models import NonceResponse, SubscriptionRequest, SubscriptionResponse
from .dependencies import get_listmonk_client
from ..assistant.abuse import is_bot
from ..config import settings
from ..newsletter.listmonk import ListmonkClient

logger = logging.getLogger("newsletter.routes")

router = APIRouter(prefix="/email-list", tags=["newsletter"])

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

SUBSCRIBED_MESSAGE = "Successfully subscribed! Please check your email to confirm."
FAILED_MESSAGE = "Subscription failed. Please try again."
ERROR_MESSAGE = "An error occurred. Please try again later."


# ---------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------

def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _template_id(value: Any) -> Optional[int]:
    """
    Parse a positive Listmonk template id from a JSON number or numeric string.

    Raises
    ------
    ValueError
        If the value is present but not a positive integer.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"invalid template id: {value!r}")
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise ValueError(f"invalid template id: {value!r}")
        value = int(value)
    if not isinstance(value, int) or value < 1:
        raise ValueError(f"invalid template id: {value!r}")
    return value


def _resolve_base_url(requested: Any) -> Optional[str]:
    """
    Return an http(s) Listmonk base URL, or None if none is usable.
    """
    candidate = _text(requested)
    if not candidate and settings.listmonk_base_url is not None:
        candidate = str(settings.listmonk_base_url)
    if not candidate:
        return None

    parsed = urlparse(candidate)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return candidate.rstrip("/")


def _subscription_failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=SubscriptionResponse(success=False, message=message).model_dump(),
    )


# ---------------------------------------------------------------------
# Subscription Route
# ---------------------------------------------------------------------

@router.post(
    "",
    response_model=SubscriptionResponse,
    summary="Subscribe an email address to the newsletter",
)
async def subscribe(
    req: SubscriptionRequest,
    background_tasks: BackgroundTasks,
    listmonk: Annotated[ListmonkClient, Depends(get_listmonk_client)],
):
    if is_bot(req.website):
        logger.info("Newsletter honeypot triggered; returning fake success")
        return SubscriptionResponse(success=True, message=SUBSCRIBED_MESSAGE)

    email = _text(req.email)
    if not EMAIL_PATTERN.match(email):
        return _subscription_failure(status.HTTP_400_BAD_REQUEST, "A valid email address is required.")

    list_id = _text(req.list_id)
    if not list_id:
        return _subscription_failure(status.HTTP_400_BAD_REQUEST, "listId is required.")

    try:
        template_id = _template_id(req.template_id)
    except ValueError:
        return _subscription_failure(
            status.HTTP_400_BAD_REQUEST, "templateId must be a positive integer."
        )

    base_url = _resolve_base_url(req.base_url)
    if base_url is None:
        return _subscription_failure(status.HTTP_400_BAD_REQUEST, "baseUrl parameter is required.")

    try:
        result = await listmonk.subscribe(base_url, email, list_id)
    except httpx.HTTPError as exc:
        logger.error("Error proxying newsletter subscription (%s): %s", type(exc).__name__, exc)
        return _subscription_failure(status.HTTP_500_INTERNAL_SERVER_ERROR, ERROR_MESSAGE)

    if not result.success:
        return _subscription_failure(result.status_code, FAILED_MESSAGE)

    if template_id is not None and listmonk.can_send_transactional:
        background_tasks.add_task(listmonk.send_welcome_email, base_url, email, template_id)

    return SubscriptionResponse(success=True, message=SUBSCRIBED_MESSAGE)


# ---------------------------------------------------------------------
# Nonce Route
# ---------------------------------------------------------------------

@router.get(
    "",
    response_model=NonceResponse,
    summary="Fetch the Listmonk subscription form nonce",
)
async def fetch_nonce(
    listmonk: Annotated[ListmonkClient, Depends(get_listmonk_client)],
    base_url: Annotated[Optional[str], Query(alias="baseUrl")] = None,
):
    resolved = _resolve_base_url(base_url)
    if resolved is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "baseUrl parameter is required"},
        )

    try:
        nonce = await listmonk.fetch_nonce(resolved)
    except httpx.HTTPError as exc:
        logger.error("Error fetching nonce from Listmonk (%s): %s", type(exc).__name__, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to fetch nonce"},
        )

    return NonceResponse(nonce=nonce)
