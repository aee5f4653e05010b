"""
Listmonk Client

Thin async wrapper around the parts of a self-hosted Listmonk instance the
website needs:

- Public subscription API (double opt-in handled by Listmonk)
- Subscription form scraping for the anti-CSRF ``nonce``
- Transactional API for the optional welcome email

Welcome-email failures never fail a subscription; they are logged only.
"""

from __future__ import annotations

import logging
import re
from typing import NamedTuple, Optional

import httpx

from ..config import settings

logger = logging.getLogger("newsletter.listmonk")

NONCE_PATTERNS = (
    re.compile(r'name="nonce"\s+value="([^"]+)"'),
    re.compile(r'<input[^>]*name="nonce"[^>]*value="([^"]+)"', re.IGNORECASE),
    re.compile(r"""name=['"]nonce['"]\s+value=['"]([^'"]+)['"]""", re.IGNORECASE),
)


def extract_nonce(html: str) -> Optional[str]:
    """Return the first nonce found by any of the known form layouts."""
    for pattern in NONCE_PATTERNS:
        match = pattern.search(html)
        if match and match.group(1):
            return match.group(1)
    return None


class SubscriptionResult(NamedTuple):
    """Outcome of a subscription attempt."""
    success: bool
    status_code: int


class ListmonkClient:
    def __init__(
        self,
        username: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 15,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.username = username if username is not None else settings.listmonk_username
        if api_key is None and settings.listmonk_api_key is not None:
            api_key = settings.listmonk_api_key.get_secret_value()
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @property
    def can_send_transactional(self) -> bool:
        return bool(self.username and self.api_key)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    async def subscribe(self, base_url: str, email: str, list_uuid: str) -> SubscriptionResult:
        """
        Subscribe ``email`` to the list ``list_uuid``.

        Raises
        ------
        httpx.HTTPError
            On transport failure.
        """
        async with self._client() as client:
            resp = await client.post(
                f"{base_url.rstrip('/')}/api/public/subscription",
                json={"email": email, "list_uuids": [list_uuid]},
            )

        if not resp.is_success:
            logger.warning(
                "Listmonk rejected subscription (%s): %s",
                resp.status_code,
                resp.text[:200],
            )
        return SubscriptionResult(success=resp.is_success, status_code=resp.status_code)

    # ------------------------------------------------------------------
    # Nonce
    # ------------------------------------------------------------------

    async def fetch_nonce(self, base_url: str) -> Optional[str]:
        """
        Scrape the subscription form for its nonce.

        Returns None when Listmonk answers with an error, an empty page or a
        form without a nonce; Listmonk can then generate one server-side.

        Raises
        ------
        httpx.HTTPError
            On transport failure.
        """
        async with self._client() as client:
            resp = await client.get(f"{base_url.rstrip('/')}/subscription/form")

        if not resp.is_success:
            logger.error("Listmonk returned %s: %s", resp.status_code, resp.text[:200])
            return None

        html = resp.text
        if not html:
            logger.warning("Empty response from Listmonk")
            return None

        nonce = extract_nonce(html)
        if nonce is None:
            logger.warning("Nonce not found in Listmonk response. HTML snippet: %s", html[:500])
        return nonce

    # ------------------------------------------------------------------
    # Welcome Email
    # ------------------------------------------------------------------

    async def send_welcome_email(self, base_url: str, email: str, template_id: int) -> bool:
        """
        Send the transactional welcome email. Returns True on success.

        Never raises: failures are logged and reported as False.
        """
        if not self.can_send_transactional:
            return False

        payload = {
            "subscriber_emails": [email],
            "template_id": template_id,
            "data": {},
            "subscriber_mode": "fallback",
        }

        try:
            async with self._client() as client:
                resp = await client.post(
                    f"{base_url.rstrip('/')}/api/tx",
                    json=payload,
                    auth=(self.username, self.api_key),
                )
        except httpx.HTTPError as exc:
            logger.error("Error sending welcome email (%s): %s", type(exc).__name__, exc)
            return False

        if not resp.is_success:
            logger.error(
                "Failed to send welcome email (%s): %s [template_id=%s]",
                resp.status_code,
                resp.text[:500],
                template_id,
            )
            return False

        logger.info("Welcome email sent (template_id=%s)", template_id)
        return True
