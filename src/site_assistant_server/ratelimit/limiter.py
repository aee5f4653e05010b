"""
Fixed-Window Rate Limiter

Counts requests per client IP inside a fixed window. The first request (or
the first after the window has passed) opens a new window with count 1;
later requests increment the count until the configured maximum, after which
they are denied until the window resets.

The decision itself is a pure function (`decide`) shared by every backing
store, so the in-memory and Redis stores admit and deny identically. Stores
only provide an atomic read-modify-write per key.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Mapping, NamedTuple, Optional, Protocol, Tuple


class RateLimitEntry(NamedTuple):
    """Counter state for one key."""
    count: int
    reset_at: datetime


class RateLimitDecision(NamedTuple):
    """Outcome of a single rate-limit check."""
    allowed: bool
    remaining: int
    reset_at: datetime


EntryUpdate = Callable[
    [Optional[RateLimitEntry]],
    Tuple[RateLimitDecision, Optional[RateLimitEntry]],
]


class RateLimitStore(Protocol):
    """
    Storage backend for rate-limit counters.

    ``apply`` must read the entry for ``key``, pass it to ``update`` and
    persist the returned entry (if any) as one atomic step per key. A
    returned entry of None means "leave the stored value untouched".
    """

    async def apply(self, key: str, now: datetime, update: EntryUpdate) -> RateLimitDecision:
        ...


def decide(
    entry: Optional[RateLimitEntry],
    now: datetime,
    max_requests: int,
    window: timedelta,
) -> Tuple[RateLimitDecision, Optional[RateLimitEntry]]:
    """
    Apply one request to ``entry``.

    Returns
    -------
    Tuple[RateLimitDecision, Optional[RateLimitEntry]]
        The decision, and the entry to store (None when denied).
    """
    if entry is None or now > entry.reset_at:
        fresh = RateLimitEntry(count=1, reset_at=now + window)
        return RateLimitDecision(True, max(0, max_requests - 1), fresh.reset_at), fresh

    if entry.count >= max_requests:
        return RateLimitDecision(False, 0, entry.reset_at), None

    bumped = RateLimitEntry(count=entry.count + 1, reset_at=entry.reset_at)
    return RateLimitDecision(True, max_requests - bumped.count, bumped.reset_at), bumped


class FixedWindowRateLimiter:
    """
    Per-key fixed-window limiter over a pluggable store.
    """

    def __init__(
        self,
        store: RateLimitStore,
        max_requests: int,
        window: timedelta,
    ) -> None:
        """
        Parameters
        ----------
        store : RateLimitStore
            In-memory or Redis-backed counter storage.
        max_requests : int
            Requests allowed per key per window.
        window : timedelta
            Window length.
        """
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window <= timedelta(0):
            raise ValueError("window must be positive")

        self.store = store
        self.max_requests = max_requests
        self.window = window

    async def check(self, key: str, now: Optional[datetime] = None) -> RateLimitDecision:
        """
        Count one request for ``key`` and return whether it is allowed.
        """
        now = now or datetime.now(timezone.utc)
        return await self.store.apply(
            key,
            now,
            lambda entry: decide(entry, now, self.max_requests, self.window),
        )


# ---------------------------------------------------------------------
# Client Identification
# ---------------------------------------------------------------------

UNKNOWN_CLIENT = "unknown"


def client_ip(headers: Mapping[str, str]) -> str:
    """
    Resolve the client IP from proxy headers.

    Priority:
      1. CF-Connecting-IP
      2. First entry of X-Forwarded-For
      3. X-Real-IP
      4. "unknown"
    """
    cf_ip = (headers.get("cf-connecting-ip") or "").strip()
    if cf_ip:
        return cf_ip

    forwarded_for = headers.get("x-forwarded-for") or ""
    first = forwarded_for.split(",")[0].strip()
    if first:
        return first

    real_ip = (headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip

    return UNKNOWN_CLIENT
