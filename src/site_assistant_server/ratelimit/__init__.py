"""
Rate Limiting Package

Fixed-window per-IP limiting with in-memory and Redis counter stores.
"""

from .limiter import (
    FixedWindowRateLimiter,
    RateLimitDecision,
    RateLimitEntry,
    client_ip,
    decide,
)
from .stores import InMemoryRateLimitStore, RedisRateLimitStore

__all__ = [
    "FixedWindowRateLimiter",
    "RateLimitDecision",
    "RateLimitEntry",
    "client_ip",
    "decide",
    "InMemoryRateLimitStore",
    "RedisRateLimitStore",
]
