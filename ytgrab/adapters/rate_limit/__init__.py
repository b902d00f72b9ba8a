"""Per-route request limiters.

These sit in front of the abuse governor and cap the raw request rate of
each client per route group, independent of any block state.
"""

from ytgrab.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from ytgrab.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter

__all__ = ["AbstractRateLimiter", "InMemoryFixedWindowRateLimiter", "RateLimitResult"]
