"""Rate limit storage adapters.

This package provides a small abstraction layer so the service can start with
an in-memory store and later migrate to a shared store without changing the
API layer.
"""

from throttlegate.adapters.rate_limit.base import (
    AbstractRateLimitStore,
    RateLimitEntry,
    RateLimitResult,
)
from throttlegate.adapters.rate_limit.in_memory import InMemoryRateLimitStore

__all__ = [
    "AbstractRateLimitStore",
    "InMemoryRateLimitStore",
    "RateLimitEntry",
    "RateLimitResult",
]
