"""Rate limit store interfaces.

Limiters depend on this abstraction (not the concrete implementation) so the
in-memory store can later be replaced by a shared backend with no changes to
the HTTP layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass


@dataclass
class RateLimitEntry:
    """Counter for one ``route:identity`` key.

    Attributes:
        count: Requests admitted in the current window.
        reset_time: UNIX epoch milliseconds at which the window ends.
    """

    count: int
    reset_time: int

    def is_expired(self, now_ms: int) -> bool:
        return now_ms > self.reset_time


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single limiter decision.

    Attributes:
        allowed: Whether the request is admitted.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_time: UNIX epoch milliseconds when the current window ends.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_time: int
    retry_after_seconds: int | None


class AbstractRateLimitStore(ABC):
    """Interface for keyed rate limit entry storage."""

    @abstractmethod
    def lock(self) -> AbstractContextManager:
        """Return a context manager guarding a read-modify-write sequence."""
        raise NotImplementedError

    @abstractmethod
    def get(self, key: str) -> RateLimitEntry | None:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, entry: RateLimitEntry) -> None:
        raise NotImplementedError

    @abstractmethod
    def sweep(self, now_ms: int) -> int:
        """Delete every entry whose window has ended.

        Args:
            now_ms: Current UNIX time in milliseconds.

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        """Remove all entries."""
        raise NotImplementedError

    @abstractmethod
    def snapshot(self) -> dict[str, RateLimitEntry]:
        """Return a copy of the raw key to entry mapping."""
        raise NotImplementedError

    def __len__(self) -> int:
        return len(self.snapshot())
