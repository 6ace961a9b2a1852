"""In-memory rate limit store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: callers hold ``lock()`` around sweep, lookup and update.
"""

from __future__ import annotations

import threading
from dataclasses import replace

from throttlegate.adapters.rate_limit.base import AbstractRateLimitStore, RateLimitEntry


class InMemoryRateLimitStore(AbstractRateLimitStore):
    """Dictionary-backed store shared by every limiter in the process.

    Important:
        State lives in this process only. If the API runs with multiple
        workers (e.g., multiple Uvicorn/Gunicorn workers), each worker keeps
        its own independent counters.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries: dict[str, RateLimitEntry] = {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryRateLimitStore(size={len(self._entries)})"

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def lock(self) -> threading.RLock:
        return self._lock

    def get(self, key: str) -> RateLimitEntry | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, entry: RateLimitEntry) -> None:
        with self._lock:
            self._entries[key] = entry

    def sweep(self, now_ms: int) -> int:
        with self._lock:
            expired_keys = [k for k, entry in self._entries.items() if entry.is_expired(now_ms)]
            for key in expired_keys:
                del self._entries[key]
            return len(expired_keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def snapshot(self) -> dict[str, RateLimitEntry]:
        with self._lock:
            return {key: replace(entry) for key, entry in self._entries.items()}
