"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any ``throttlegate`` import so the
settings object is built for tests and no .env file is loaded.
"""

import os

# Must happen before settings are imported
os.environ["TESTING"] = "true"
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")

from typing import Callable, Iterator

import pytest
from fastapi import Request

from throttlegate.core.rate_limit import clear_store


@pytest.fixture(autouse=True)
def _isolated_rate_limit_store() -> Iterator[None]:
    """Start every test with an empty shared store."""
    clear_store()
    yield
    clear_store()


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Build a bare Starlette request for calling limiters without HTTP."""

    def _make(
        *,
        path: str = "/test",
        client: tuple[str, int] | None = ("127.0.0.1", 50000),
        headers: dict[str, str] | None = None,
        body: bytes = b"",
    ) -> Request:
        scope = {
            "type": "http",
            "method": "POST",
            "path": path,
            "raw_path": path.encode(),
            "query_string": b"",
            "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
            "client": client,
            "server": ("testserver", 80),
            "scheme": "http",
        }

        async def receive() -> dict:
            return {"type": "http.request", "body": body, "more_body": False}

        return Request(scope, receive)

    return _make
