"""Fixed-window rate limiting for FastAPI routes.

A limiter is built from a :class:`RateLimitPolicy` and mounted as a route
dependency::

    @router.post("/register", dependencies=[Depends(rate_limiters.registration)])

Each request is counted under ``<route path>:<identity>`` in a shared store.
The first request opens a window of ``window_ms``; up to ``limit`` requests
are admitted in that window and the rest are answered with HTTP 429 until the
window ends. The window is never extended by later requests.

Every limited response carries ``X-RateLimit-Limit``,
``X-RateLimit-Remaining`` and ``X-RateLimit-Reset``; throttled responses also
carry ``Retry-After``. Headers for an admitted request are also kept on
``request.state`` so they reach error responses (422, 500) built after the
limiter ran; see :func:`apply_rate_limit_headers`.

State is per-process. Each worker process keeps its own store, so running N
workers allows up to N times ``limit`` requests per window.
"""

import inspect
import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Union

from fastapi import Request, Response

from throttlegate.adapters.rate_limit.base import (
    AbstractRateLimitStore,
    RateLimitEntry,
    RateLimitResult,
)
from throttlegate.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from throttlegate.core.config import AppSettings, settings
from throttlegate.core.errors import (
    RATE_LIMIT_CODE,
    RateLimitExceededError,
    ValidationAppError,
)
from throttlegate.core.logging import hash_identifier

logger = logging.getLogger(__name__)

KeyGenerator = Callable[[Request], Union[str, Awaitable[str]]]

DEFAULT_MESSAGE = "Rate limit exceeded. Please try again later."
UNKNOWN_IDENTITY = "unknown"

_store: AbstractRateLimitStore | None = None


def get_store() -> AbstractRateLimitStore:
    """Return the process-wide store shared by every limiter without its own."""

    global _store
    if _store is None:
        _store = InMemoryRateLimitStore()
    return _store


def clear_store() -> None:
    """Drop every counter in the shared store (test isolation / maintenance)."""

    get_store().clear()


def to_iso8601(epoch_ms: int) -> str:
    """Format epoch milliseconds as UTC ISO-8601, e.g. ``2024-01-01T00:00:00.000Z``."""

    seconds, millis = divmod(epoch_ms, 1000)
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(milliseconds=millis)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def ip_key_generator(request: Request) -> str:
    """Identify the caller by IP address.

    The first ``X-Forwarded-For`` hop is used only when
    ``APP_TRUST_FORWARDED_FOR`` is enabled; otherwise the transport peer
    address. Callers with no usable address share the ``"unknown"`` bucket.
    """

    if settings.app.trust_forwarded_for:
        first_hop = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_IDENTITY


async def email_key_generator(request: Request) -> str:
    """Identify the caller by the ``email`` field of a JSON body.

    Returns ``"email:<value>"`` so email keys never collide with IP keys on
    the same route. Any truthy value is used as-is, so ``{"email": 123}``
    keys as ``email:123``. Falls back to :func:`ip_key_generator` when the
    body is not a JSON object or has no email.
    """

    try:
        body = await request.json()
    except ValueError:
        body = None

    email = body.get("email") if isinstance(body, dict) else None
    if email:
        return f"email:{email}"
    return ip_key_generator(request)


@dataclass(frozen=True)
class RateLimitPolicy:
    """Immutable limiter configuration.

    Attributes:
        limit: Maximum admitted requests per window.
        window_ms: Window length in milliseconds.
        key_generator: Maps a request to the identity being limited.
        message: Message returned to throttled callers.

    Raises:
        ValidationAppError: If ``limit`` or ``window_ms`` is not a positive
            integer, or ``key_generator`` is not callable.
    """

    limit: int
    window_ms: int
    key_generator: KeyGenerator = ip_key_generator
    message: str = DEFAULT_MESSAGE

    def __post_init__(self) -> None:
        for name in ("limit", "window_ms"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValidationAppError(
                    code="invalid_rate_limit_policy",
                    message=f"{name} must be a positive integer",
                    details={"actual_value": value},
                )
        if not callable(self.key_generator):
            raise ValidationAppError(
                code="invalid_rate_limit_policy",
                message="key_generator must be callable",
            )


def build_rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Render the rate limit headers for a decision."""

    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": to_iso8601(result.reset_time),
    }
    if not result.allowed:
        headers["Retry-After"] = str(result.retry_after_seconds or 0)
    return headers


def apply_rate_limit_headers(request: Request, response: Response) -> Response:
    """Copy the headers of an admitted request onto ``response``.

    Headers the response already carries are left untouched, so a 429 built
    from :class:`RateLimitExceededError` keeps its own values.
    """

    headers = getattr(request.state, "rate_limit_headers", None) or {}
    for name, value in headers.items():
        response.headers.setdefault(name, value)
    return response


def _route_path(request: Request) -> str:
    # Matched route template (includes router prefixes); raw path when unrouted
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class RateLimiter:
    """FastAPI dependency enforcing one :class:`RateLimitPolicy`.

    Args:
        policy: Limits, identity extraction and throttle message.
        store: Entry store; the shared process-wide store when omitted.
        clock: Time source returning UNIX time in seconds.
        enabled: Optional switch consulted per request; when it returns
            False the request is admitted without being counted.
    """

    def __init__(
        self,
        policy: RateLimitPolicy,
        *,
        store: AbstractRateLimitStore | None = None,
        clock: Callable[[], float] = time.time,
        enabled: Callable[[], bool] | None = None,
    ) -> None:
        self.policy = policy
        self._store = store
        self._clock = clock
        self._enabled = enabled

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"RateLimiter(limit={self.policy.limit}, window_ms={self.policy.window_ms})"

    @property
    def store(self) -> AbstractRateLimitStore:
        return self._store if self._store is not None else get_store()

    def hit(self, route: str, identity: str) -> RateLimitResult:
        """Count one request for ``identity`` on ``route`` and decide on it.

        Expired entries are swept from the whole store first. A throttled
        request leaves its entry untouched, so the count stays at ``limit``
        until the window ends.
        """

        key = f"{route}:{identity}"
        limit = self.policy.limit
        now = int(self._clock() * 1000)
        store = self.store

        with store.lock():
            store.sweep(now)
            entry = store.get(key)

            if entry is None or entry.is_expired(now):
                entry = RateLimitEntry(count=1, reset_time=now + self.policy.window_ms)
                store.set(key, entry)
                return RateLimitResult(
                    allowed=True,
                    limit=limit,
                    remaining=limit - 1,
                    reset_time=entry.reset_time,
                    retry_after_seconds=None,
                )

            if entry.count >= limit:
                return RateLimitResult(
                    allowed=False,
                    limit=limit,
                    remaining=0,
                    reset_time=entry.reset_time,
                    retry_after_seconds=math.ceil((entry.reset_time - now) / 1000),
                )

            entry.count += 1
            store.set(key, entry)
            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=limit - entry.count,
                reset_time=entry.reset_time,
                retry_after_seconds=None,
            )

    async def resolve_identity(self, request: Request) -> str:
        """Run the policy's key generator; failures fall back to ``"unknown"``."""

        try:
            identity = self.policy.key_generator(request)
            if inspect.isawaitable(identity):
                identity = await identity
        except Exception:
            logger.warning(
                "rate_limit.key_generator_failed",
                exc_info=True,
                extra={"route": _route_path(request)},
            )
            return UNKNOWN_IDENTITY
        return str(identity) if identity else UNKNOWN_IDENTITY

    async def __call__(self, request: Request, response: Response) -> None:
        """Admit the request (setting headers) or raise RateLimitExceededError.

        Raises:
            RateLimitExceededError: Rendered as HTTP 429 by the registered
                exception handler.
        """

        if self._enabled is not None and not self._enabled():
            return

        identity = await self.resolve_identity(request)
        route = _route_path(request)
        result = self.hit(route, identity)
        headers = build_rate_limit_headers(result)
        log_fields = {
            "route": route,
            "key_hash": hash_identifier(f"{route}:{identity}"),
            "limit": result.limit,
            "remaining": result.remaining,
            "window_ms": self.policy.window_ms,
        }

        if result.allowed:
            logger.debug("rate_limit.allowed", extra=log_fields)
            request.state.rate_limit_headers = headers
            response.headers.update(headers)
            return

        logger.warning(
            "rate_limit.exceeded",
            extra={**log_fields, "retry_after_s": result.retry_after_seconds},
        )
        raise RateLimitExceededError(
            code=RATE_LIMIT_CODE,
            message=self.policy.message,
            retry_after=result.retry_after_seconds or 0,
            reset_time=headers["X-RateLimit-Reset"],
            headers=headers,
        )


def create_limiter(
    policy: RateLimitPolicy | None = None,
    *,
    store: AbstractRateLimitStore | None = None,
    clock: Callable[[], float] = time.time,
    enabled: Callable[[], bool] | None = None,
    **policy_fields,
) -> RateLimiter:
    """Build a limiter from a policy, or from policy fields.

    Usage:
        create_limiter(limit=3, window_ms=60_000)
        create_limiter(RateLimitPolicy(limit=3, window_ms=60_000, key_generator=email_key_generator))

    Raises:
        ValidationAppError: If the policy fields are invalid.
        TypeError: If both a policy and policy fields are given.
    """

    if policy is None:
        policy = RateLimitPolicy(**policy_fields)
    elif policy_fields:
        raise TypeError("Pass either a RateLimitPolicy or its fields, not both")
    return RateLimiter(policy, store=store, clock=clock, enabled=enabled)


@dataclass(frozen=True)
class PresetLimiters:
    """Limiters for the throttled intake endpoints."""

    registration: RateLimiter
    resend_verification: RateLimiter
    support: RateLimiter
    sales: RateLimiter


def build_preset_limiters(
    app_settings: AppSettings | None = None,
    *,
    store: AbstractRateLimitStore | None = None,
    clock: Callable[[], float] = time.time,
) -> PresetLimiters:
    """Build the preset limiters from configuration.

    Defaults: registration 5/hour per IP, verification resend 3/hour per
    email, support and sales 10/hour per IP each.
    """

    cfg = app_settings or settings.app
    window_ms = cfg.rate_limit_window_seconds * 1000

    def enabled() -> bool:
        return cfg.rate_limit_enabled

    def preset(limit: int, message: str, key_generator: KeyGenerator = ip_key_generator) -> RateLimiter:
        return create_limiter(
            RateLimitPolicy(
                limit=limit,
                window_ms=window_ms,
                key_generator=key_generator,
                message=message,
            ),
            store=store,
            clock=clock,
            enabled=enabled,
        )

    return PresetLimiters(
        registration=preset(
            cfg.registration_rate_limit,
            "Too many registration attempts. Please try again in an hour.",
        ),
        resend_verification=preset(
            cfg.resend_verification_rate_limit,
            "Too many verification email requests. Please try again in an hour.",
            key_generator=email_key_generator,
        ),
        support=preset(
            cfg.support_sales_rate_limit,
            "Too many support requests. Please try again in an hour.",
        ),
        sales=preset(
            cfg.support_sales_rate_limit,
            "Too many sales inquiries. Please try again in an hour.",
        ),
    )


rate_limiters = build_preset_limiters()
