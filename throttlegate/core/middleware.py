"""HTTP middleware for request ID propagation and correlation.

Every request/response pair carries a correlation id so throttling decisions
in the logs can be tied back to the response a client received.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from throttlegate.core.config import settings
from throttlegate.core.logging import clear_request_id, set_request_id
from throttlegate.core.rate_limit import apply_rate_limit_headers


async def request_id_middleware(request: Request, call_next) -> Response:
    """Attach a request id to the logging context and the response.

    Reuses the incoming id header (``LOG_REQUEST_ID_HEADER``, default
    ``X-Request-ID``) when the client provides one, otherwise generates a
    UUID4. The id is cleared from the context once the response is built.

    Rate limit headers recorded by an admitting limiter are copied onto the
    response too, which covers responses the route never built itself
    (request validation errors, handled exceptions).

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with the request id and
            ``X-Request-Duration-ms`` headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    apply_rate_limit_headers(request, response)
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{(time.perf_counter() - start) * 1000:.2f}")
    return response
