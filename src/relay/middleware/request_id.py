"""Request ID middleware for request tracing."""

import re
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"

# Caller-supplied IDs are accepted if short and free of header-unsafe characters
_REQUEST_ID_RE = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def is_valid_request_id(value: str | None) -> bool:
    """Check whether a caller-supplied request ID can be reused."""
    return bool(value) and _REQUEST_ID_RE.fullmatch(value) is not None


def generate_request_id() -> str:
    """Generate a new request ID."""
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to ``request.state`` and the ``X-Request-ID`` response header.

    A valid incoming ``X-Request-ID`` is reused so that callers can correlate
    relay logs with their own; otherwise a UUID4 is generated.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER)
        if not is_valid_request_id(request_id):
            request_id = generate_request_id()

        request.state.request_id = request_id

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
