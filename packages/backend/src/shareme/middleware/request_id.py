"""Request correlation and access logging.

Learn: A caller may send its own X-Request-ID so a trace spans several
services. The value is only trusted when it is short and made of plain
token characters; anything else is replaced with a fresh UUID, since it
ends up in every log line for the request (auth rejections included).

One "http.request" event is logged per request with its status and
duration. Unhandled exceptions are logged by the error handlers, not
here.
"""

import re
import time
import uuid
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
_ACCEPTED_ID = re.compile(r"[A-Za-z0-9._:\-]{1,128}")

logger = structlog.get_logger()


def request_id_for(incoming: Optional[str]) -> str:
    if incoming and _ACCEPTED_ID.fullmatch(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID, echo it back, log the outcome."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request_id_for(request.headers.get(REQUEST_ID_HEADER))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=request.method, path=request.url.path
        )

        started = time.perf_counter()
        response: Response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "http.request",
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response
