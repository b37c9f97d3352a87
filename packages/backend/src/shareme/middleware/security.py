"""Security headers middleware.

Learn: Every response gets a fixed set of hardening headers. Two more
depend on the request:

- Cache-Control: no-store when the request carried credentials, or hit
  the auth routes (tokens, user info, reset flows), so a shared cache
  never replays one user's data to another
- Strict-Transport-Security: only on HTTPS connections
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

HARDENING_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

HSTS_VALUE = "max-age=31536000; includeSubDomains"
SENSITIVE_PREFIX = "/api/auth/"


def _carries_secrets(request: Request) -> bool:
    return "authorization" in request.headers or request.url.path.startswith(SENSITIVE_PREFIX)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add hardening headers; forbid caching of credentialed responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        for name, value in HARDENING_HEADERS.items():
            response.headers[name] = value
        if _carries_secrets(request):
            response.headers["Cache-Control"] = "no-store"
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = HSTS_VALUE
        return response
