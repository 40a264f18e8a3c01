"""Response hardening headers.

Learn: The API serves JSON only, never HTML, so the browser-facing
headers are about making sure nothing tries to render, frame or cache it:

- X-Content-Type-Options / X-Frame-Options: no sniffing, no framing
- Referrer-Policy: don't leak full URLs (they can contain todo ids)
- Cache-Control: no-store under /api/, since bodies carry tokens and
  per-user data
- Strict-Transport-Security: only when the request came in over HTTPS
  (behind a TLS-terminating proxy that means uvicorn --proxy-headers)

A handler that sets one of these itself wins; we only fill in gaps.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

BASE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}
HSTS_VALUE = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Fill in hardening headers the handler didn't set."""

    def __init__(self, app, no_store_prefix: str = "/api/"):
        super().__init__(app)
        self.no_store_prefix = no_store_prefix

    def headers_for(self, request: Request) -> dict[str, str]:
        headers = dict(BASE_HEADERS)
        if request.url.path.startswith(self.no_store_prefix):
            headers["Cache-Control"] = "no-store"
        if request.url.scheme == "https":
            headers["Strict-Transport-Security"] = HSTS_VALUE
        return headers

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        for name, value in self.headers_for(request).items():
            response.headers.setdefault(name, value)
        return response
