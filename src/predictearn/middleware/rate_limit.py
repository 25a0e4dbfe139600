"""Per-IP fixed-window rate limiting backed by Redis."""

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from predictearn.redis_client import count_in_window

_EXEMPT_PATHS = frozenset({"/health", "/ready"})
# Storefront deliveries must never be throttled: a 429 would trigger sender retries.
_EXEMPT_PREFIXES = ("/api/v1/webhooks/",)


def is_exempt(path: str) -> bool:
    return path in _EXEMPT_PATHS or path.startswith(_EXEMPT_PREFIXES)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Answers 429 once a client exceeds ``requests_per_window`` in the current window."""

    def __init__(self, app: ASGIApp, requests_per_window: int = 100, window_seconds: int = 60) -> None:
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if is_exempt(request.url.path):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        window = int(time.time()) // self.window_seconds
        try:
            count = await count_in_window(f"ratelimit:{client_ip}:{window}", self.window_seconds)
        except RuntimeError:
            # Redis disabled
            return await call_next(request)

        limit_headers = {"X-RateLimit-Limit": str(self.requests_per_window)}
        if count > self.requests_per_window:
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={**limit_headers, "Retry-After": str(self.window_seconds), "X-RateLimit-Remaining": "0"},
            )

        response = await call_next(request)
        response.headers.update(limit_headers)
        response.headers["X-RateLimit-Remaining"] = str(self.requests_per_window - count)
        return response
