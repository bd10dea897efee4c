"""Rate limiting middleware using slowapi.

Default limits:
- Global: 100 req/min per IP
- Write endpoints: 30 req/min (order creation/updates/deletes)
- Auth endpoints: 20 req/min
"""

from __future__ import annotations

import os
import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

logger = logging.getLogger("order_api.rate_limit")
security_logger = logging.getLogger("security")

# Only honour proxy headers when running behind a trusted reverse proxy
TRUST_PROXY = os.environ.get("TRUST_PROXY", "").lower() in ("1", "true")
RETRY_AFTER_SECONDS = 60


def get_client_ip(request: Request) -> str:
    """Client IP for rate-limit keys.

    X-Forwarded-For is only read when TRUST_PROXY is set, otherwise a
    client could pick its own key.
    """
    if TRUST_PROXY:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"


limiter = Limiter(
    key_func=get_client_ip,
    default_limits=["100/minute"],
    storage_uri="memory://",
)

# Usage: @rate_limit_write on mutating order endpoints
rate_limit_write = limiter.limit("30/minute")
rate_limit_auth = limiter.limit("20/minute")


def setup_rate_limiting(app):
    """Configure rate limiting on the FastAPI app."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)
    app.add_middleware(SlowAPIMiddleware)
    logger.info("Rate limiting enabled")


async def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Log the hit and answer 429 with Retry-After."""
    security_logger.warning({
        "event": "rate_limit_exceeded",
        "ip": get_client_ip(request),
        "path": request.url.path,
        "method": request.method,
        "limit": str(exc.detail),
    })

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": "Too many requests",
            "code": "RATE_LIMIT_EXCEEDED",
            "error": str(exc.detail),
        },
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)}
    )
