"""
Rate limiting for the unauthenticated code and login endpoints, keyed by client IP.

Usage in routers:
    from app.core.rate_limiting import limiter

    @router.post("/login")
    @limiter.limit(AUTH_RATE_LIMIT)
    def login(request: Request, ...):
        ...
"""
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.core.config import RATE_LIMIT_ENABLED

# in-memory counters, per process
limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)


def rate_limit_exceeded_handler(_request: Request, exc: RateLimitExceeded) -> Response:
    """429 with a Retry-After header; the window is at most 15 minutes."""
    return JSONResponse(
        status_code=429,
        content={"error": "Too many attempts, please try again later", "detail": f"Rate limit exceeded: {exc.detail}"},
        headers={"Retry-After": str(15 * 60)},
    )
