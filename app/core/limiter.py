# app/core/limiter.py
import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.core.config import settings

logger = logging.getLogger(__name__)

# Per client address; applied to login, reporting and /health
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage,
    enabled=settings.rate_limit_enabled,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Answer throttled requests with the usual failed-action body."""
    logger.warning(
        f"Rate limit {exc.detail} hit by {get_remote_address(request)} "
        f"on {request.url.path}"
    )
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": "Too many requests. Please slow down and try again shortly.",
            "error": "rate_limited",
            "data": {"limit": str(exc.detail)},
        },
    )
