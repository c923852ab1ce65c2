"""Rate limiting middleware using slowapi"""

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

from app.core.config import settings

def get_rate_limit_key(request: Request) -> str:
    """Rate limit key based on the caller's IP"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else "unknown"

    return f"ip:{ip}"

# Create limiter instance
limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)

# Custom rate limit exceeded handler
async def custom_rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "error_code": "RATE_LIMITED",
            "message": f"Too many requests. {exc.detail}"
        }
    )

# Tighter limits for endpoints that move points
mutation_limiter = limiter.shared_limit("30/minute", scope="mutation")
referral_limiter = limiter.shared_limit("10/minute", scope="referral")
