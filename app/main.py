"""Main FastAPI application with all middleware"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.core.config import settings
from app.core.database import init_db, close_db
from app.core.exceptions import LedgerUnavailableError, RewardsException, ServiceUnavailableException
from app.core.logging import setup_logging
from app.middleware.rate_limit import limiter, custom_rate_limit_handler

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    setup_logging()
    logger.info(f"Starting up {settings.APP_NAME}...")

    if settings.REWARDS_MOCK:
        logger.warning("REWARDS_MOCK is set: using the in-memory ledger store")
    else:
        await init_db()

    if not settings.discord_verification_configured:
        logger.warning("Discord bot token or guild id missing: membership checks are disabled")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}...")
    if not settings.REWARDS_MOCK:
        await close_db()

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Points ledger for wallet-identified users: social tasks, referrals and admin tooling",
    version=settings.APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, custom_rate_limit_handler)

@app.exception_handler(RewardsException)
async def rewards_exception_handler(request: Request, exc: RewardsException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code},
        headers=exc.headers,
    )

@app.exception_handler(LedgerUnavailableError)
async def ledger_unavailable_handler(request: Request, exc: LedgerUnavailableError):
    logger.error(f"Ledger unavailable on {request.method} {request.url.path}: {exc.detail}")
    return await rewards_exception_handler(
        request,
        ServiceUnavailableException("Rewards ledger is temporarily unavailable", "LEDGER_UNAVAILABLE"),
    )

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SlowAPIMiddleware)

# Include routers
from app.api.v1 import api_router
app.include_router(api_router, prefix="/api/v1")

# Health check
@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "mock": settings.REWARDS_MOCK,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

# Root endpoint
@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "docs": "/api/docs",
        "health": "/health"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=settings.WORKERS
    )
