import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Import models so every table is registered with Base before create_all
from . import models  # noqa: F401
from .config import RATE_LIMIT_ENABLED, RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW_SECONDS
from .database import Base, engine
from .domain.analytics.router import router as analytics_router
from .domain.catalog.router import router as catalog_router
from .domain.favorites.router import router as favorites_router
from .domain.onboarding.router import router as onboarding_router
from .domain.payments.router import router as payments_router
from .domain.payments.webhooks import router as stripe_webhooks_router
from .domain.reports.router import router as reports_router
from .domain.reviews.router import router as reviews_router
from .domain.salons.router import business_hours_router
from .domain.salons.router import router as salons_router
from .domain.users.router import router as users_router
from .errors import register_exception_handlers
from .rate_limiter import RateLimitMiddleware, get_redis_client
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("stripe").setLevel(logging.WARNING)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        get_redis_client()
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis unavailable - caching and rate limiting use in-process memory: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="SalonTime API", version="1.0.0", lifespan=lifespan)

register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise
    duration_ms = (time.time() - start_time) * 1000
    logger.info(f"{request.method} {request.url.path} - {response.status_code} ({duration_ms:.0f}ms)")
    return response


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"])
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")

if RATE_LIMIT_ENABLED:
    app.add_middleware(RateLimitMiddleware, limit=RATE_LIMIT_REQUESTS, window_seconds=RATE_LIMIT_WINDOW_SECONDS)
    logger.info(f"Rate limiting enabled: {RATE_LIMIT_REQUESTS} requests / {RATE_LIMIT_WINDOW_SECONDS}s")

# CORS Configuration
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(users_router)
app.include_router(onboarding_router)
app.include_router(salons_router)
app.include_router(business_hours_router)
app.include_router(catalog_router)
app.include_router(reviews_router)
app.include_router(reports_router)
app.include_router(favorites_router)
app.include_router(payments_router)
app.include_router(analytics_router)
app.include_router(stripe_webhooks_router)


@app.get("/")
def root():
    return {"message": "SalonTime API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    try:
        redis_client = get_redis_client()

        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000

        info = redis_client.info()
        return {
            "status": "healthy",
            "redis": {
                "connected": True,
                "response_time_ms": round(response_time, 2),
                "version": info.get("redis_version", "unknown"),
            },
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
