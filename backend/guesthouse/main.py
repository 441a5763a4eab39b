"""
Guest House Booking API - Main Application Entry Point

- Public booking form with document uploads and room availability checks
- Admin actions over bookings and the landing-page gallery
- Telegram alerts for new bookings with approve/reject buttons
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from guesthouse.api.errors import setup_exception_handlers
from guesthouse.api.middleware import RequestLoggingMiddleware
from guesthouse.api.router import api_router
from guesthouse.api.routes.site import uploads_router
from guesthouse.core.config import get_settings
from guesthouse.core.logging import get_logger, setup_logging
from guesthouse.core.metrics import metrics_endpoint
from guesthouse.db.session import AsyncSessionLocal
from guesthouse.services.booking_service import sync_rooms
from guesthouse.services.cache_service import close_redis, get_cache_stats, get_redis
from guesthouse.services.upload_service import upload_dir

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    upload_dir(settings)

    async with AsyncSessionLocal() as session:
        await sync_rooms(session, settings.ROOM_COUNT)
        await session.commit()

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    if not settings.TELEGRAM_BOT_TOKEN:
        logger.warning("telegram_disabled", message="Booking alerts will not be sent")

    yield

    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Guest house booking API with availability-safe reservations",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

setup_exception_handlers(app)

app.include_router(api_router)
app.include_router(uploads_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()
