"""
DevEvent API - Main Application Entry Point

Event listing backend:
- Event creation from multipart forms, with the cover image pushed to S3
- Slug, date and time normalization before every write
- Bookings with a per-event unique email and an existence check on the event
- One shared database engine per process, connected lazily on first use
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from devevent.api.middleware import RequestLoggingMiddleware
from devevent.api.router import api_router
from devevent.core.config import get_settings
from devevent.core.errors import register_exception_handlers
from devevent.core.logging import get_logger, setup_logging
from devevent.core.metrics import metrics_endpoint
from devevent.db.connection import ConnectionManager
from devevent.services.cache_service import EventListCache

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

    yield

    await app.state.event_cache.close()
    await app.state.connection_manager.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Developer event listings with image upload and bookings",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Built once per process; handlers reach them through dependencies
app.state.connection_manager = ConnectionManager(settings)
app.state.event_cache = EventListCache(settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)
app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": app.state.connection_manager.state.value,
        "cache": await app.state.event_cache.stats(),
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
