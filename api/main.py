"""
Discount Wheel API - Main Application.

FastAPI application with CORS enabled for frontend communication.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.dependencies import get_settings
from api.error_handlers import register_exception_handlers
from config import Settings


def setup_logging(settings: Settings) -> None:
    """
    Clean production logging:
    - app logs: LOG_LEVEL (DEBUG in dev)
    - HTTP client logs: WARNING+ (no request spam from the Supabase client)
    """
    app_level = logging.DEBUG if settings.is_dev else getattr(logging, settings.log_level, logging.INFO)

    logging.basicConfig(
        level=app_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    for name in ("httpx", "httpcore", "hpack", "postgrest"):
        logging.getLogger(name).setLevel(logging.WARNING)


settings = get_settings()
setup_logging(settings)

# Create FastAPI application
app = FastAPI(
    title="Discount Wheel API",
    description="REST API for the discount wheel: spins, spin limits and discount code redemption",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS - Allow all origins for development
# TODO: Restrict origins in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for demo
    allow_credentials=True,
    allow_methods=["*"],  # Allow all HTTP methods
    allow_headers=["*"],  # Allow all headers
)

register_exception_handlers(app)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "discount-wheel-api",
        "wheelEnabled": settings.wheel_enabled,
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Discount Wheel API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import discounts, wheel  # noqa: E402

app.include_router(wheel.router, prefix="/api/v1", tags=["Wheel"])
app.include_router(discounts.router, prefix="/api/v1", tags=["Discounts"])
