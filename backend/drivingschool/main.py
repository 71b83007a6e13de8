# backend/drivingschool/main.py
"""
FastAPI application for the driving school scheduling backend.

Mounts the versioned calendar API under /api/v1/calendar and the public
Prometheus endpoint under /metrics.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from .core.config import settings
from .errors import register_error_handlers
from .routes import prometheus
from .routes.v1 import calendar as calendar_v1

API_TITLE = "Driving School Scheduling API"
API_VERSION = "1.0.0"

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"{API_TITLE} starting up...")
    logger.info(f"Environment: {settings.environment}, school timezone: {settings.school_timezone}")
    yield
    logger.info(f"{API_TITLE} shutting down...")


fastapi_app = FastAPI(
    title=API_TITLE,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)

# Register unified error envelope handlers
register_error_handlers(fastapi_app)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(calendar_v1.router, prefix="/calendar")

fastapi_app.include_router(api_v1)
fastapi_app.include_router(prometheus.router)

app = fastapi_app
