# backend/app/main.py
"""
SkillSwap session API.

Wires the versioned session router, health and metrics endpoints, the error
envelope and the notification retry scheduler into one FastAPI application.
"""

import asyncio
from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from .core.config import is_running_tests, settings
from .core.constants import BRAND_NAME
from .database import init_db
from .errors import register_error_handlers
from .routes import health, metrics
from .routes.v1 import sessions as sessions_v1
from .services.notification_dispatcher import build_default_dispatcher
from .tasks.notification_retry import NotificationRetryScheduler

# Configure logging
logging.basicConfig(
    level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = "Session booking lifecycle for peer-to-peer skill exchange"
API_VERSION = "1.0.0"


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    # Startup
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")

    await asyncio.to_thread(init_db)

    scheduler = NotificationRetryScheduler(
        interval_seconds=settings.notification_retry_interval_seconds,
        max_attempts=settings.notification_max_attempts,
    )
    app.state.notification_retry_scheduler = scheduler
    app.state.session_dispatcher = build_default_dispatcher(retry_scheduler=scheduler)

    if settings.notification_retry_enabled and not is_running_tests():
        await scheduler.start()
    else:
        logger.info("Notification retry scheduler not started")

    yield

    # Shutdown
    logger.info(f"{BRAND_NAME} API shutting down...")
    await scheduler.stop()


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)
# Register unified error envelope handlers
register_error_handlers(app)

api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(sessions_v1.router, prefix="/sessions")

app.include_router(api_v1)
app.include_router(health.router)
app.include_router(metrics.router)

# Keep reference to the FastAPI instance for tests
fastapi_app = app

__all__ = ["app", "fastapi_app"]
