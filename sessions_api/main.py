"""
FastAPI Application Factory
===========================

Standalone service exposing the sessions route.

Routers:
    - <BASE_PATH>/  : Login (POST), who-am-i (GET), logout (DELETE)
    - /health       : Health check endpoint

Environment Variables:
    - SESSION_SECRET: Secret for signing session tokens (required)
    - SESSION_EXPOSE: Comma-separated user fields exposed (default: id,username)
    - DATABASE_URL: SQLAlchemy URL of the record store (default: in-memory)
    - TABLE: Record type holding users (default: User)
    - BASE_PATH: Mount path of the sessions route (default: /)
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Development:
        uvicorn sessions_api.main:create_app --factory --reload --port 8080

    Production:
        uvicorn sessions_api.main:create_app --factory --host 0.0.0.0 --port 8080 --workers 4
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from . import __version__
from .auth import SessionsApi, create_sessions_api
from .config import Settings, get_settings
from .models import HealthResponse

SERVICE_NAME = "sessions-api"

logger = logging.getLogger("sessions_api.main")


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup and release the record store's resources on shutdown."""
    sessions_api: SessionsApi = app.state.sessions_api
    logger.info(
        "Sessions API started",
        extra={
            "service": SERVICE_NAME,
            "version": __version__,
            "table": sessions_api.config.table,
            "cookie_name": sessions_api.config.cookie_name,
        }
    )

    yield

    close = getattr(sessions_api.store, "close", None)
    if callable(close):
        close()
    logger.info("Sessions API shutdown complete")


def create_app(
    settings: Optional[Settings] = None,
    sessions_api: Optional[SessionsApi] = None,
) -> FastAPI:
    """
    Application factory function.

    Args:
        settings: Environment settings (loaded with ``get_settings`` when omitted)
        sessions_api: Ready-made sessions API; built from ``settings`` when omitted

    Returns:
        FastAPI: Configured application instance
    """
    if sessions_api is None:
        settings = settings or get_settings()
        sessions_api = create_sessions_api(settings.to_config())
    setup_logging(settings.LOG_LEVEL if settings else "INFO")

    app = FastAPI(
        title="Sessions API",
        description="Username/password login with signed cookie sessions",
        version=__version__,
        lifespan=lifespan,
    )

    @app.get("/health", tags=["System"], response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        return HealthResponse(status="ok", service=SERVICE_NAME, version=__version__)

    sessions_api.mount(app)
    return app


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "sessions_api.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
