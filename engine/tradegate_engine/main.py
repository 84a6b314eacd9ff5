"""
TradeGate Engine - FastAPI Application

Order intake boundary for the risk gate and execution coordinator.
"""

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import Depends, FastAPI, Query
from pydantic import BaseModel

from tradegate_engine import __version__
from tradegate_engine.api.order_routes import close_service
from tradegate_engine.api.order_routes import router as order_router
from tradegate_engine.config import (
    AppEnvironment,
    Settings,
    get_settings,
    get_settings_dep,
    validate_startup,
)
from tradegate_engine.logging import (
    get_in_memory_logs,
    get_logger,
    setup_logging,
)

# Setup logging (JSON lines in production)
setup_logging(
    level=get_settings().log_level,
    json_output=get_settings().env == AppEnvironment.PRODUCTION,
)
logger = get_logger(__name__)


# =============================================================================
# Response Models
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    time: str
    uptime_seconds: float


class ConfigResponse(BaseModel):
    """Configuration response (redacted)."""

    mode: str
    effective_mode: str
    env: str
    data_dir: str
    broker_configured: bool


# =============================================================================
# Application State
# =============================================================================


class AppState:
    """Application state container."""

    def __init__(self) -> None:
        self.start_time: datetime = datetime.now(UTC)


state = AppState()


# =============================================================================
# Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    # Startup
    logger.info(
        "Starting TradeGate Engine v%s in %s mode (effective %s)",
        __version__,
        settings.mode.value,
        settings.effective_mode.value,
    )
    logger.info("Data directory: %s", settings.data_dir)
    logger.info("Server: http://%s:%d", settings.host, settings.port)

    # Fatal in production, downgrade to simulated fills elsewhere
    validate_startup(settings, strict=settings.env == AppEnvironment.PRODUCTION)

    yield

    # Shutdown
    logger.info("Shutting down TradeGate Engine")
    await close_service()


# =============================================================================
# FastAPI Application
# =============================================================================


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(
        title="TradeGate Engine",
        description="Pre-trade risk gate and order execution coordinator",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(order_router)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """
        Health check endpoint.

        Returns current status, version, and uptime.
        """
        now = datetime.now(UTC)
        return HealthResponse(
            status="healthy",
            version=__version__,
            time=now.isoformat(),
            uptime_seconds=(now - state.start_time).total_seconds(),
        )

    @app.get("/config", response_model=ConfigResponse)
    async def config(settings: Settings = Depends(get_settings_dep)) -> ConfigResponse:
        """Get current configuration (redacted)."""
        return ConfigResponse(
            mode=settings.mode.value,
            effective_mode=settings.effective_mode.value,
            env=settings.env.value,
            data_dir=str(settings.data_dir),
            broker_configured=settings.has_broker_credentials,
        )

    @app.get("/logs")
    async def logs(
        level: str = Query(default="INFO"),
        limit: int = Query(default=50, ge=1, le=1000),
    ) -> list[dict[str, Any]]:
        """Recent log records kept in memory, newest last."""
        return get_in_memory_logs(level=level, limit=limit)

    return app


app = create_app()


def main() -> None:
    """Run the server with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "tradegate_engine.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
