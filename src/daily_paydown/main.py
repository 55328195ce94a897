"""Main module for the daily paydown service."""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from daily_paydown.container import Container, init_container
from daily_paydown.routers import (admin_router, devices_router,
                                   history_router, plaid_router,
                                   settings_router, today_router)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at process start."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    """Create tables and start the scheduler at startup; stop and close on shutdown."""
    container: Container = fastapi_app.state.container
    settings = container.settings()
    container.database().init()

    scheduler = container.scheduler() if settings.scheduler_enabled else None
    if scheduler is not None:
        scheduler.start()

    yield

    if scheduler is not None:
        await scheduler.stop()
    # Close provider resources (httpx clients)
    providers_to_close = [container.plaid_provider(), container.push_provider()]
    for provider in providers_to_close:
        if provider is None:
            continue
        try:
            await provider.close()
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Error closing provider %s: %s", type(provider).__name__, exc)
    container.database().dispose()


def create_app(container: Container | None = None) -> FastAPI:
    """Build the FastAPI app around a container (a fresh one by default)."""
    fastapi_app = FastAPI(
        title="Daily Paydown",
        description="Daily credit-card spend tracking and paydown reminders",
        version="0.1.0",
        lifespan=lifespan,
    )
    fastapi_app.state.container = container or init_container()

    fastapi_app.include_router(today_router)
    fastapi_app.include_router(history_router)
    fastapi_app.include_router(settings_router)
    fastapi_app.include_router(devices_router)
    fastapi_app.include_router(plaid_router)
    fastapi_app.include_router(admin_router)

    @fastapi_app.get("/")
    def health():
        """Return health check status."""
        return {"status": "ok"}

    return fastapi_app


def run():
    """Run the server (uvicorn). Entry point for `daily-paydown`."""
    container = init_container()
    configure_logging(container.settings().log_level)
    uvicorn.run(create_app(container), host="0.0.0.0", port=8000)
