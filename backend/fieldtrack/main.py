"""
fieldtrack service: lifecycle control + location feed for one engineer session.

Run with:
    uvicorn fieldtrack.main:create_app --factory --port 8085
or:
    python -m fieldtrack.main
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .jobs.engine import JobLifecycleEngine
from .routes import health, jobs
from .services.base import JobBackend
from .services.http_backend import HttpJobBackend
from .settings import EngineSettings, configure_logging
from .tracking.reporter import LocationReporter
from .tracking.sources import FeedLocationSource, LocationSource

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8085


def create_app(
    settings: Optional[EngineSettings] = None,
    backend: Optional[JobBackend] = None,
    source: Optional[LocationSource] = None,
) -> FastAPI:
    """
    Build the service.

    Args:
        settings: Configuration. Read from the environment when omitted.
        backend: Backend collaborator. HTTP client from settings when omitted.
        source: Location source. A FeedLocationSource when omitted.

    Returns:
        Configured FastAPI app with the engine on app.state
    """
    settings = settings or EngineSettings.from_env()
    configure_logging(settings)

    backend = backend or HttpJobBackend.from_settings(settings)
    source = source or FeedLocationSource()
    reporter = LocationReporter(backend, source, settings.tracking)
    engine = JobLifecycleEngine(backend, reporter, engineer_id=settings.engineer_id)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # No location report may outlive the service
        engine.shutdown()
        close = getattr(backend, "close", None)
        if close is not None:
            close()
        logger.info("fieldtrack service stopped")

    app = FastAPI(title="fieldtrack", version="0.1.0", lifespan=lifespan)

    app.state.settings = settings
    app.state.backend = backend
    app.state.location_source = source
    app.state.lifecycle_engine = engine

    app.include_router(health.router)
    app.include_router(jobs.router)

    @app.get("/")
    def root():
        return {"service": "fieldtrack", "status": "running"}

    return app


def run_server(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    """
    Run the service with uvicorn.

    Args:
        host: Host to bind to
        port: Port to listen on
    """
    import uvicorn

    logger.info(f"Starting fieldtrack service on {host}:{port}")
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    run_server()
