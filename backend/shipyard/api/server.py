"""FastAPI demo service answering /name and /version with static text."""

import logging

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from shipyard import __version__
from shipyard.config import AppConfig, Settings, get_settings
from shipyard.observability import instrument_app

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the app with its route table frozen from settings."""
    app_config: AppConfig = (settings or get_settings()).app
    developer_name = app_config.developer_name
    version = app_config.version

    app = FastAPI(
        title="Shipyard Demo Service",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.get("/name", response_class=PlainTextResponse)
    async def get_name() -> str:
        return developer_name

    @app.get("/version", response_class=PlainTextResponse)
    async def get_version() -> str:
        return version

    logger.info(f"Routes ready: /name -> {developer_name!r}, /version -> {version!r}")
    return app


def serve(
    settings: Settings,
    host: str | None = None,
    port: int | None = None,
    instrument: bool = False,
) -> None:
    """Run the service under uvicorn (blocking)."""
    import uvicorn

    app = create_app(settings)
    if instrument:
        instrument_app(app)

    uvicorn.run(
        app,
        host=host or settings.app.host,
        port=port or settings.app.port,
        log_level="info",
    )
