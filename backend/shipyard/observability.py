"""Logfire observability initialization and instrumentation."""

import logging

import logfire

from shipyard import __version__
from shipyard.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings) -> bool:
    """
    Configure Logfire once at process startup.

    Bridges stdlib logging into Logfire and instruments httpx (the
    verification script's client). The FastAPI app is instrumented
    separately by `instrument_app` when the service is served.

    Returns:
        True when Logfire was configured, False when the token is missing
        or configuration failed. Commands keep running either way.
    """
    if not settings.logfire_token:
        logger.debug("Logfire token not set - observability disabled")
        return False

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="shipyard",
            service_version=__version__,
        )
        logfire.instrument_httpx()
        logging.getLogger().addHandler(logfire.LogfireLoggingHandler())
        logger.info("Logfire tracking initialized")
        return True
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
        return False


def instrument_app(app) -> None:
    try:
        logfire.instrument_fastapi(app)
    except Exception as e:
        logger.warning(f"FastAPI instrumentation skipped: {e}")
