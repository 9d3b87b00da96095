"""Main entry point for the training API."""
import logging

import uvicorn

from woodpecker.config import settings
from woodpecker.logging_config import setup_logging
from woodpecker.monitoring import start_monitoring

logger = logging.getLogger(__name__)


def main() -> None:
    """Run the API server."""
    setup_logging("Starting Woodpecker v0.1.0 ...")

    if settings.monitoring.enabled:
        start_monitoring(settings.monitoring.port)
        logger.info(f"Metrics server listening on port {settings.monitoring.port}")

    uvicorn.run(
        "woodpecker.api.app:app",
        host=settings.api.host,
        port=settings.api.port,
        log_config=None,
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
