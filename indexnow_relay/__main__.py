"""Запуск ретранслятора: python -m indexnow_relay."""

import sys

import uvicorn

from .config import get_settings
from .core.exceptions import ConfigurationError
from .utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


def main() -> None:
    try:
        settings = get_settings()
    except ConfigurationError as e:
        configure_logging()
        logger.error("Invalid configuration, refusing to start", error=e.message)
        sys.exit(1)

    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    logger.info("Starting webhook server", host=settings.HOST, port=settings.PORT)

    uvicorn.run(
        "indexnow_relay.webhook.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
        timeout_keep_alive=5
    )


if __name__ == "__main__":
    main()
