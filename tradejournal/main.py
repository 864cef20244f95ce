"""Entry point — starts the Trade Journal API."""

import sys

import uvicorn
from loguru import logger

from tradejournal.config import settings


def configure_logging():
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=settings.log_level,
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="10 MB",
            retention="7 days",
            level="DEBUG",
        )


def main():
    configure_logging()

    logger.info("=" * 60)
    logger.info("  Trade Journal — import, rule checks and performance metrics")
    logger.info("=" * 60)
    logger.info(f"API: http://{settings.api_host}:{settings.api_port}")
    logger.info(f"Database: {settings.db_path}")

    from tradejournal.api.main import create_app

    app = create_app()
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
