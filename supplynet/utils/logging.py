"""
Logging setup.

Configures loguru sinks for the engine.
"""

from loguru import logger

from supplynet.config.settings import settings


def setup_logging(log_file: str | None = None) -> int:
    """
    Configure logger with file rotation.

    Returns:
        Sink id, usable with logger.remove()
    """
    sink_id = logger.add(
        log_file or settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        level=settings.log_level,
        encoding="utf-8",
    )

    logger.info("SupplyNet engine logging configured")
    return sink_id
