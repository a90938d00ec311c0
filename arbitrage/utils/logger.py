"""
Logging configuration
"""
from loguru import logger
import sys
from arbitrage.config import get_settings


def setup_logger():
    """
    Configure stdout and file sinks for a standalone process.

    Not run on import. A host that embeds the core keeps its own loguru sinks
    or injects its own logger through get_logger().
    """
    settings = get_settings()
    logger.remove()  # Remove default handler

    # Console logging
    logger.add(
        sys.stdout,
        colorize=True,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[component]}</cyan> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=settings.log_level
    )

    if settings.log_to_file:
        logger.add(
            f"{settings.log_dir}/arbitrage_{{time:YYYY-MM-DD}}.log",
            rotation="00:00",
            retention="30 days",
            compression="zip",
            level="INFO"
        )

        # Error file
        logger.add(
            f"{settings.log_dir}/errors_{{time:YYYY-MM-DD}}.log",
            rotation="00:00",
            retention="90 days",
            level="ERROR"
        )

    logger.configure(extra={"component": "core"})
    return log


def get_logger(component: str, logger_override=None):
    """
    Logger for a core component.

    Hosts may pass their own leveled logger (anything with debug/info/warning/
    error/exception); otherwise the shared loguru logger is bound to the
    component name.
    """
    if logger_override is not None:
        return logger_override
    return log.bind(component=component)


log = logger.bind(component="core")
