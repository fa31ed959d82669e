"""Centralized logging configuration using loguru.

Configures loguru once for the catalog-tinkerer process and provides the
helper that reports how a long-running operation ended.

Example:
    from catalog_tinkerer.logging import setup_logging

    # Initialize logging at application startup
    setup_logging(level="DEBUG")

    # Then use loguru's logger in any module
    from loguru import logger
    logger.info("Extraction started")

"""

import sys
from typing import Any

from loguru import logger

from .progress import OperationState, ProgressSnapshot


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: str | None = None,
) -> Any:
    """Configure loguru for the application.

    Logs go to stderr so command output on stdout stays clean.

    Args:
        level: Minimum log level to capture. One of: DEBUG, INFO, WARNING, ERROR, CRITICAL.
        json_output: If True, emit one JSON object per log record.
        log_file: Optional file path to also write logs to.

    Returns:
        The configured loguru logger instance.

    """
    logger.remove()

    console_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<magenta>{thread.name}</magenta> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
        "<level>{message}</level>"
    )

    if json_output:
        logger.add(sys.stderr, format="{message}", serialize=True, level=level)
    else:
        logger.add(sys.stderr, format=console_format, level=level, colorize=True)

    if log_file:
        # enqueue: decode and export threads log concurrently
        logger.add(
            log_file,
            format=console_format,
            level=level,
            rotation="10 MB",
            retention="7 days",
            enqueue=True,
        )

    return logger


def log_outcome(snapshot: ProgressSnapshot) -> None:
    """Log how an operation ended.

    Failures are errors; cancellations are informational only, since the
    user asked for them.

    Args:
        snapshot: Terminal snapshot of the operation's progress handle.

    """
    if snapshot.state is OperationState.FAILED:
        logger.error("{} failed: {}", snapshot.label, snapshot.error)
    elif snapshot.state is OperationState.CANCELLED:
        logger.info("{} cancelled after {} units", snapshot.label, snapshot.completed)
    elif snapshot.state is OperationState.COMPLETED:
        logger.info("{} completed ({} units)", snapshot.label, snapshot.completed)
    else:
        logger.debug("{} is still {}", snapshot.label, snapshot.state.value)
