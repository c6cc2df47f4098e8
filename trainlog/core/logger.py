"""Logger configuration for trainlog.

Defaults come from settings (``LOG_LEVEL``, ``LOG_FILE``, ``LOG_JSON``) so the
CLI and any embedding service configure loguru the same way; explicit
arguments override them.
"""

import sys
from pathlib import Path

from loguru import logger

from trainlog.config.settings import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level> {extra}"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message} {extra}"


def setup_logger(
    level: str | None = None,
    log_file: str | None = None,
    json_logs: bool | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Configure loguru with console and optional file output.

    Args:
        level: Logging level; defaults to ``settings.log_level``
        log_file: Log file path; defaults to ``settings.log_file`` (console only when unset)
        json_logs: Emit one JSON object per record; defaults to ``settings.log_json``
        rotation: Log rotation size (e.g., "10 MB", "1 day")
        retention: Log retention period (e.g., "7 days", "1 month")
    """
    level = level or settings.log_level
    log_file = log_file or settings.log_file
    json_logs = settings.log_json if json_logs is None else json_logs

    logger.remove()

    if json_logs:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path,
            format=FILE_FORMAT,
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            serialize=json_logs,
            backtrace=True,
            diagnose=True,
        )

    logger.info("Logger initialized", level=level, log_file=log_file, json_logs=json_logs)
