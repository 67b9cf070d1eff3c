"""Loguru setup for the scheduling engine and the processes hosting it.

Engine modules log with keyword context (``student_id``, ``session_id``,
counts), so both sinks print ``{extra}``. APScheduler, which drives the undo
countdown, logs through the standard library; its records are forwarded into
loguru so they land in the same sinks.
"""

import logging
import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level> {extra}"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} - {message} {extra}"

# stdlib logger name -> minimum level forwarded; the countdown job fires every second
FORWARDED_LOGGERS = {"apscheduler": "WARNING"}


class _LoguruForwarder(logging.Handler):
    """Re-emit standard-library records through loguru, tagged with their origin."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(exception=record.exc_info).log(level, record.getMessage(), source=record.name)


def forward_stdlib_logging(loggers: dict[str, str] | None = None) -> None:
    """Route the given standard-library loggers into loguru."""
    for name, level in (loggers or FORWARDED_LOGGERS).items():
        std_logger = logging.getLogger(name)
        std_logger.handlers = [_LoguruForwarder()]
        std_logger.setLevel(level)
        std_logger.propagate = False


def setup_logger(
    level: str = "INFO",
    log_file: str | None = None,
    *,
    json_file: bool = False,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Configure loguru with console output and an optional rotating file.

    Args:
        level: Minimum level for every sink
        log_file: Path of the file sink; console only when None
        json_file: Write the file sink as one JSON record per line
        rotation: File rotation trigger (e.g. "10 MB", "1 day")
        retention: How long rotated files are kept (e.g. "7 days")
    """
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            format=FILE_FORMAT,
            serialize=json_file,
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            backtrace=True,
            diagnose=False,
            encoding="utf-8",
        )

    forward_stdlib_logging()
    logger.info("Logger initialized", level=level, log_file=log_file, json_file=json_file)
