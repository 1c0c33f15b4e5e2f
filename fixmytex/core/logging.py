"""Structured logging configuration for FixMyTex.

All ``fixmytex.*`` loggers share one stdout handler installed on the package
logger, so records from the hotkey hook thread, timer threads and the action
loop end up in a single key=value stream tagged with the thread name.
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Iterator

PACKAGE_LOGGER = "fixmytex"


class StructuredFormatter(logging.Formatter):
    """key=value log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured output."""
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "thread": record.threadName,
            "module": record.module,
            "message": record.getMessage(),
        }

        # Run-scoped fields from log_with_context
        if hasattr(record, "run_id"):
            log_data["run_id"] = record.run_id
        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        line = " ".join(f"{k}={_render(v)}" for k, v in log_data.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _render(value: Any) -> str:
    text = str(value)
    if " " in text and not text.startswith(("[", "{")):
        return f'"{text}"'
    return text


def _configure_package_logger() -> logging.Logger:
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if package_logger.handlers:
        return package_logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    package_logger.addHandler(handler)
    package_logger.propagate = False

    # Set level based on environment
    try:
        from fixmytex.core.config import get_settings

        debug = get_settings().FIXMYTEX_ENV == "dev"
    except Exception:
        # Settings unreadable (bad env values); keep the default level
        debug = False
    package_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger that writes through the shared FixMyTex handler.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    _configure_package_logger()
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with additional context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Additional context fields (e.g., run_id, phase)
    """
    extra: dict[str, Any] = {}
    if "run_id" in kwargs:
        extra["run_id"] = kwargs.pop("run_id")
    extra["extra_data"] = kwargs
    logger.log(level, msg, extra=extra)


@contextmanager
def log_phase(logger: logging.Logger, phase: str, run_id: str, **fields: Any) -> Iterator[dict]:
    """
    Time one pipeline phase and log its outcome.

    The yielded dict collects extra fields to log on completion. Failures are
    logged with the elapsed time and re-raised.
    """
    started = time.perf_counter()
    details: dict[str, Any] = dict(fields)
    try:
        yield details
    except Exception as e:
        log_with_context(
            logger,
            logging.ERROR,
            f"Phase {phase} failed: {e}",
            run_id=run_id,
            phase=phase,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        raise
    log_with_context(
        logger,
        logging.INFO,
        f"Phase {phase} complete",
        run_id=run_id,
        phase=phase,
        duration_ms=int((time.perf_counter() - started) * 1000),
        **details,
    )
