"""Logging infrastructure with measured-path tracking and optional syslog.

This module configures the root logger for the folder-size command:
- Console output on stderr so that reports written to stdout stay
  machine-readable
- Optional syslog integration for scheduled runs
- The path currently being measured is held in a ContextVar and stamped on
  every record, so a warning raised deep inside a strategy still names the
  directory it belongs to
"""

import contextvars
import logging
import logging.handlers
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Final, TextIO, override

# Path being measured in the current context, None between paths
measured_path_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "measured_path",
    default=None,
)

# Log format constants
DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - [%(measured_path)s] - %(message)s"

SYSLOG_LOG_FORMAT: Final[str] = "folder-size[%(process)d]: %(levelname)s - [%(measured_path)s] - %(name)s - %(message)s"

DEFAULT_SYSLOG_ADDRESS: Final[str] = "/dev/log"


class MeasuredPathFilter(logging.Filter):
    """Logging filter that adds the measured path to log records.

    Records emitted outside of a measurement get ``-`` so the format string
    never fails.
    """

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        """Add measured path to log record from ContextVar.

        Args:
            record: Log record to enhance

        Returns:
            True to allow the record to be logged
        """
        measured_path = measured_path_var.get()
        record.measured_path = measured_path if measured_path is not None else "-"
        return True


def configure_logging(
    *,
    log_level: str = "WARNING",
    enable_syslog: bool = False,
    syslog_address: str = DEFAULT_SYSLOG_ADDRESS,
    enable_console: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_syslog: Enable syslog handler
        syslog_address: Syslog socket address (default: /dev/log)
        enable_console: Enable console output handler
        stream: Console stream (default: sys.stderr)

    Example:
        >>> configure_logging(log_level="INFO")
        >>> logger = logging.getLogger(__name__)
        >>> with measured_path(Path("/data")):
        ...     logger.warning("Path skipped")
    """
    root_logger = logging.getLogger()

    level = getattr(logging, log_level.upper(), logging.WARNING)
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    path_filter = MeasuredPathFilter()

    if enable_syslog:
        try:
            syslog_handler = logging.handlers.SysLogHandler(
                address=syslog_address,
                facility=logging.handlers.SysLogHandler.LOG_USER,
            )
            syslog_handler.setFormatter(logging.Formatter(SYSLOG_LOG_FORMAT))
            syslog_handler.addFilter(path_filter)
            root_logger.addHandler(syslog_handler)

        except OSError as exc:
            # Syslog not available (e.g., containers, non-Linux hosts)
            print(
                f"Warning: Could not connect to syslog at {syslog_address}: {exc}",
                file=sys.stderr,
            )

    if enable_console:
        console_handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        console_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        console_handler.addFilter(path_filter)
        root_logger.addHandler(console_handler)


def get_measured_path() -> str | None:
    """Get the path currently being measured, if any."""
    return measured_path_var.get()


@contextmanager
def measured_path(path: Path) -> Iterator[None]:
    """Mark path as the one being measured for the duration of the block.

    Example:
        >>> with measured_path(Path("/data")):
        ...     get_measured_path()
        '/data'
    """
    token = measured_path_var.set(str(path))
    try:
        yield
    finally:
        measured_path_var.reset(token)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    *,
    extra: Mapping[str, object] | None = None,
) -> None:
    """Log a message with additional context fields.

    The measured path, when set, is added to the extra fields so that
    structured handlers receive it without relying on the filter.

    Args:
        logger: Logger instance to use
        level: Logging level (e.g., logging.INFO)
        message: Log message
        extra: Additional context fields to include in log
    """
    context = dict(extra) if extra else {}

    current = get_measured_path()
    if current and "path" not in context:
        context["path"] = current

    logger.log(level, message, extra=context)
