"""
Logging configuration for ccontact_sync.

Console output goes to stderr (colored on a terminal) at the level chosen by
the CLI or the environment; a dated log file under the configuration
directory always receives DEBUG. Credentials that end up in messages, such
as the api_key query parameter or a bearer token, are masked by every
handler.

Environment:
    CCONTACT_SYNC_LOG_LEVEL  DEBUG, INFO, WARNING, ERROR or CRITICAL
    CCONTACT_SYNC_DEBUG      1/true/yes forces DEBUG
    CCONTACT_SYNC_LOG_FILE   explicit log file, or "none" to disable it
"""

import logging
import os
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from ccontact_sync.utils.paths import resolve_config_dir

LOGGER_NAME = "ccontact_sync"

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
VERBOSE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_PREFIX = "ccontact_sync_"
LOG_DIR_NAME = "logs"

ENV_LOG_LEVEL = "CCONTACT_SYNC_LOG_LEVEL"
ENV_DEBUG = "CCONTACT_SYNC_DEBUG"
ENV_LOG_FILE = "CCONTACT_SYNC_LOG_FILE"

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_SECRET_PATTERNS = (
    re.compile(r"(api_key=)[^&\s]+"),
    re.compile(r"(Bearer\s+)[^\s'\"]+"),
)


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name when stderr is a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        use_colors: bool = True,
    ):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors and _stderr_supports_color()

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname)
        if not self.use_colors or color is None:
            return super().format(record)

        # Copy so the file handler still sees the plain level name
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


class RedactingFilter(logging.Filter):
    """Masks API keys and bearer tokens in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def redact_secrets(text: str) -> str:
    """Replace credential values in text with ***."""
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(r"\1***", text)
    return text


def _stderr_supports_color() -> bool:
    if not hasattr(sys.stderr, "isatty") or not sys.stderr.isatty():
        return False
    # https://no-color.org/
    if os.environ.get("NO_COLOR"):
        return False
    return os.environ.get("TERM", "") != "dumb"


def get_log_level_from_env() -> int:
    """
    Logging level from the environment.

    CCONTACT_SYNC_DEBUG wins over CCONTACT_SYNC_LOG_LEVEL; unknown names
    mean INFO.
    """
    if os.environ.get(ENV_DEBUG, "").lower() in ("1", "true", "yes"):
        return logging.DEBUG
    return LEVELS.get(os.environ.get(ENV_LOG_LEVEL, "INFO").upper(), logging.INFO)


def default_log_dir() -> Path:
    """The logs directory inside the configuration directory."""
    return resolve_config_dir() / LOG_DIR_NAME


def dated_log_name(when: Optional[datetime] = None) -> str:
    """File name of the log for a day, e.g. ccontact_sync_20260419.log."""
    when = when or datetime.now()
    return f"{LOG_FILE_PREFIX}{when.strftime('%Y%m%d')}.log"


def get_log_file_path(log_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Where the log file goes.

    CCONTACT_SYNC_LOG_FILE wins over log_dir; without either the file is
    dated and lives in the logs directory under the configuration directory.

    Returns:
        Path to the log file, or None if file logging is disabled
    """
    log_file = os.environ.get(ENV_LOG_FILE)
    if log_file is not None:
        if log_file.lower() in ("none", "disabled", ""):
            return None
        return Path(log_file)

    return (log_dir or default_log_dir()) / dated_log_name()


def _console_handler(level: int, verbose: bool, use_colors: bool) -> logging.Handler:
    fmt = VERBOSE_FORMAT if verbose else CONSOLE_FORMAT
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if use_colors:
        handler.setFormatter(ColoredFormatter(fmt, DATE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(fmt, DATE_FORMAT))
    handler.addFilter(RedactingFilter())
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(VERBOSE_FORMAT, DATE_FORMAT))
    handler.addFilter(RedactingFilter())
    return handler


def setup_logging(
    level: Optional[int] = None,
    verbose: bool = False,
    log_dir: Optional[Path] = None,
    log_file: Optional[Path] = None,
    enable_file_logging: bool = True,
    use_colors: bool = True,
) -> logging.Logger:
    """
    Configure the ccontact_sync logger.

    Calling it again replaces the handlers of a previous call.

    Args:
        level: Console level. If None, taken from the environment.
        verbose: Force DEBUG and use the format with file and line.
        log_dir: Directory for the dated log file (default: <config dir>/logs)
        log_file: Explicit log file; wins over the environment and log_dir
        enable_file_logging: If False, only log to the console
        use_colors: Color the console level names when supported

    Returns:
        The package logger

    Example:
        setup_logging(verbose=True)
        setup_logging(enable_file_logging=False)
    """
    if level is None:
        level = get_log_level_from_env()
    if verbose:
        level = logging.DEBUG

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    logger.setLevel(logging.DEBUG if enable_file_logging else level)
    # Handlers are our own; don't duplicate through the root logger
    logger.propagate = False
    logger.addHandler(_console_handler(level, verbose, use_colors))

    if not enable_file_logging:
        return logger

    file_path = log_file if log_file else get_log_file_path(log_dir)
    if file_path is None:
        return logger

    try:
        logger.addHandler(_file_handler(file_path))
    except OSError as e:
        logger.warning(f"Could not create log file {file_path}: {e}")
        return logger

    logger.debug(f"Log file: {file_path}")
    return logger


def cleanup_old_logs(log_dir: Optional[Path] = None, keep_count: int = 10) -> int:
    """
    Delete old log files, keeping the keep_count most recently modified.

    Only files named like the dated logs are considered. A keep_count of 0
    disables cleanup.

    Returns:
        Number of files deleted
    """
    if keep_count <= 0:
        return 0

    logs_dir = log_dir if log_dir else default_log_dir()
    if not logs_dir.exists():
        return 0

    logs = sorted(
        logs_dir.glob(f"{LOG_FILE_PREFIX}*.log"),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )
    deleted = 0
    for old_log in logs[keep_count:]:
        try:
            old_log.unlink()
            deleted += 1
        except OSError:
            pass  # in use or already gone
    return deleted


def get_logger(name: str) -> logging.Logger:
    """Logger under the ccontact_sync hierarchy (typically for __name__)."""
    if not name.startswith(LOGGER_NAME):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)


__all__ = [
    "setup_logging",
    "get_logger",
    "cleanup_old_logs",
    "redact_secrets",
    "ColoredFormatter",
    "RedactingFilter",
    "get_log_level_from_env",
    "get_log_file_path",
    "default_log_dir",
    "dated_log_name",
    "LOGGER_NAME",
    "CONSOLE_FORMAT",
    "VERBOSE_FORMAT",
    "DATE_FORMAT",
]
