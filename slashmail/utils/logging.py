"""Logging utility for slashmail"""

import json
import logging
import re
from datetime import datetime, timezone
from functools import wraps
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from rich.logging import RichHandler

from .paths import LOGS_DIR


## Custom JSON Formatter


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for log records."""

    # LogRecord attributes that are not user-supplied context
    _RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self._RESERVED
        }
        if context:
            log_entry["context"] = context

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


## Log Masking


class SensitiveDataMasker:
    """Utility to mask credentials in log messages."""

    PATTERNS = {
        "password": re.compile(
            r'(password["\']?\s*[:=]\s*["\']?)([^"\'}\s]+)', re.IGNORECASE
        ),
        "pass": re.compile(
            r'(pass["\']?\s*[:=]\s*["\']?)([^"\'}\s]+)', re.IGNORECASE
        ),
        "token": re.compile(
            r'(token["\']?\s*[:=]\s*["\']?)([^"\'}\s]+)', re.IGNORECASE
        ),
        "login": re.compile(r"(LOGIN\s+\S+\s+)(\S+)", re.IGNORECASE),
    }

    SENSITIVE_FIELDS = {
        "password",
        "passwd",
        "pass",
        "pwd",
        "secret",
        "token",
        "credential",
    }

    def mask(self, value: str) -> str:
        return "[REDACTED]"

    def mask_string(self, text: str) -> str:
        """Mask sensitive data in a string message."""

        if not text:
            return text

        masked = text
        for pattern in self.PATTERNS.values():
            masked = pattern.sub(lambda m: m.group(1) + self.mask(m.group(2)), masked)

        return masked

    def mask_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Mask sensitive data in a dictionary."""

        masked = {}

        for key, value in data.items():
            if str(key).lower() in self.SENSITIVE_FIELDS:
                masked[key] = self.mask(str(value))
            elif isinstance(value, dict):
                masked[key] = self.mask_dict(value)
            elif isinstance(value, str):
                masked[key] = self.mask_string(value)
            else:
                masked[key] = value

        return masked


class SensitiveDataFilter(logging.Filter):
    """Logging filter to mask sensitive data in log records."""

    def __init__(self):
        super().__init__()
        self.masker = SensitiveDataMasker()

    def filter(self, record) -> bool:
        """Filter log record to mask sensitive data."""

        if isinstance(record.msg, str):
            record.msg = self.masker.mask_string(record.msg)

        for key, value in list(record.__dict__.items()):
            if key.lower() in self.masker.SENSITIVE_FIELDS:
                setattr(record, key, self.masker.mask(str(value)))
            elif isinstance(value, dict):
                setattr(record, key, self.masker.mask_dict(value))

        return True


## Main Log Manager


class LogManager:
    """Manages logging configuration and provides logger instances."""

    def __init__(
        self,
        log_level: str = "INFO",
        console_level: str = "WARNING",
        log_dir: Optional[Path] = None,
    ):
        self.log_level = self._level(log_level)
        self.console_level = self._level(console_level)
        self.log_dir = log_dir or LOGS_DIR
        self.root_logger = logging.getLogger("slashmail")
        self.root_logger.setLevel(logging.DEBUG)
        self._setup_handlers()

    @staticmethod
    def _level(name: str) -> int:
        level = logging.getLevelName(name.upper())
        if not isinstance(level, int):
            raise ValueError(f"Invalid logging level: {name}")
        return level

    def _setup_handlers(self) -> None:
        """Setup console and file handlers with sensitive data filtering."""

        sensitive_filter = SensitiveDataFilter()

        for handler in list(self.root_logger.handlers):
            self.root_logger.removeHandler(handler)
            handler.close()

        console_handler = RichHandler(
            show_time=False,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        console_handler.setLevel(self.console_level)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        console_handler.addFilter(sensitive_filter)
        self.root_logger.addHandler(console_handler)

        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            app_handler = RotatingFileHandler(
                self.log_dir / "app.log",
                maxBytes=5_242_880,
                backupCount=5,
                encoding="utf-8",
            )
        except OSError as e:
            self.root_logger.warning(
                f"File logging disabled, cannot write to {self.log_dir}: {e}"
            )
            return

        app_handler.setLevel(self.log_level)
        app_handler.setFormatter(JSONFormatter())
        app_handler.addFilter(sensitive_filter)
        self.root_logger.addHandler(app_handler)

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        """Get a logger under the slashmail namespace."""

        if name and not name.startswith("slashmail"):
            name = f"slashmail.{name}"
        return logging.getLogger(name or "slashmail")


## Decorators for Logging


def log_call(func):
    """Decorator to log function calls with their duration."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger("slashmail")
        func_name = f"{func.__module__}.{func.__qualname__}"
        logger.debug(f"-> Entering {func_name}")
        start_time = datetime.now()

        try:
            result = func(*args, **kwargs)
            duration = (datetime.now() - start_time).total_seconds()
            logger.debug(f"<- Exiting {func_name} (Duration: {duration:.3f}s)")
            return result

        except Exception as e:
            duration = (datetime.now() - start_time).total_seconds()
            logger.debug(f"<- Error in {func_name} after {duration:.3f}s: {e}")
            raise

    return wrapper


## Module-level LogManager Instance and Helper Functions

_log_manager: Optional[LogManager] = None


def init_logging(
    log_level: str = "INFO",
    console_level: str = "WARNING",
    log_dir: Optional[Path] = None,
) -> LogManager:
    """Initialize (or re-initialize) the logging system."""

    global _log_manager
    _log_manager = LogManager(log_level, console_level, log_dir)
    return _log_manager


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance.

    Loggers are plain ``logging`` children of the ``slashmail`` logger, so
    they can be created at import time before handlers are configured.
    """

    if _log_manager is not None:
        return _log_manager.get_logger(name)

    if name and not name.startswith("slashmail"):
        name = f"slashmail.{name}"
    return logging.getLogger(name or "slashmail")
