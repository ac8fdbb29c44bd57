"""Logging utility for the mail extractor.

Diagnostic logging only. The user-facing import log lives in the record
store's ``logs`` table.
"""

import json
import logging
import re
from datetime import datetime, timezone
from functools import wraps
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional

from rich.logging import RichHandler

from .paths import LOGS_DIR

ROOT_LOGGER_NAME = "mail_extractor"

_LOG_DIR: Optional[Path] = None


def _get_log_dir() -> Path:
    """Get log directory, creating it on first access."""

    from .errors import FileSystemError

    global _LOG_DIR

    if _LOG_DIR is None:
        _LOG_DIR = LOGS_DIR
        try:
            _LOG_DIR.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(f"Failed to create log directory: {_LOG_DIR}") from e

    return _LOG_DIR


## JSON Formatter


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key in ("event_type", "context", "details"):
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        return json.dumps(log_entry, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """Logger adapter that merges fixed context into every record."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs.setdefault("extra", {})
        kwargs["extra"].setdefault("context", {}).update(self.extra)
        return msg, kwargs


## Log Masking


class SensitiveDataMasker:
    """Masks credentials and addresses before they reach a handler."""

    PATTERNS = {
        "pop3_pass": re.compile(r"(\bPASS\s+)(\S+)"),
        "password": re.compile(
            r'(password["\']?\s*[:=]\s*["\']?)([^"\'}\s]+)', re.IGNORECASE
        ),
        "token": re.compile(
            r'(token["\']?\s*[:=]\s*["\']?)([^"\'}\s]+)', re.IGNORECASE
        ),
        "secret": re.compile(
            r'(secret["\']?\s*[:=]\s*["\']?)([^"\'}\s]+)', re.IGNORECASE
        ),
        "email": re.compile(
            r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})", re.IGNORECASE
        ),
    }

    SENSITIVE_FIELDS = {
        "password",
        "app_password",
        "passwd",
        "pwd",
        "secret",
        "token",
        "credential",
    }

    MASK_STRATEGIES = {
        "full": lambda x: "[REDACTED]",
        "partial": lambda x: x[:2] + "*" * (len(x) - 4) + x[-2:]
        if len(x) > 6
        else "[REDACTED]",
    }

    def __init__(self, strategy: str = "full"):
        self.strategy = strategy
        self.mask_func = self.MASK_STRATEGIES[strategy]

    def mask_string(self, text: str) -> str:
        """Mask sensitive data in a string message."""

        if not text or not isinstance(text, str):
            return text

        masked = text
        for name, pattern in self.PATTERNS.items():
            if name == "email":
                masked = pattern.sub(lambda m: self._mask_email(m.group(0)), masked)
            else:
                masked = pattern.sub(
                    lambda m: m.group(1) + self.mask_func(m.group(2)), masked
                )

        return masked

    def mask_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Mask sensitive data in a dictionary, recursing into nested dicts."""

        masked = {}
        for key, value in data.items():
            if str(key).lower() in self.SENSITIVE_FIELDS:
                masked[key] = self.mask_func(str(value))
            elif isinstance(value, dict):
                masked[key] = self.mask_dict(value)
            elif isinstance(value, str):
                masked[key] = self.mask_string(value)
            else:
                masked[key] = value

        return masked

    def _mask_email(self, email: str) -> str:
        """Mask an email address, keeping its first characters."""

        username, _, domain = email.partition("@")
        masked_username = username[0] + "***" if len(username) > 1 else "***"
        masked_domain = domain[0] + ("***" if len(domain) > 1 else "*")

        return f"{masked_username}@{masked_domain}"


class SensitiveDataFilter(logging.Filter):
    """Logging filter to mask sensitive data in log records."""

    def __init__(self, strategy: str = "full"):
        super().__init__()
        self.masker = SensitiveDataMasker(strategy)

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.masker.mask_string(record.msg)

        for key, value in list(record.__dict__.items()):
            if key.lower() in self.masker.SENSITIVE_FIELDS:
                setattr(record, key, self.masker.mask_func(str(value)))
            elif isinstance(value, dict):
                setattr(record, key, self.masker.mask_dict(value))

        return True


## Main Log Manager


class LogManager:
    """Manages logging configuration and provides logger instances."""

    def __init__(self, log_level: str = "INFO"):
        self.log_level = self._resolve_level(log_level)
        self.root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        self.root_logger.setLevel(logging.DEBUG)
        self.root_logger.propagate = False
        self._setup_handlers()

    @staticmethod
    def _resolve_level(level: str) -> int:
        resolved = getattr(logging, str(level).upper(), None)
        if not isinstance(resolved, int):
            raise ValueError(f"Invalid logging level: {level}")
        return resolved

    def _setup_handlers(self) -> None:
        """Setup console and file handlers with sensitive data filtering."""

        from .errors import FileSystemError

        sensitive_filter = SensitiveDataFilter(strategy="full")
        self.root_logger.handlers.clear()

        console_handler = RichHandler(
            show_time=True,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        console_handler.addFilter(sensitive_filter)

        log_dir = _get_log_dir()
        try:
            app_handler = RotatingFileHandler(
                log_dir / "app.log",
                maxBytes=5_242_880,
                backupCount=5,
                encoding="utf-8",
            )
            event_handler = RotatingFileHandler(
                log_dir / "events.log",
                maxBytes=2_048_000,
                backupCount=3,
                encoding="utf-8",
            )
        except OSError as e:
            raise FileSystemError(f"Failed to create log file handlers: {e}") from e

        app_handler.setLevel(self.log_level)
        app_handler.setFormatter(JSONFormatter())
        app_handler.addFilter(sensitive_filter)

        event_handler.setLevel(logging.INFO)
        event_handler.setFormatter(JSONFormatter())
        event_handler.addFilter(lambda record: hasattr(record, "event_type"))
        event_handler.addFilter(sensitive_filter)

        self.app_handler = app_handler
        self.root_logger.addHandler(console_handler)
        self.root_logger.addHandler(app_handler)
        self.root_logger.addHandler(event_handler)

    def get_logger(
        self, name: Optional[str] = None, **context
    ) -> logging.Logger | ContextAdapter:
        """Get a logger under the package namespace, optionally with context."""

        if name and name.startswith(ROOT_LOGGER_NAME):
            logger = logging.getLogger(name)
        else:
            logger = logging.getLogger(
                f"{ROOT_LOGGER_NAME}.{name}" if name else ROOT_LOGGER_NAME
            )

        if context:
            return ContextAdapter(logger, context)

        return logger

    def set_level(self, level: str) -> None:
        """Set the file log level at runtime. Console stays at WARNING+."""

        self.log_level = self._resolve_level(level)
        self.app_handler.setLevel(self.log_level)

    def log_event(self, event_type: str, message: str, level: str = "INFO", **extra):
        """Log an event with specific type and extra context."""

        extra_dict = {"event_type": event_type}
        if extra:
            extra_dict["context"] = extra
        self.root_logger.log(self._resolve_level(level), message, extra=extra_dict)


## Decorators for Logging


def log_call(func):
    """Decorator to log function entry, exit and duration at debug level.

    Unexpected exceptions are logged with their traceback; ``MailExtractorError``
    is expected and only noted at debug level before it propagates.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        from .errors import MailExtractorError

        logger = logging.getLogger(ROOT_LOGGER_NAME)
        func_name = f"{func.__module__}.{func.__qualname__}"
        logger.debug(f"-> Entering {func_name}")
        start_time = datetime.now()

        try:
            result = func(*args, **kwargs)
        except MailExtractorError as e:
            duration = (datetime.now() - start_time).total_seconds()
            logger.debug(f"<- {func_name} raised {type(e).__name__} after {duration:.3f}s: {e}")
            raise
        except Exception as e:
            duration = (datetime.now() - start_time).total_seconds()
            logger.exception(f"<- Error in {func_name} after {duration:.3f}s: {e}")
            raise

        duration = (datetime.now() - start_time).total_seconds()
        logger.debug(f"<- Exiting {func_name} (Duration: {duration:.3f}s)")
        return result

    return wrapper


def async_log_call(func):
    """Async variant of :func:`log_call`."""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        from .errors import MailExtractorError

        logger = logging.getLogger(ROOT_LOGGER_NAME)
        func_name = f"{func.__module__}.{func.__qualname__}"
        logger.debug(f"-> Entering {func_name} (async)")
        start_time = datetime.now()

        try:
            result = await func(*args, **kwargs)
        except MailExtractorError as e:
            duration = (datetime.now() - start_time).total_seconds()
            logger.debug(f"<- {func_name} raised {type(e).__name__} after {duration:.3f}s: {e}")
            raise
        except Exception as e:
            duration = (datetime.now() - start_time).total_seconds()
            logger.exception(f"<- Error in {func_name} after {duration:.3f}s: {e}")
            raise

        duration = (datetime.now() - start_time).total_seconds()
        logger.debug(f"<- Exiting {func_name} (Duration: {duration:.3f}s)")
        return result

    return wrapper


## Module-level LogManager Instance and Helper Functions

_log_manager: Optional[LogManager] = None


def init_logging(log_level: str = "INFO") -> LogManager:
    """Initialise logging once and return the LogManager instance."""

    global _log_manager

    if _log_manager is None:
        _log_manager = LogManager(log_level)
    else:
        _log_manager.set_level(log_level)

    return _log_manager


def get_logger(
    name: Optional[str] = None, **context
) -> logging.Logger | ContextAdapter:
    """Get a logger instance with optional context."""

    if _log_manager is None:
        init_logging()

    return _log_manager.get_logger(name, **context)


def log_event(event_type: str, message: str, **extra) -> None:
    """Log an event with specific type and extra context (module-level wrapper)."""

    if _log_manager is None:
        init_logging()

    _log_manager.log_event(event_type, message, **extra)
