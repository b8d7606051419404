"""
NFT Registry - Structured Logging

Structured logging with:
- JSON log format for easy parsing by indexers and log shippers
- Contextual logging with correlation IDs
- Daily log rotation when a log directory is configured
- Privacy-preserving address truncation

Modules log through ``logging.getLogger(__name__)`` with ``extra={"event": ...}``;
``configure_logging`` attaches the JSON formatter to the package logger.
"""

import hashlib
import json
import logging
import os
import sys
import threading
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from typing import Any, Dict, Optional

from .config import RegistrySettings

PACKAGE_LOGGER = "nft_registry"

# Context variable for correlation ID (thread-safe)
correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "correlation_id"}


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs one JSON object per record.

    Fields passed through ``extra=`` (or ``extra_fields``) are merged into
    the top-level object.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        corr_id = correlation_id.get()
        if corr_id:
            log_entry["correlation_id"] = corr_id

        log_entry["thread"] = {"id": threading.get_ident(), "name": threading.current_thread().name}

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key != "extra_fields":
                log_entry[key] = value
        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)

        return json.dumps(log_entry, default=str)


class StructuredLogger:
    """
    Keyword-field logger over the package logger.

    Addresses are truncated and sensitive keys redacted before emission.
    """

    def __init__(self, name: str = PACKAGE_LOGGER):
        self.name = name
        self.logger = logging.getLogger(name)
        self.log_counts = {"DEBUG": 0, "INFO": 0, "WARN": 0, "ERROR": 0, "CRITICAL": 0}

    def _truncate_address(self, address: str) -> str:
        """Truncate account address for privacy"""
        if not address or len(address) < 10:
            return "UNKNOWN"
        return f"{address[:6]}...{address[-4:]}"

    def _sanitize_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Remove sensitive information from data"""
        sensitive_keys = ["private_key", "password", "secret", "api_key", "signature"]
        sanitized = {}

        for key, value in data.items():
            if any(sensitive in key.lower() for sensitive in sensitive_keys):
                sanitized[key] = "REDACTED"
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_data(value)
            else:
                sanitized[key] = value

        return sanitized

    def _log(self, level: str, message: str, **kwargs):
        self.log_counts[level] += 1

        if kwargs:
            kwargs = self._sanitize_data(kwargs)

        extra = {"extra_fields": kwargs} if kwargs else {}

        log_func = getattr(self.logger, "warning" if level == "WARN" else level.lower())
        log_func(message, extra=extra)

    def debug(self, message: str, **kwargs):
        self._log("DEBUG", message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log("INFO", message, **kwargs)

    def warn(self, message: str, **kwargs):
        self._log("WARN", message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Alias for warn for Python logging compatibility"""
        self._log("WARN", message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log("ERROR", message, **kwargs)

    # Registry-specific logging methods

    def registry_call(
        self,
        method: str,
        caller: str,
        success: bool,
        error: str = None,
        duration_ms: float = None,
    ):
        """Log the outcome of one dispatched registry call"""
        fields = {
            "event": "registry.call",
            "method": method,
            "caller": self._truncate_address(caller),
            "success": success,
            "duration_ms": duration_ms,
        }
        if success:
            self.debug(f"Registry: {method} ok", **fields)
        else:
            self.info(f"Registry: {method} failed ({error})", error=error, **fields)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "log_counts": self.log_counts.copy(),
            "total_logs": sum(self.log_counts.values()),
        }


class LogContext:
    """
    Context manager for correlation ID tracking

    Usage:
        with LogContext() as ctx:
            logger.info("This log will have a correlation ID")
    """

    def __init__(self, custom_id: str = None):
        self.correlation_id = custom_id or self._generate_correlation_id()

    def _generate_correlation_id(self) -> str:
        timestamp = str(time.time()).encode()
        thread_id = str(threading.get_ident()).encode()
        random_data = os.urandom(8)

        return hashlib.sha256(timestamp + thread_id + random_data).hexdigest()[:16]

    def __enter__(self):
        self.token = correlation_id.set(self.correlation_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        correlation_id.reset(self.token)


def configure_logging(settings: RegistrySettings, stream=None) -> logging.Logger:
    """
    Attach JSON handlers to the package logger according to settings.

    Logs go to ``stream`` (stderr by default) and, when ``settings.log_dir``
    is set, to a daily-rotated file in that directory. Calling it again
    replaces the handlers it installed earlier.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    level = "WARNING" if settings.log_level.upper() == "WARN" else settings.log_level.upper()
    package_logger.setLevel(getattr(logging, level))

    for handler in list(package_logger.handlers):
        if getattr(handler, "_nft_registry_handler", False):
            package_logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(stream or sys.stderr)
    stream_handler.setFormatter(JSONFormatter())
    stream_handler._nft_registry_handler = True
    package_logger.addHandler(stream_handler)

    if settings.log_dir:
        os.makedirs(settings.log_dir, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            os.path.join(settings.log_dir, f"{PACKAGE_LOGGER}.json.log"),
            when="midnight",
            interval=1,
            backupCount=30,
            encoding="utf-8",
            utc=True,
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler._nft_registry_handler = True
        package_logger.addHandler(file_handler)

    return package_logger


# Global logger instance
_global_structured_logger = None


def get_structured_logger(name: str = PACKAGE_LOGGER) -> StructuredLogger:
    """Get the process-wide structured logger instance"""
    global _global_structured_logger
    if _global_structured_logger is None:
        _global_structured_logger = StructuredLogger(name)
    return _global_structured_logger
