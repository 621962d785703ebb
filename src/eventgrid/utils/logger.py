"""
logger.py

Structured logging utility for the event publishing client.
Provides JSON-formatted logging with context enrichment.

Features:
- JSON-formatted logs for easy parsing and analysis
- Context enrichment (event ids, session ids, endpoints)
- Optional rotating log file
- Timing of publish attempts
"""

import json
import logging
import logging.handlers
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'created', 'msecs', 'levelname',
    'levelno', 'pathname', 'filename', 'module', 'exc_info',
    'exc_text', 'stack_info', 'lineno', 'funcName', 'process',
    'processName', 'thread', 'threadName', 'getMessage',
    'message', 'asctime', 'relativeCreated', 'taskName'
])


# =============================================================================
# Custom JSON Formatter
# =============================================================================

class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs one JSON object per log record.

    Each log record includes:
    - timestamp: ISO 8601 formatted timestamp
    - level: Log level (INFO, WARNING, ERROR, etc.)
    - logger: Logger name
    - message: Log message
    - extra: Any additional context fields
    - exception: Exception information if present
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Fields passed via logger.info(..., extra={...})
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in log_entry:
                continue
            try:
                json.dumps(value)
                log_entry[key] = value
            except (TypeError, ValueError):
                log_entry[key] = str(value)

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info)
            }

        if record.stack_info:
            log_entry["stack_info"] = record.stack_info

        return json.dumps(log_entry, ensure_ascii=False)


# =============================================================================
# Logging Setup
# =============================================================================

def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: str = "json",
    enable_console: bool = True,
    rotation_size: str = "10MB",
    backup_count: int = 5
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file. File logging is off when None.
        log_format: Format type ("json" or "text")
        enable_console: Enable console logging
        rotation_size: Log file rotation size (e.g., "10MB")
        backup_count: Number of backup files to keep

    Example:
        setup_logging(log_level="DEBUG", log_format="text")
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers = []

    if log_format.lower() == "json":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=_parse_size(rotation_size),
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.debug(
        "Logging initialized",
        extra={
            "log_level": log_level,
            "log_format": log_format,
            "console_enabled": enable_console,
            "log_file": log_file
        }
    )


def _parse_size(size_str: str) -> int:
    """
    Parse size string to bytes.

    Example:
        _parse_size("10MB") -> 10485760
    """
    match = re.match(r'(\d+)\s*(KB|MB|GB)?', size_str.upper().strip())
    if not match:
        return 10 * 1024 * 1024

    number = int(match.group(1))
    unit = match.group(2)

    if unit == 'KB':
        return number * 1024
    elif unit == 'MB':
        return number * 1024 * 1024
    elif unit == 'GB':
        return number * 1024 * 1024 * 1024
    return number


# =============================================================================
# Logger Factory
# =============================================================================

def get_logger(name: str, **extra_context: Any) -> logging.LoggerAdapter:
    """
    Get a logger with bound context.

    Example:
        logger = get_logger(__name__, topic="https://topic.example.com/api/events")
        logger.info("Publishing batch", extra={"event_count": 2})
    """
    return _ContextAdapter(logging.getLogger(name), extra_context)


class _ContextAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges bound context with per-call ``extra``."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


# =============================================================================
# Performance Logging
# =============================================================================

class PerformanceLogger:
    """
    Context manager for logging the duration of an operation.

    Example:
        with PerformanceLogger("publish_attempt", logger, attempt=1):
            session.post(...)
        # Logs: {"operation": "publish_attempt", "duration_ms": 12.3, "attempt": 1}
    """

    def __init__(
        self,
        operation: str,
        logger: logging.Logger,
        log_level: int = logging.DEBUG,
        **context: Any
    ):
        self.operation = operation
        self.logger = logger
        self.log_level = log_level
        self.context = context
        self.start_time: Optional[datetime] = None
        self.duration_ms: Optional[float] = None

    def __enter__(self):
        self.start_time = datetime.now(timezone.utc)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        end_time = datetime.now(timezone.utc)
        self.duration_ms = (end_time - self.start_time).total_seconds() * 1000

        log_data = {
            "operation": self.operation,
            "duration_ms": round(self.duration_ms, 2),
        }
        log_data.update(self.context)

        if exc_type is not None:
            log_data["success"] = False
            log_data["error_type"] = exc_type.__name__
            self.logger.log(
                self.log_level,
                f"Operation '{self.operation}' failed after {self.duration_ms:.2f}ms",
                extra=log_data
            )
        else:
            log_data["success"] = True
            self.logger.log(
                self.log_level,
                f"Operation '{self.operation}' completed in {self.duration_ms:.2f}ms",
                extra=log_data
            )

        return False  # Don't suppress exceptions


# =============================================================================
# Initialization for Configuration Integration
# =============================================================================

def initialize_logging_from_config(config: Any) -> None:
    """
    Initialize logging from a Settings object.

    Example:
        from eventgrid.utils.config_manager import get_settings
        initialize_logging_from_config(get_settings())
    """
    logging_settings = config.logging
    setup_logging(
        log_level=logging_settings.log_level,
        log_file=logging_settings.log_file,
        log_format=logging_settings.log_format,
        enable_console=True,
        rotation_size=logging_settings.log_rotation
    )
