"""
Logging configuration for structured text logging.
"""
import logging
import sys
from typing import Dict, Optional

from fieldcrypt.config import Settings, get_settings

NAMESPACE = "fieldcrypt"


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured text logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with structured key-value pairs."""
        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        base_msg = f"{timestamp} | {record.levelname:8} | {record.name} | {record.getMessage()}"

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in StructuredLogger.RESERVED_FIELDS
        }

        if extra_fields:
            base_msg += " | " + " ".join(f"{k}={v}" for k, v in extra_fields.items())

        if record.exc_info:
            base_msg += "\n" + self.formatException(record.exc_info)

        return base_msg


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """
    Configure and return the library logger.

    Supports per-module log level configuration via settings:
    - APP_LOG_LEVEL: fieldcrypt logs (default: LOG_LEVEL)
    - SQLALCHEMY_LOG_LEVEL: SQLAlchemy logs (default: WARNING)

    Nothing is configured on import; applications call this once at startup.

    Returns:
        Configured logger instance
    """
    settings = settings or get_settings()

    logger = logging.getLogger(NAMESPACE)
    app_log_level = (settings.APP_LOG_LEVEL or settings.LOG_LEVEL).upper()
    logger.setLevel(getattr(logging, app_log_level))

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, app_log_level))
    console_handler.setFormatter(StructuredFormatter())
    logger.addHandler(console_handler)

    logger.propagate = False

    log_config = _configure_third_party_loggers(settings)
    logger.info(
        "Logging configured",
        extra={"app_log_level": app_log_level, **log_config},
    )

    return logger


def _configure_third_party_loggers(settings: Settings) -> Dict[str, str]:
    """
    Configure log levels for third-party libraries.

    Returns:
        Dictionary mapping logger names to configured levels
    """
    config = {}

    sqlalchemy_level = (settings.SQLALCHEMY_LOG_LEVEL or "WARNING").upper()
    logging.getLogger("sqlalchemy.engine").setLevel(getattr(logging, sqlalchemy_level))
    logging.getLogger("sqlalchemy.pool").setLevel(getattr(logging, sqlalchemy_level))
    config["sqlalchemy"] = sqlalchemy_level

    return config


class StructuredLogger:
    """Wrapper around logging.Logger that supports keyword arguments for structured logging."""

    # Reserved field names in LogRecord that should be prefixed
    RESERVED_FIELDS = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'levelno', 'lineno', 'module', 'msecs',
        'message', 'pathname', 'process', 'processName', 'relativeCreated',
        'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info',
        'taskName'
    }

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _log(self, level: int, msg: str, *args, **kwargs):
        """Log with structured extra fields."""
        exc_info = kwargs.pop('exc_info', False)

        extra = {}
        for key, value in kwargs.items():
            if key in self.RESERVED_FIELDS:
                extra[f'ctx_{key}'] = value
            else:
                extra[key] = value

        self._logger.log(level, msg, *args, extra=extra, exc_info=exc_info, stacklevel=3)

    def is_enabled_for(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def debug(self, msg: str, *args, **kwargs):
        """Log debug message with extra fields."""
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        """Log info message with extra fields."""
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        """Log warning message with extra fields."""
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        """Log error message with extra fields."""
        self._log(logging.ERROR, msg, *args, **kwargs)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger with the specified name under the fieldcrypt namespace.

    Args:
        name: Logger name (will be prefixed with 'fieldcrypt.')

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(logging.getLogger(f"{NAMESPACE}.{name}"))
