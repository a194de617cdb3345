import logging
import sys
from typing import Any, Dict, Optional

from greenwatt.core.config import settings

_HANDLER_NAME = "greenwatt-console"


def setup_logging(level: Optional[str] = None) -> None:
    """Setup application logging configuration"""
    level = level or settings.LOG_LEVEL

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Importing the app more than once must not duplicate output
    if not any(handler.get_name() == _HANDLER_NAME for handler in root_logger.handlers):
        formatter = logging.Formatter(
            fmt=settings.LOG_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.set_name(_HANDLER_NAME)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(level)
        root_logger.addHandler(console_handler)

    # Configure specific loggers
    loggers_config = {
        "uvicorn": {"level": "INFO"},
        "uvicorn.access": {"level": "INFO"},
        "redis": {"level": "WARNING"},
        "greenwatt": {"level": level},
    }

    for logger_name, config in loggers_config.items():
        logging.getLogger(logger_name).setLevel(config["level"])

    # Disable some noisy loggers in production
    if not settings.DEBUG:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class StructuredLogger:
    """Logger appending key=value fields, with optional bound context"""

    def __init__(self, name: str, context: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger(name)
        self.context = dict(context or {})

    def bind(self, **fields: Any) -> "StructuredLogger":
        """Logger that adds the given fields to every message"""
        return StructuredLogger(self.logger.name, {**self.context, **fields})

    def _log(self, level: int, message: str, **kwargs: Any) -> None:
        if not self.logger.isEnabledFor(level):
            return
        fields = {**self.context, **kwargs}
        extra_data = " | ".join(f"{k}={v}" for k, v in fields.items())
        self.logger.log(level, f"{message} | {extra_data}" if extra_data else message)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, **kwargs)


def get_logger(name: str, **context: Any) -> StructuredLogger:
    """Get a structured logger instance"""
    return StructuredLogger(name, context)
