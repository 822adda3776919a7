"""
Logging utilities with plain or structured formatting.
"""
import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

CONTEXT_FIELDS = ("block", "scenario", "operation")


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, **kwargs):
        """Initialize with optional fields."""
        self.additional_fields = kwargs
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }

        for name in CONTEXT_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        log_data.update(self.additional_fields)
        return json.dumps(log_data)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds block/scenario context to log records."""

    def process(self, msg, kwargs):
        kwargs.setdefault("extra", {}).update(self.extra)
        return msg, kwargs


class LogConfig:
    """Logging configuration manager."""

    def __init__(
        self,
        log_level: str = 'INFO',
        log_file: Optional[Union[str, Path]] = None,
        json_logging: bool = False,
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
    ):
        self.log_level = getattr(logging, log_level.upper(), logging.INFO)
        self.log_file = Path(log_file) if log_file else None
        self.json_logging = json_logging
        self.max_bytes = max_bytes
        self.backup_count = backup_count

    @classmethod
    def from_config(cls, config: Any) -> "LogConfig":
        """Build from a RunnerConfiguration."""
        return cls(
            log_level=config.log_level,
            log_file=config.log_file,
            json_logging=config.json_logging
        )

    def configure(self) -> None:
        """Configure the root logger with the specified settings."""
        if self.json_logging:
            formatter = JsonFormatter(application="error_flow")
        else:
            formatter = logging.Formatter(DEFAULT_FORMAT)

        handlers = []

        # Log to stderr so command output on stdout stays clean
        console_handler = logging.StreamHandler(sys.stderr)
        handlers.append(console_handler)

        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                self.log_file,
                maxBytes=self.max_bytes,
                backupCount=self.backup_count
            )
            handlers.append(file_handler)

        root_logger = logging.getLogger()
        root_logger.setLevel(self.log_level)

        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        for handler in handlers:
            handler.setFormatter(formatter)
            handler.setLevel(self.log_level)
            root_logger.addHandler(handler)

        logging.debug(f"Logging configured with level: {logging.getLevelName(self.log_level)}")


def get_logger(name: str, **context) -> Union[logging.Logger, logging.LoggerAdapter]:
    """
    Get a logger with context.

    Args:
        name: Logger name
        **context: Additional context fields, e.g. ``scenario="finally"``

    Returns:
        Logger with context
    """
    logger = logging.getLogger(name)

    if context:
        return ContextLoggerAdapter(logger, context)

    return logger
