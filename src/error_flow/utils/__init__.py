"""
Utility modules for error-flow.
"""
from .logging import ContextLoggerAdapter, JsonFormatter, LogConfig, get_logger

__all__ = ["ContextLoggerAdapter", "JsonFormatter", "LogConfig", "get_logger"]
