"""
Error types for error-flow.
"""
from .exceptions import (
    ErrorContext,
    ErrorFlowError,
    HandlerOrderingError,
    KindError,
    DeclarationError,
    ScenarioError,
    ConfigurationError,
    EvaluationError,
    error_details
)

__all__ = [
    'ErrorContext',
    'ErrorFlowError',
    'HandlerOrderingError',
    'KindError',
    'DeclarationError',
    'ScenarioError',
    'ConfigurationError',
    'EvaluationError',
    'error_details'
]
