"""
Centralized exception definitions for error-flow.

These are the project's own errors: misconfiguration, bad input and
evaluator faults. Recoverable failures raised *inside* an evaluation are
modelled separately in ``error_flow.signals``.
"""
from typing import Any, Dict, List, Optional


class ErrorContext:
    """Context information for errors."""

    def __init__(self, component: str = None, operation: str = None, **kwargs):
        self.component = component
        self.operation = operation
        self.details = kwargs


class ErrorFlowError(Exception):
    """Base class for all error-flow errors."""

    def __init__(self, message: str, context: ErrorContext = None, details: dict = None):
        super().__init__(message)
        self.context = context or ErrorContext()
        self.details = details or {}

    def __str__(self):
        base_str = super().__str__()
        if self.context.component and self.context.operation:
            return f"{base_str} [in {self.context.component}.{self.context.operation}]"
        return base_str


class HandlerOrderingError(ErrorFlowError):
    """A handler list where an earlier handler shadows a later one."""

    def __init__(
        self,
        message: str,
        shadowed: Optional[str] = None,
        shadowing: Optional[str] = None,
        context: ErrorContext = None
    ):
        super().__init__(
            message,
            context=context or ErrorContext(component="HandlerChain", operation="validate"),
            details={"shadowed": shadowed, "shadowing": shadowing}
        )
        self.shadowed = shadowed
        self.shadowing = shadowing


class KindError(ErrorFlowError):
    """Unknown or duplicate failure kind."""
    pass


class DeclarationError(ErrorFlowError):
    """Static declaration check failed in strict mode."""

    def __init__(self, message: str, problems: Optional[List[Any]] = None):
        super().__init__(
            message,
            context=ErrorContext(component="StructuredErrorRunner", operation="check_declarations"),
            details={"problems": [str(p) for p in problems or []]}
        )
        self.problems = list(problems or [])


class ScenarioError(ErrorFlowError):
    """Error in a scenario document."""
    pass


class ConfigurationError(ErrorFlowError):
    """Error in configuration."""
    pass


class EvaluationError(ErrorFlowError):
    """Error in the evaluator itself, such as nesting past the configured depth."""
    pass


def error_details(error: ErrorFlowError) -> Dict[str, Any]:
    """
    Format an error-flow error as a dictionary.

    Args:
        error: Error to format

    Returns:
        Dictionary with error type, message and details
    """
    return {
        "error_type": error.__class__.__name__,
        "error_message": str(error),
        "component": error.context.component,
        "operation": error.context.operation,
        "details": error.details,
    }
