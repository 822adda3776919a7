"""
error-flow: a structured error-propagation runner.

Models try/catch/finally control flow as data: hierarchical failure kinds,
ordered handlers, guaranteed cleanup and unconditional termination.
"""
from .block import Handler, HandlerChain, Operation, ProtectedBlock
from .config import RunnerConfiguration, load_config
from .declarations import DeclarationProblem, check_declarations
from .error import (
    ConfigurationError,
    DeclarationError,
    ErrorFlowError,
    EvaluationError,
    HandlerOrderingError,
    KindError,
    ScenarioError,
)
from .kinds import BuiltinKind, KindRegistry
from .outcome import (
    Completed,
    EvaluationTrace,
    HandledFailure,
    Outcome,
    OutcomeStatus,
    Terminated,
    UnhandledFailure,
)
from .runner import ExecutionContext, StructuredErrorRunner, evaluate
from .signals import FailureSignal, Termination, raise_failure, terminate

__version__ = "0.1.0"

__all__ = [
    "BuiltinKind",
    "KindRegistry",
    "FailureSignal",
    "Termination",
    "raise_failure",
    "terminate",
    "Operation",
    "Handler",
    "HandlerChain",
    "ProtectedBlock",
    "Outcome",
    "OutcomeStatus",
    "Completed",
    "HandledFailure",
    "UnhandledFailure",
    "Terminated",
    "EvaluationTrace",
    "ExecutionContext",
    "StructuredErrorRunner",
    "evaluate",
    "DeclarationProblem",
    "check_declarations",
    "RunnerConfiguration",
    "load_config",
    "ErrorFlowError",
    "HandlerOrderingError",
    "KindError",
    "DeclarationError",
    "ScenarioError",
    "ConfigurationError",
    "EvaluationError",
    "__version__",
]
