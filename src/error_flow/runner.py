"""
Structured error runner: evaluates protected blocks with ordered handler
matching, guaranteed cleanup and unconditional termination.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, NoReturn, Optional

from .block import ProtectedBlock
from .config.configuration import RunnerConfiguration, ensure_runner_config
from .declarations import check_declarations
from .error.exceptions import DeclarationError, ErrorContext, EvaluationError
from .kinds import KindLike
from .outcome import (
    Completed,
    EvaluationTrace,
    HandledFailure,
    Outcome,
    OutcomeStatus,
    Terminated,
    TraceEventType,
    UnhandledFailure,
)
from .signals import FailureSignal, Termination

logger = logging.getLogger(__name__)


class ExecutionContext:
    """
    What operations, handlers and cleanup see while one block runs.

    A context is scoped to one block. Nested blocks get a child context that
    shares the trace and ``variables`` of the evaluation.
    """

    def __init__(
        self,
        runner: "StructuredErrorRunner",
        block: ProtectedBlock,
        trace: EvaluationTrace,
        depth: int = 1,
        variables: Optional[Dict[str, Any]] = None
    ):
        self.runner = runner
        self.block = block
        self.trace = trace
        self.depth = depth
        self.variables: Dict[str, Any] = {} if variables is None else variables
        self.cleanup_ran = False

    def scoped(self, block: ProtectedBlock) -> "ExecutionContext":
        return ExecutionContext(self.runner, block, self.trace, self.depth + 1, self.variables)

    def print(self, text: str) -> None:
        """Capture a line of program output."""
        self.trace.emit(self.block.name, text)
        if self.runner.config.echo_output:
            logger.info(f"[{self.block.name}] {text}")

    def raise_failure(self, kind: KindLike, message: Optional[str] = None) -> NoReturn:
        """Raise a failure after checking that its kind is declared."""
        raise FailureSignal(self.block.registry.require(kind), message)

    def terminate(self, status: int = 0, reason: Optional[str] = None) -> NoReturn:
        raise Termination(status, reason)

    def run(self, block: ProtectedBlock) -> Any:
        """
        Evaluate ``block`` as a nested try.

        Returns the completed value or the handler result. Unhandled failures
        and terminations propagate to the enclosing block.
        """
        return self.runner.execute(block, self.scoped(block)).value


@dataclass
class BlockResult:
    """Non-raising result of one block evaluation."""
    status: OutcomeStatus
    value: Any = None
    kind: Optional[str] = None
    handler_index: int = -1
    failure: Optional[FailureSignal] = None


class StructuredErrorRunner:
    """Evaluates protected blocks."""

    def __init__(self, config: Optional[Any] = None):
        self.config: RunnerConfiguration = ensure_runner_config(config)

    def evaluate(self, block: ProtectedBlock) -> Outcome:
        """
        Evaluate a block and report how it ended.

        Args:
            block: Block to evaluate

        Returns:
            Completed, HandledFailure, UnhandledFailure or Terminated

        Raises:
            DeclarationError: In strict mode, when the declaration check fails
            EvaluationError: When blocks nest deeper than ``max_depth``
        """
        self.check(block)
        trace = EvaluationTrace(enabled=self.config.record_trace)
        scope = ExecutionContext(self, block, trace)

        try:
            result = self.execute(block, scope)
        except FailureSignal as failure:
            if not failure.ancestry and failure.kind in block.registry:
                failure.ancestry = block.registry.ancestors(failure.kind)
            logger.warning(f"Unhandled failure in {block.name}: {failure}")
            return UnhandledFailure(
                kind=failure.kind,
                failure=failure,
                cleanup_ran=scope.cleanup_ran,
                trace=trace
            )
        except Termination as halt:
            logger.warning(f"Evaluation of {block.name} {halt}")
            return Terminated(
                exit_status=halt.status,
                reason=halt.reason,
                cleanup_ran=scope.cleanup_ran,
                trace=trace
            )

        if result.status == OutcomeStatus.HANDLED:
            return HandledFailure(
                handler_result=result.value,
                kind=result.kind,
                handler_index=result.handler_index,
                failure=result.failure,
                cleanup_ran=scope.cleanup_ran,
                trace=trace
            )
        return Completed(value=result.value, cleanup_ran=scope.cleanup_ran, trace=trace)

    def check(self, block: ProtectedBlock) -> None:
        if not self.config.strict_declarations:
            return
        problems = check_declarations(block)
        if problems:
            raise DeclarationError(
                f"{len(problems)} undeclared checked failure(s) in {block.name}: "
                + "; ".join(str(problem) for problem in problems),
                problems=problems
            )

    def execute(self, block: ProtectedBlock, scope: ExecutionContext) -> BlockResult:
        """
        Run one block in ``scope``, raising unhandled failures and terminations.

        Cleanup runs exactly once unless a termination unwinds through the block.
        """
        if scope.depth > self.config.max_depth:
            raise EvaluationError(
                f"Block nesting exceeds max_depth={self.config.max_depth}",
                context=ErrorContext(component="StructuredErrorRunner", operation=block.name)
            )

        logger.debug(f"Entering {block.name} at depth {scope.depth}")
        scope.trace.record(TraceEventType.ENTER, block.name)
        terminated = False
        try:
            try:
                value = self._run_operations(block, scope)
                result = BlockResult(OutcomeStatus.COMPLETED, value=value)
            except FailureSignal as failure:
                result = self._dispatch(block, scope, failure)
        except Termination:
            terminated = True
            scope.trace.record(TraceEventType.TERMINATE, block.name, "cleanup skipped")
            raise
        finally:
            if not terminated:
                self._run_cleanup(block, scope)

        scope.trace.record(TraceEventType.EXIT, block.name, result.status.value)
        logger.debug(f"Leaving {block.name}: {result.status.value}")
        return result

    def _run_operations(self, block: ProtectedBlock, scope: ExecutionContext) -> Any:
        value = None
        for operation in block.operations:
            scope.trace.record(TraceEventType.OPERATION, block.name, operation.name)
            try:
                value = operation.action(scope)
            except FailureSignal as failure:
                failure.add_frame(f"{block.name}/{operation.name}")
                raise
        return value

    def _dispatch(self, block: ProtectedBlock, scope: ExecutionContext, failure: FailureSignal) -> BlockResult:
        scope.trace.record(TraceEventType.RAISE, block.name, str(failure))

        if failure.kind in block.registry:
            if not failure.ancestry:
                failure.ancestry = block.registry.ancestors(failure.kind)
            selected = block.handlers.match(failure.kind)
        else:
            # Kind from another registry: match on its nearest ancestor known here.
            known = [kind for kind in failure.ancestry if kind in block.registry]
            selected = block.handlers.match(known[0]) if known else None
        if selected is None:
            logger.info(f"No handler in {block.name} for {failure.kind}")
            raise failure

        index, handler = selected
        logger.info(f"Handler {index} ({handler.label}) in {block.name} caught {failure.kind}")
        scope.trace.record(TraceEventType.HANDLER, block.name, f"{index}:{handler.label}")
        try:
            handler_result = handler.body(failure, scope)
        except FailureSignal as raised:
            raised.add_frame(f"{block.name}/handler {index}")
            raise
        return BlockResult(
            OutcomeStatus.HANDLED,
            value=handler_result,
            kind=failure.kind,
            handler_index=index,
            failure=failure
        )

    def _run_cleanup(self, block: ProtectedBlock, scope: ExecutionContext) -> None:
        if block.cleanup is None:
            return
        scope.cleanup_ran = True
        scope.trace.record(TraceEventType.CLEANUP, block.name)
        try:
            block.cleanup(scope)
        except FailureSignal as failure:
            failure.add_frame(f"{block.name}/cleanup")
            raise
        except Termination:
            scope.trace.record(TraceEventType.TERMINATE, block.name, "during cleanup")
            raise


def evaluate(block: ProtectedBlock, *, config: Optional[Any] = None) -> Outcome:
    """Evaluate ``block`` with a fresh runner."""
    return StructuredErrorRunner(config).evaluate(block)
