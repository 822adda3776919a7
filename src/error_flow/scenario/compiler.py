"""
Turns validated scenario schemas into protected blocks.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, List, Optional, Set

from ..block import Handler, Operation, ProtectedBlock
from ..declarations import may_raise
from ..error.exceptions import ErrorContext, ErrorFlowError, ScenarioError
from ..kinds import KindRegistry
from ..outcome import Outcome
from ..runner import ExecutionContext
from ..signals import FailureSignal
from .schemas import BlockSpec, ExpectSpec, HandlerSpec, ScenarioSpec, StepSpec

logger = logging.getLogger(__name__)

StepAction = Callable[[ExecutionContext, Optional[FailureSignal]], Any]


def render_text(text: str, failure: Optional[FailureSignal]) -> str:
    """Fill ``{failure}``, ``{message}`` and ``{kind}`` inside handler output."""
    if failure is None:
        return text
    return (
        text.replace("{failure}", str(failure))
        .replace("{message}", failure.message or "")
        .replace("{kind}", failure.kind)
    )


@dataclass
class Scenario:
    """A compiled scenario, ready to evaluate."""
    name: str
    description: str
    block: ProtectedBlock
    registry: KindRegistry
    expect: Optional[ExpectSpec] = None

    def verify(self, outcome: Outcome) -> List[str]:
        """
        Compare an outcome against the scenario's expectation.

        Returns:
            Human-readable mismatches, empty when everything matched
        """
        if self.expect is None:
            return []
        mismatches = []
        expect = self.expect
        if outcome.status.value != expect.outcome:
            mismatches.append(f"outcome: expected {expect.outcome}, got {outcome.status.value}")
        if expect.output is not None and list(outcome.output) != expect.output:
            mismatches.append(f"output: expected {expect.output}, got {list(outcome.output)}")
        if expect.cleanup_ran is not None and outcome.cleanup_ran != expect.cleanup_ran:
            mismatches.append(f"cleanup_ran: expected {expect.cleanup_ran}, got {outcome.cleanup_ran}")
        if expect.kind is not None and getattr(outcome, "kind", None) != expect.kind:
            mismatches.append(f"kind: expected {expect.kind}, got {getattr(outcome, 'kind', None)}")
        if "result" in expect.model_fields_set:
            actual = getattr(outcome, "handler_result", getattr(outcome, "value", None))
            if actual != expect.result:
                mismatches.append(f"result: expected {expect.result!r}, got {actual!r}")
        return mismatches


class ScenarioCompiler:
    """Compiles one scenario document against its own kind registry."""

    def __init__(self, registry: Optional[KindRegistry] = None):
        self.registry = (registry or KindRegistry.builtin()).derive()

    def compile(self, spec: ScenarioSpec) -> Scenario:
        context = ErrorContext(component="ScenarioCompiler", operation=spec.name)
        try:
            for name, parent in spec.kinds.items():
                self.registry.declare(name, parent)
            block = self.compile_block(spec.block)
        except ScenarioError:
            raise
        except ErrorFlowError as e:
            raise ScenarioError(f"Scenario '{spec.name}' is invalid: {e}", context=context) from e
        logger.debug(f"Compiled scenario {spec.name}")
        return Scenario(
            name=spec.name,
            description=spec.description,
            block=block,
            registry=self.registry,
            expect=spec.expect
        )

    def compile_block(self, spec: BlockSpec) -> ProtectedBlock:
        operations = [self._operation(step, index) for index, step in enumerate(spec.operations, start=1)]
        handlers = [self._handler(handler, operations) for handler in spec.handlers]
        cleanup = None
        if spec.cleanup is not None:
            cleanup = self._sequence([self._step(step) for step in spec.cleanup])
        return ProtectedBlock(
            operations=operations,
            handlers=handlers,
            cleanup=cleanup,
            name=spec.name,
            declares=[self.registry.require(kind) for kind in spec.declares],
            registry=self.registry
        )

    def _operation(self, step: StepSpec, index: int) -> Operation:
        name = step.name or f"{step.action}-{index}"
        if step.action == "block":
            return Operation.run_block(self.compile_block(step.block), name=name)

        action = self._step(step)
        return Operation(
            name=name,
            action=lambda ctx: action(ctx, None),
            declares=self._declares(step)
        )

    def _declares(self, step: StepSpec) -> FrozenSet[str]:
        declares = step.declares
        if declares is None:
            declares = [step.raise_] if step.action == "raise" else []
        return frozenset(self.registry.require(kind) for kind in declares)

    def _step(self, step: StepSpec) -> StepAction:
        """Compile one step into an action called with the bound failure, if any."""
        action = step.action
        if action == "print":
            text = step.print_
            return lambda ctx, failure: ctx.print(render_text(text, failure))
        if action == "raise":
            kind = self.registry.require(step.raise_)
            message = step.message
            return lambda ctx, failure: ctx.raise_failure(kind, render_text(message, failure) if message else message)
        if action == "terminate":
            status = step.terminate
            return lambda ctx, failure: ctx.terminate(status)
        if action == "return":
            value = step.return_
            return lambda ctx, failure: value
        nested = self.compile_block(step.block)
        return lambda ctx, failure: ctx.run(nested)

    def _handler(self, spec: HandlerSpec, operations: List[Operation]) -> Handler:
        kinds = tuple(self.registry.require(kind) for kind in spec.catch)
        rethrow = spec.rethrow
        if isinstance(rethrow, str):
            rethrow = self.registry.require(rethrow)

        steps: List[StepAction] = []
        declares: Set[str] = set()
        for step in spec.steps:
            if step.action == "block":
                nested = Operation.run_block(self.compile_block(step.block))
                declares.update(may_raise(nested))
                steps.append(lambda ctx, failure, nested=nested: nested.action(ctx))
            else:
                declares.update(self._declares(step))
                steps.append(self._step(step))

        if rethrow is True:
            # The bound failure is one of the caught kinds the operations raise.
            for operation in operations:
                declares.update(
                    kind for kind in may_raise(operation)
                    if set(self.registry.ancestors(kind)).intersection(kinds)
                )
        elif isinstance(rethrow, str):
            declares.add(rethrow)

        def body(failure: FailureSignal, ctx: ExecutionContext) -> Any:
            if spec.print_ is not None:
                ctx.print(render_text(spec.print_, failure))
            for step_action in steps:
                step_action(ctx, failure)
            if rethrow is True:
                raise failure
            if isinstance(rethrow, str):
                ctx.raise_failure(rethrow, render_text(spec.message, failure) if spec.message else None)
            return spec.result

        return Handler(kinds=kinds, body=body, name=spec.name, declares=declares)

    @staticmethod
    def _sequence(actions: List[StepAction]) -> Callable[[ExecutionContext], Any]:
        def run_all(ctx: ExecutionContext) -> Any:
            value = None
            for action in actions:
                value = action(ctx, None)
            return value
        return run_all
