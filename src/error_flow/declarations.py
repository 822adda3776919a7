"""
Static "may raise" checking.

An operation's ``declares`` set lists the kinds it may raise. Every checked
kind that can leave an operation must be caught by a handler of the block or
re-declared by the block itself. Unchecked kinds (the ``RuntimeFailure``
subtree) need neither. The check never runs the block.

Handlers declare what their bodies raise the same way. Those kinds must be
re-declared by the block, since sibling handlers never catch them.

Nested blocks attached with ``Operation.run_block`` behave like a nested try:
whatever their own handlers do not catch is treated as raised by the
operation that runs them.
"""
import logging
from dataclasses import dataclass
from typing import List, Set

from .block import Operation, ProtectedBlock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeclarationProblem:
    block: str
    operation: str
    kind: str

    def __str__(self) -> str:
        return (
            f"{self.block}/{self.operation} may raise checked kind '{self.kind}' "
            f"that is neither handled nor declared by '{self.block}'"
        )


def may_raise(operation: Operation) -> Set[str]:
    """Kinds that can leave ``operation``, including those escaping a nested block."""
    kinds = set(operation.declares)
    nested = operation.nested
    if nested is not None:
        for inner in nested.operations:
            kinds.update(kind for kind in may_raise(inner) if not nested.handlers.covers(kind))
        # A handler's own failures are never caught by its sibling handlers.
        for handler in nested.handlers:
            kinds.update(handler.declares)
    return kinds


def _is_covered(block: ProtectedBlock, kind: str, by_handlers: bool) -> bool:
    registry = block.registry
    registry.require(kind)
    if not registry.is_checked(kind):
        return True
    if by_handlers and block.handlers.covers(kind):
        return True
    return any(registry.is_subkind(kind, declared) for declared in block.declares)


def check_declarations(block: ProtectedBlock) -> List[DeclarationProblem]:
    """
    Report every checked kind that can leave an operation or a handler unhandled.

    Args:
        block: Block to check

    Returns:
        List of problems, empty when the block is well declared
    """
    problems: List[DeclarationProblem] = []

    for operation in block.operations:
        for kind in sorted(may_raise(operation)):
            if not _is_covered(block, kind, by_handlers=True):
                problems.append(DeclarationProblem(block.name, operation.name, kind))

    for index, handler in enumerate(block.handlers):
        for kind in sorted(handler.declares):
            if not _is_covered(block, kind, by_handlers=False):
                problems.append(DeclarationProblem(block.name, f"handler {index}", kind))

    if problems:
        logger.debug(f"Declaration check of {block.name} found {len(problems)} problem(s)")
    return problems
