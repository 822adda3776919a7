"""
Building blocks of an evaluation request: operations, handlers and the
protected block that ties them to a cleanup action.
"""
import logging
from dataclasses import dataclass, field
from itertools import combinations
from typing import TYPE_CHECKING, Any, Callable, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Union

from .error.exceptions import ErrorContext, EvaluationError, HandlerOrderingError
from .kinds import KindLike, KindRegistry, kind_name
from .signals import FailureSignal

if TYPE_CHECKING:
    from .runner import ExecutionContext

logger = logging.getLogger(__name__)

Action = Callable[["ExecutionContext"], Any]
HandlerBody = Callable[[FailureSignal, "ExecutionContext"], Any]


def _kind_set(kinds: Union[KindLike, Iterable[KindLike], None]) -> Tuple[str, ...]:
    if kinds is None:
        return ()
    if isinstance(kinds, str):
        return (kind_name(kinds),)
    names: List[str] = []
    for kind in kinds:
        name = kind_name(kind)
        if name not in names:
            names.append(name)
    return tuple(names)


@dataclass(frozen=True)
class Operation:
    """
    One step of a protected block.

    ``declares`` is the operation's "may raise" list. It is only consulted by
    the static declaration check, never at runtime.
    """
    name: str
    action: Action
    declares: FrozenSet[str] = field(default_factory=frozenset)
    nested: Optional["ProtectedBlock"] = None

    def __post_init__(self):
        object.__setattr__(self, "declares", frozenset(_kind_set(self.declares)))

    @classmethod
    def run_block(cls, block: "ProtectedBlock", name: Optional[str] = None) -> "Operation":
        """Operation that evaluates ``block`` as a nested try."""
        return cls(
            name=name or block.name,
            action=lambda ctx: ctx.run(block),
            declares=frozenset(),
            nested=block
        )


@dataclass(frozen=True)
class Handler:
    """
    Catches one or more failure kinds and runs ``body`` with the failure bound.

    ``declares`` lists the kinds the body itself may raise. Like
    ``Operation.declares`` it only feeds the static declaration check.
    """
    kinds: Tuple[str, ...]
    body: HandlerBody
    name: Optional[str] = None
    declares: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        kinds = _kind_set(self.kinds)
        if not kinds:
            raise EvaluationError(
                "A handler must accept at least one failure kind",
                context=ErrorContext(component="Handler", operation="__init__")
            )
        object.__setattr__(self, "kinds", kinds)
        object.__setattr__(self, "declares", frozenset(_kind_set(self.declares)))

    @property
    def label(self) -> str:
        return self.name or " | ".join(self.kinds)


class HandlerChain:
    """
    Ordered handler list, validated when it is built.

    A handler that could never be selected because an earlier handler already
    accepts the same kind or one of its ancestors is rejected with
    ``HandlerOrderingError``. Alternatives inside one multi-kind handler may
    not be related by ancestry either.
    """

    def __init__(self, handlers: Sequence[Handler] = (), registry: Optional[KindRegistry] = None):
        self.registry = registry or KindRegistry.builtin()
        self.handlers: Tuple[Handler, ...] = tuple(handlers)
        self._validate()

    def _validate(self) -> None:
        for index, handler in enumerate(self.handlers):
            for kind in handler.kinds:
                self.registry.require(kind)

            for first, second in combinations(handler.kinds, 2):
                if self.registry.is_subkind(first, second) or self.registry.is_subkind(second, first):
                    raise HandlerOrderingError(
                        f"Handler {index} lists related alternatives '{first}' and '{second}'",
                        shadowed=second,
                        shadowing=first
                    )

            for earlier_index, earlier in enumerate(self.handlers[:index]):
                for kind in handler.kinds:
                    for caught in earlier.kinds:
                        if self.registry.is_subkind(kind, caught):
                            raise HandlerOrderingError(
                                f"Handler {index} for '{kind}' is unreachable: "
                                f"handler {earlier_index} already catches '{caught}'",
                                shadowed=kind,
                                shadowing=caught
                            )

    def match(self, kind: KindLike) -> Optional[Tuple[int, Handler]]:
        """
        Select the first handler accepting ``kind`` or one of its ancestors.

        Args:
            kind: Kind of the raised failure

        Returns:
            ``(index, handler)`` or ``None`` when nothing matches
        """
        lineage = set(self.registry.ancestors(kind))
        for index, handler in enumerate(self.handlers):
            if lineage.intersection(handler.kinds):
                return index, handler
        return None

    def covers(self, kind: KindLike) -> bool:
        return self.match(kind) is not None

    def __iter__(self):
        return iter(self.handlers)

    def __len__(self) -> int:
        return len(self.handlers)


class ProtectedBlock:
    """Operations, handlers and an optional cleanup evaluated as one try."""

    def __init__(
        self,
        operations: Sequence[Operation] = (),
        handlers: Union[HandlerChain, Sequence[Handler]] = (),
        cleanup: Optional[Action] = None,
        name: str = "block",
        declares: Iterable[KindLike] = (),
        registry: Optional[KindRegistry] = None
    ):
        self.operations: Tuple[Operation, ...] = tuple(operations)
        if isinstance(handlers, HandlerChain):
            self.handlers = handlers
        else:
            self.handlers = HandlerChain(handlers, registry=registry)
        self.cleanup = cleanup
        self.name = name
        self.declares: FrozenSet[str] = frozenset(_kind_set(declares))

    @property
    def registry(self) -> KindRegistry:
        return self.handlers.registry

    def __repr__(self) -> str:
        return (
            f"ProtectedBlock(name={self.name!r}, operations={len(self.operations)}, "
            f"handlers={len(self.handlers)}, cleanup={self.cleanup is not None})"
        )
