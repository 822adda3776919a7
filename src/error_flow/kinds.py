"""
Failure kinds and the parent-lookup table that arranges them into a tree.

Kinds are plain tags. The hierarchy lives in a ``KindRegistry`` rather than
in class inheritance, so ancestor checks are a walk up the parent table.
"""
import logging
import re
from enum import Enum
from typing import Dict, Iterator, List, Optional, Union

from .error.exceptions import ErrorContext, KindError

logger = logging.getLogger(__name__)


class BuiltinKind(str, Enum):
    """Failure kinds every registry starts with."""
    FAILURE = "Failure"
    IO_FAILURE = "IOFailure"
    FILE_NOT_FOUND = "FileNotFound"
    SQL_FAILURE = "SQLFailure"
    RUNTIME_FAILURE = "RuntimeFailure"
    ARITHMETIC_FAILURE = "ArithmeticFailure"
    DIVISION_BY_ZERO = "DivisionByZero"
    BOUNDS_FAILURE = "BoundsFailure"
    INDEX_OUT_OF_RANGE = "IndexOutOfRange"
    NULL_REFERENCE = "NullReference"
    FORMAT_FAILURE = "FormatFailure"


ROOT_KIND = BuiltinKind.FAILURE.value

# Kinds at or below this one need no declaration handling.
UNCHECKED_ROOT = BuiltinKind.RUNTIME_FAILURE.value

BUILTIN_PARENTS: Dict[BuiltinKind, Optional[BuiltinKind]] = {
    BuiltinKind.FAILURE: None,
    BuiltinKind.IO_FAILURE: BuiltinKind.FAILURE,
    BuiltinKind.FILE_NOT_FOUND: BuiltinKind.IO_FAILURE,
    BuiltinKind.SQL_FAILURE: BuiltinKind.FAILURE,
    BuiltinKind.RUNTIME_FAILURE: BuiltinKind.FAILURE,
    BuiltinKind.ARITHMETIC_FAILURE: BuiltinKind.RUNTIME_FAILURE,
    BuiltinKind.DIVISION_BY_ZERO: BuiltinKind.ARITHMETIC_FAILURE,
    BuiltinKind.BOUNDS_FAILURE: BuiltinKind.RUNTIME_FAILURE,
    BuiltinKind.INDEX_OUT_OF_RANGE: BuiltinKind.BOUNDS_FAILURE,
    BuiltinKind.NULL_REFERENCE: BuiltinKind.RUNTIME_FAILURE,
    BuiltinKind.FORMAT_FAILURE: BuiltinKind.RUNTIME_FAILURE,
}

KIND_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

KindLike = Union[str, BuiltinKind]


def kind_name(kind: KindLike) -> str:
    """Return the plain tag for a builtin member or a kind name."""
    if isinstance(kind, Enum):
        return kind.value
    return str(kind)


class KindRegistry:
    """
    Parent-lookup table for failure kinds.

    Every kind has exactly one parent except the root ``Failure``. The table
    is open: callers may declare their own kinds below any known kind.
    """

    def __init__(self, parents: Optional[Dict[KindLike, Optional[KindLike]]] = None):
        self._parents: Dict[str, Optional[str]] = {
            kind_name(kind): (kind_name(parent) if parent is not None else None)
            for kind, parent in (parents or {ROOT_KIND: None}).items()
        }
        self._validate()

    def _validate(self) -> None:
        """Reject tables that do not form a single tree."""
        context = ErrorContext(component="KindRegistry", operation="__init__")
        roots = [name for name, parent in self._parents.items() if parent is None]
        if len(roots) != 1:
            raise KindError(f"A kind table needs exactly one root, found {roots}", context=context)

        for name, parent in self._parents.items():
            if parent is not None and parent not in self._parents:
                raise KindError(f"Unknown parent kind '{parent}' for '{name}'", context=context)

        for name in self._parents:
            seen = set()
            current: Optional[str] = name
            while current is not None:
                if current in seen:
                    raise KindError(f"Kind '{name}' is part of a parent cycle", context=context)
                seen.add(current)
                current = self._parents[current]

    @classmethod
    def builtin(cls) -> "KindRegistry":
        """Create a registry holding the builtin kind tree."""
        return cls({
            kind.value: (parent.value if parent is not None else None)
            for kind, parent in BUILTIN_PARENTS.items()
        })

    def derive(self) -> "KindRegistry":
        """Copy this registry so further declarations stay local to the copy."""
        return KindRegistry(self._parents)

    def declare(self, name: KindLike, parent: KindLike = ROOT_KIND) -> str:
        """
        Declare a new kind below ``parent``.

        Args:
            name: Name of the new kind
            parent: Existing kind the new kind derives from

        Returns:
            The declared kind name

        Raises:
            KindError: If the name is malformed or taken, or the parent is unknown
        """
        name = kind_name(name)
        parent = kind_name(parent)
        context = ErrorContext(component="KindRegistry", operation="declare")
        if not KIND_NAME_RE.match(name):
            raise KindError(f"Invalid kind name '{name}'", context=context)
        if name in self._parents:
            raise KindError(f"Kind '{name}' is already declared", context=context)
        if parent not in self._parents:
            raise KindError(f"Unknown parent kind '{parent}' for '{name}'", context=context)
        self._parents[name] = parent
        logger.debug(f"Declared kind {name} < {parent}")
        return name

    def require(self, kind: KindLike) -> str:
        """Return the kind name, raising ``KindError`` if it is not declared."""
        name = kind_name(kind)
        if name not in self._parents:
            raise KindError(
                f"Unknown failure kind '{name}'",
                context=ErrorContext(component="KindRegistry", operation="require")
            )
        return name

    def __contains__(self, kind: object) -> bool:
        if not isinstance(kind, (str, Enum)):
            return False
        return kind_name(kind) in self._parents

    def __iter__(self) -> Iterator[str]:
        return iter(self._parents)

    def __len__(self) -> int:
        return len(self._parents)

    def parent_of(self, kind: KindLike) -> Optional[str]:
        return self._parents[self.require(kind)]

    def children_of(self, kind: KindLike) -> List[str]:
        name = self.require(kind)
        return [child for child, parent in self._parents.items() if parent == name]

    def ancestors(self, kind: KindLike) -> List[str]:
        """
        Return the kind followed by each ancestor, nearest first.

        Args:
            kind: Kind to walk up from

        Returns:
            List ending with the root kind
        """
        chain = []
        current: Optional[str] = self.require(kind)
        while current is not None:
            chain.append(current)
            current = self._parents[current]
        return chain

    def is_subkind(self, kind: KindLike, ancestor: KindLike) -> bool:
        """True when ``ancestor`` is ``kind`` itself or any of its ancestors."""
        return self.require(ancestor) in self.ancestors(kind)

    def is_checked(self, kind: KindLike) -> bool:
        """Checked kinds are every kind outside the ``RuntimeFailure`` subtree."""
        if UNCHECKED_ROOT not in self._parents:
            return True
        return not self.is_subkind(kind, UNCHECKED_ROOT)

    def tree(self, kind: KindLike = ROOT_KIND) -> Dict[str, dict]:
        """Nested ``{name: {child: {...}}}`` view used for display."""
        name = self.require(kind)
        return {name: {child: self.tree(child)[child] for child in self.children_of(name)}}
