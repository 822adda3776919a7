"""
Runtime signals raised while a protected block is evaluated.

``FailureSignal`` carries a recoverable failure kind and is matched by
handlers. ``Termination`` is an unconditional halt; like ``SystemExit`` it
derives from ``BaseException`` so that ``except Exception`` in operation code
cannot swallow it.
"""
from typing import List, NoReturn, Optional

from .kinds import KindLike, kind_name


class FailureSignal(Exception):
    """A raised failure of a given kind."""

    def __init__(self, kind: KindLike, message: Optional[str] = None):
        super().__init__(message)
        self.kind = kind_name(kind)
        self.message = message
        # Innermost frame first, e.g. "outer/read-file".
        self.frames: List[str] = []
        self.ancestry: List[str] = []

    def add_frame(self, frame: str) -> None:
        self.frames.append(frame)

    def __str__(self) -> str:
        if self.message:
            return f"{self.kind}: {self.message}"
        return self.kind

    def __repr__(self) -> str:
        return f"FailureSignal(kind={self.kind!r}, message={self.message!r})"

    def format_trace(self) -> str:
        """
        Render the failure the way a stack trace reads.

        Returns:
            The ``str()`` line, one ``at`` line per frame and the kind ancestry
        """
        lines = [str(self)]
        lines.extend(f"    at {frame}" for frame in self.frames)
        if self.ancestry:
            lines.append("    kind: " + " < ".join(self.ancestry))
        return "\n".join(lines)


class Termination(BaseException):
    """Unconditional halt: bypasses handler matching and cleanup."""

    def __init__(self, status: int = 0, reason: Optional[str] = None):
        super().__init__(status)
        self.status = status
        self.reason = reason

    def __str__(self) -> str:
        if self.reason:
            return f"terminated with status {self.status}: {self.reason}"
        return f"terminated with status {self.status}"


def raise_failure(kind: KindLike, message: Optional[str] = None) -> NoReturn:
    """Raise a failure of ``kind`` from operation, handler or cleanup code."""
    raise FailureSignal(kind, message)


def terminate(status: int = 0, reason: Optional[str] = None) -> NoReturn:
    """Halt the whole evaluation immediately, skipping every pending cleanup."""
    raise Termination(status, reason)
