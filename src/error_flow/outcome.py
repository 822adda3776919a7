"""
Evaluation outcomes and the event trace recorded while a block runs.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .signals import FailureSignal


class TraceEventType(str, Enum):
    """Kinds of events recorded during an evaluation."""
    ENTER = "enter"
    OPERATION = "operation"
    RAISE = "raise"
    HANDLER = "handler"
    CLEANUP = "cleanup"
    TERMINATE = "terminate"
    OUTPUT = "output"
    EXIT = "exit"


@dataclass(frozen=True)
class TraceEvent:
    event: TraceEventType
    block: str
    detail: str = ""

    def __str__(self) -> str:
        text = f"{self.event.value:<9} {self.block}"
        if self.detail:
            text += f" {self.detail}"
        return text


class EvaluationTrace:
    """Ordered record of what happened during one evaluation."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.events: List[TraceEvent] = []
        # Output is captured even when event recording is off.
        self.output: List[str] = []

    def record(self, event: TraceEventType, block: str, detail: str = "") -> None:
        if self.enabled:
            self.events.append(TraceEvent(event, block, detail))

    def emit(self, block: str, text: str) -> None:
        self.output.append(text)
        self.record(TraceEventType.OUTPUT, block, text)

    def count(self, event: TraceEventType, block: Optional[str] = None) -> int:
        return sum(
            1 for item in self.events
            if item.event == event and (block is None or item.block == block)
        )

    def lines(self) -> List[str]:
        return [str(item) for item in self.events]


class OutcomeStatus(str, Enum):
    """Terminal states of a block evaluation."""
    COMPLETED = "completed"
    HANDLED = "handled"
    UNHANDLED = "unhandled"
    TERMINATED = "terminated"


class Outcome:
    """Common surface of every outcome variant."""
    status: OutcomeStatus
    cleanup_ran: bool
    trace: EvaluationTrace

    @property
    def output(self) -> List[str]:
        return self.trace.output

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "cleanup_ran": self.cleanup_ran,
            "output": list(self.output),
            "trace": self.trace.lines(),
        }


@dataclass(frozen=True, eq=False)
class Completed(Outcome):
    value: Any = None
    cleanup_ran: bool = False
    trace: EvaluationTrace = field(default_factory=EvaluationTrace)
    status = OutcomeStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["value"] = self.value
        return data


@dataclass(frozen=True, eq=False)
class HandledFailure(Outcome):
    handler_result: Any = None
    kind: str = ""
    handler_index: int = -1
    failure: Optional[FailureSignal] = None
    cleanup_ran: bool = False
    trace: EvaluationTrace = field(default_factory=EvaluationTrace)
    status = OutcomeStatus.HANDLED

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "handler_result": self.handler_result,
            "kind": self.kind,
            "handler_index": self.handler_index,
        })
        return data


@dataclass(frozen=True, eq=False)
class UnhandledFailure(Outcome):
    kind: str = ""
    failure: Optional[FailureSignal] = None
    cleanup_ran: bool = False
    trace: EvaluationTrace = field(default_factory=EvaluationTrace)
    status = OutcomeStatus.UNHANDLED

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["kind"] = self.kind
        if self.failure is not None:
            data["message"] = self.failure.message
            data["failure_trace"] = self.failure.format_trace()
        return data


@dataclass(frozen=True, eq=False)
class Terminated(Outcome):
    exit_status: int = 0
    reason: Optional[str] = None
    cleanup_ran: bool = False
    trace: EvaluationTrace = field(default_factory=EvaluationTrace)
    status = OutcomeStatus.TERMINATED

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["exit_status"] = self.exit_status
        return data
