"""Pytest configuration and fixtures."""
from typing import Any, Callable, List

import pytest

from error_flow.block import Handler, Operation
from error_flow.config import RunnerConfiguration
from error_flow.kinds import KindRegistry
from error_flow.runner import StructuredErrorRunner


class Recorder:
    """Collects calls made by operations, handlers and cleanup."""

    def __init__(self):
        self.calls: List[str] = []

    def count(self, name: str) -> int:
        return self.calls.count(name)

    def operation(self, name: str, result: Any = None) -> Operation:
        def action(ctx):
            self.calls.append(name)
            return result
        return Operation(name=name, action=action)

    def raising(self, name: str, kind: str, message: str = None, declares=None) -> Operation:
        def action(ctx):
            self.calls.append(name)
            ctx.raise_failure(kind, message)
        return Operation(name=name, action=action, declares=declares if declares is not None else frozenset())

    def terminating(self, name: str, status: int = 0) -> Operation:
        def action(ctx):
            self.calls.append(name)
            ctx.terminate(status)
        return Operation(name=name, action=action)

    def handler(self, kinds, result: Any, name: str = None) -> Handler:
        label = name or f"handler:{result}"

        def body(failure, ctx):
            self.calls.append(label)
            return result
        return Handler(kinds=kinds, body=body, name=name)

    def cleanup(self, text: str = "done") -> Callable:
        def action(ctx):
            self.calls.append("cleanup")
            ctx.print(text)
        return action


@pytest.fixture
def registry():
    """A fresh builtin kind registry."""
    return KindRegistry.builtin()


@pytest.fixture
def config():
    """Create a test configuration."""
    return RunnerConfiguration(log_level="DEBUG", max_depth=8)


@pytest.fixture
def runner(config):
    return StructuredErrorRunner(config)


@pytest.fixture
def recorder():
    return Recorder()
