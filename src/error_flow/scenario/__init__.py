"""
Declarative scenarios: YAML/JSON documents compiled into protected blocks.
"""
from .compiler import Scenario, ScenarioCompiler, render_text
from .loader import build_scenario, list_bundled, load_scenario, parse_document
from .schemas import BlockSpec, ExpectSpec, HandlerSpec, ScenarioSpec, StepSpec

__all__ = [
    "Scenario",
    "ScenarioCompiler",
    "render_text",
    "build_scenario",
    "list_bundled",
    "load_scenario",
    "parse_document",
    "BlockSpec",
    "ExpectSpec",
    "HandlerSpec",
    "ScenarioSpec",
    "StepSpec",
]
