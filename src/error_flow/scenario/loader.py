"""
Loading scenario documents from files or from the bundled collection.
"""
import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from ..error.exceptions import ErrorContext, ScenarioError
from ..kinds import KindRegistry
from .compiler import Scenario, ScenarioCompiler
from .schemas import ScenarioSpec

logger = logging.getLogger(__name__)

SCENARIO_SUFFIXES = (".yaml", ".yml", ".json")


def _bundled_dir():
    return resources.files("error_flow.scenario").joinpath("bundled")


def list_bundled() -> List[str]:
    """Names of the bundled scenarios, sorted."""
    names = []
    for entry in _bundled_dir().iterdir():
        if entry.name.endswith(SCENARIO_SUFFIXES):
            names.append(entry.name.rsplit(".", 1)[0])
    return sorted(names)


def parse_document(content: str, source: str, as_json: bool = False) -> Dict[str, Any]:
    """Parse YAML (or JSON) text into a mapping."""
    context = ErrorContext(component="ScenarioLoader", operation="parse")
    try:
        data = json.loads(content) if as_json else yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ScenarioError(f"Invalid YAML in {source}: {e}", context=context)
    except json.JSONDecodeError as e:
        raise ScenarioError(f"Invalid JSON in {source}: {e}", context=context)
    if not isinstance(data, dict):
        raise ScenarioError(f"Scenario {source} must be a mapping", context=context)
    return data


def build_scenario(data: Dict[str, Any], registry: Optional[KindRegistry] = None, source: str = "<data>") -> Scenario:
    """
    Validate a scenario mapping and compile it.

    Args:
        data: Parsed scenario document
        registry: Registry to derive the scenario's kinds from
        source: Where the data came from, for error messages

    Returns:
        Compiled Scenario

    Raises:
        ScenarioError: If the document is invalid
    """
    try:
        spec = ScenarioSpec.model_validate(data)
    except ValidationError as e:
        raise ScenarioError(
            f"Invalid scenario {source}: {e}",
            context=ErrorContext(component="ScenarioLoader", operation="validate")
        )
    return ScenarioCompiler(registry).compile(spec)


def load_scenario(reference: Union[str, Path], registry: Optional[KindRegistry] = None) -> Scenario:
    """
    Load a scenario from a file path or a bundled scenario name.

    Args:
        reference: Path to a ``.yaml``/``.yml``/``.json`` file, or a bundled name

    Returns:
        Compiled Scenario
    """
    path = Path(reference)
    if path.is_file():
        logger.debug(f"Loading scenario from {path}")
        content = path.read_text(encoding="utf-8")
        return build_scenario(parse_document(content, str(path), path.suffix == ".json"), registry, str(path))

    name = str(reference)
    for suffix in SCENARIO_SUFFIXES:
        entry = _bundled_dir().joinpath(name + suffix)
        if entry.is_file():
            logger.debug(f"Loading bundled scenario {name}")
            content = entry.read_text(encoding="utf-8")
            return build_scenario(parse_document(content, name, suffix == ".json"), registry, name)

    raise ScenarioError(
        f"Scenario not found: {reference}",
        context=ErrorContext(component="ScenarioLoader", operation="load")
    )
