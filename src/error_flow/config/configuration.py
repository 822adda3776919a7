"""
Configuration management for the error-flow runner.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..error.exceptions import ConfigurationError, ErrorContext

logger = logging.getLogger(__name__)

ENV_PREFIX = "ERROR_FLOW_"

DEFAULT_CONFIG_FILES = ["error_flow.yaml", "error_flow.yml", "error_flow.json"]


class RunnerConfiguration(BaseModel):
    """Configuration for block evaluation."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    # Logging settings
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    json_logging: bool = False

    # Evaluation settings
    strict_declarations: bool = Field(default=False, description="Refuse blocks that fail the declaration check")
    record_trace: bool = Field(default=True, description="Record trace events during evaluation")
    max_depth: int = Field(default=32, description="Maximum nesting depth of protected blocks", ge=1, le=1000)
    echo_output: bool = Field(default=False, description="Log printed output at INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        value_upper = value.upper()
        if value_upper not in valid_levels:
            raise ValueError(f"Invalid log level '{value}'. Must be one of: {valid_levels}")
        return value_upper


def ensure_runner_config(config: Optional[Any] = None) -> RunnerConfiguration:
    """Ensure a valid runner configuration."""
    if isinstance(config, RunnerConfiguration):
        return config
    if config is None:
        config = {}
    try:
        return RunnerConfiguration(**config)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            context=ErrorContext(component="RunnerConfiguration", operation="validate")
        )


def load_config_file(file_path: str) -> Dict[str, Any]:
    """
    Load configuration from a file (YAML or JSON).

    Args:
        file_path: Path to the configuration file

    Returns:
        Dictionary with configuration

    Raises:
        ConfigurationError: If the file is not found or cannot be parsed
    """
    path = Path(file_path).expanduser()

    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {file_path}")

    content = path.read_text(encoding='utf-8')
    try:
        if path.suffix in (".yaml", ".yml"):
            loaded_config = yaml.safe_load(content) or {}
        elif path.suffix == ".json":
            loaded_config = json.loads(content) or {}
        else:
            raise ConfigurationError(f"Unsupported config file format: {file_path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML format in {file_path}: {str(e)}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON format in {file_path}: {str(e)}")

    if not isinstance(loaded_config, dict):
        raise ConfigurationError(f"Configuration in {file_path} must be a mapping")

    logger.debug(f"Loaded configuration from {file_path}")
    return loaded_config


def find_default_config(search_dir: Optional[Path] = None) -> Optional[Path]:
    """Find a configuration file in ``search_dir`` (the working directory by default)."""
    base = search_dir or Path.cwd()
    for filename in DEFAULT_CONFIG_FILES:
        candidate = base / filename
        if candidate.exists():
            return candidate
    return None


def load_configuration_from_env(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Collect ``ERROR_FLOW_*`` variables, e.g. ``ERROR_FLOW_MAX_DEPTH=8``."""
    environ = os.environ if environ is None else environ
    fields = RunnerConfiguration.model_fields
    result = {}
    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name in fields:
            result[name] = value
        else:
            logger.debug(f"Ignoring unknown configuration variable {key}")
    return result


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge two configuration dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if isinstance(value, dict) and key in result and isinstance(result[key], dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value
    return result


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None,
    search_dir: Optional[Path] = None
) -> RunnerConfiguration:
    """
    Load configuration from defaults, a file and the environment.

    Environment variables take precedence over the file.

    Args:
        config_path: Explicit configuration file; discovered when omitted
        environ: Environment mapping, ``os.environ`` by default
        search_dir: Directory searched for a default configuration file

    Returns:
        Validated RunnerConfiguration
    """
    config: Dict[str, Any] = {}

    if config_path:
        logger.info(f"Loading configuration from specified file: {config_path}")
        config = merge_configs(config, load_config_file(config_path))
    else:
        discovered = find_default_config(search_dir)
        if discovered:
            logger.info(f"Loading configuration from discovered file: {discovered}")
            config = merge_configs(config, load_config_file(str(discovered)))
        else:
            logger.debug("No configuration file found, using defaults and environment variables")

    config = merge_configs(config, load_configuration_from_env(environ))
    return ensure_runner_config(config)
