"""
Configuration components for error-flow.
"""
from .configuration import (
    RunnerConfiguration,
    ensure_runner_config,
    find_default_config,
    load_config,
    load_config_file,
    load_configuration_from_env,
    merge_configs,
)

__all__ = [
    "RunnerConfiguration",
    "ensure_runner_config",
    "find_default_config",
    "load_config",
    "load_config_file",
    "load_configuration_from_env",
    "merge_configs",
]
