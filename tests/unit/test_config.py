import json
import logging

import pytest

from error_flow.config import (
    RunnerConfiguration,
    ensure_runner_config,
    load_config,
    load_config_file,
    load_configuration_from_env,
    merge_configs,
)
from error_flow.error.exceptions import ConfigurationError
from error_flow.utils.logging import ContextLoggerAdapter, JsonFormatter, LogConfig, get_logger


def test_defaults():
    config = RunnerConfiguration()
    assert config.log_level == "INFO"
    assert config.strict_declarations is False
    assert config.record_trace is True
    assert config.max_depth == 32


def test_log_level_is_normalized():
    assert RunnerConfiguration(log_level="debug").log_level == "DEBUG"


@pytest.mark.parametrize("values", [
    {"log_level": "LOUD"},
    {"max_depth": 0},
    {"max_depth": 5000},
    {"unknown_setting": True},
])
def test_invalid_values_raise_configuration_error(values):
    with pytest.raises(ConfigurationError):
        ensure_runner_config(values)


def test_ensure_passes_through_existing_config():
    config = RunnerConfiguration(max_depth=4)
    assert ensure_runner_config(config) is config


def test_load_yaml_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("strict_declarations: true\nmax_depth: 4\n", encoding="utf-8")
    config = load_config(str(path), environ={})
    assert config.strict_declarations is True
    assert config.max_depth == 4


def test_discovers_default_file(tmp_path):
    (tmp_path / "error_flow.json").write_text(json.dumps({"record_trace": False}), encoding="utf-8")
    config = load_config(environ={}, search_dir=tmp_path)
    assert config.record_trace is False


def test_environment_overrides_file(tmp_path):
    path = tmp_path / "error_flow.yaml"
    path.write_text("max_depth: 4\nlog_level: WARNING\n", encoding="utf-8")
    config = load_config(str(path), environ={"ERROR_FLOW_MAX_DEPTH": "9", "OTHER": "x"})
    assert config.max_depth == 9
    assert config.log_level == "WARNING"


def test_env_ignores_unknown_variables():
    assert load_configuration_from_env({"ERROR_FLOW_NOPE": "1", "ERROR_FLOW_ECHO_OUTPUT": "true"}) == {
        "echo_output": "true"
    }


def test_missing_and_malformed_files(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config_file(str(tmp_path / "absent.yaml"))

    bad = tmp_path / "bad.yaml"
    bad.write_text("max_depth: [", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config_file(str(bad))

    listing = tmp_path / "list.yaml"
    listing.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config_file(str(listing))

    other = tmp_path / "config.toml"
    other.write_text("", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config_file(str(other))


def test_merge_configs_is_deep():
    merged = merge_configs({"a": {"x": 1, "y": 2}, "b": 1}, {"a": {"y": 3}, "c": 4})
    assert merged == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}


def test_json_formatter_includes_context():
    record = logging.LogRecord("error_flow.runner", logging.INFO, __file__, 10, "caught %s", ("IOFailure",), None)
    record.scenario = "finally-resource"
    data = json.loads(JsonFormatter(application="error_flow").format(record))
    assert data["message"] == "caught IOFailure"
    assert data["scenario"] == "finally-resource"
    assert data["application"] == "error_flow"


def test_get_logger_with_context():
    assert isinstance(get_logger("error_flow.test", block="main"), ContextLoggerAdapter)
    assert isinstance(get_logger("error_flow.test"), logging.Logger)


def test_log_config_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "error_flow.log"
    root = logging.getLogger()
    saved = (root.level, root.handlers[:])
    try:
        LogConfig(log_level="DEBUG", log_file=log_file, json_logging=True).configure()
        logging.getLogger("error_flow.test").info("hello")
        for handler in root.handlers:
            handler.flush()
        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["message"] == "hello"
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        root.setLevel(saved[0])
        for handler in saved[1]:
            root.addHandler(handler)
