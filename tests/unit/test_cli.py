import json
import logging

import pytest
from typer.testing import CliRunner

from error_flow.cli import app

cli_runner = CliRunner()

# Keep log records out of captured command output
QUIET = {"ERROR_FLOW_LOG_LEVEL": "CRITICAL"}


@pytest.fixture(autouse=True)
def restore_logging(monkeypatch, tmp_path):
    """Keep CLI logging setup from leaking into other tests."""
    monkeypatch.chdir(tmp_path)
    root = logging.getLogger()
    saved = (root.level, root.handlers[:])
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(saved[0])
    for handler in saved[1]:
        root.addHandler(handler)


def test_run_bundled_scenario():
    result = cli_runner.invoke(app, ["run", "try-catch-finally", "--no-trace"], env=QUIET)
    assert result.exit_code == 0
    assert "Exception caught!" in result.stdout
    assert "Finally block executed." in result.stdout
    assert "handled" in result.stdout


def test_run_json_output():
    result = cli_runner.invoke(app, ["run", "exit-skips-finally", "--json"], env=QUIET)
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["status"] == "terminated"
    assert payload["cleanup_ran"] is False
    assert payload["output"] == ["Try block executed."]
    assert payload["mismatches"] == []


def test_run_with_trace_table():
    result = cli_runner.invoke(app, ["run", "nested-exit"], env=QUIET)
    assert result.exit_code == 0
    assert "Trace" in result.stdout
    assert "cleanup skipped" in result.stdout


def test_run_reports_mismatch(tmp_path):
    path = tmp_path / "wrong.yaml"
    path.write_text(
        "name: wrong\n"
        "block:\n"
        "  operations:\n"
        "    - print: hi\n"
        "expect:\n"
        "  outcome: terminated\n",
        encoding="utf-8",
    )
    result = cli_runner.invoke(app, ["run", str(path), "--no-trace"], env=QUIET)
    assert result.exit_code == 1
    assert "mismatch" in result.stdout


def test_run_unknown_scenario():
    result = cli_runner.invoke(app, ["run", "no-such-scenario"], env=QUIET)
    assert result.exit_code == 2


def test_run_json_reports_errors_as_json():
    result = cli_runner.invoke(app, ["run", "no-such-scenario", "--json"], env=QUIET)
    assert result.exit_code == 2
    payload = json.loads(result.stdout)
    assert payload["error_type"] == "ScenarioError"
    assert payload["component"] == "ScenarioLoader"
    assert payload["operation"] == "load"
    assert "no-such-scenario" in payload["error_message"]


def test_run_json_reports_strict_declaration_problems(tmp_path):
    config = tmp_path / "strict.yaml"
    config.write_text("strict_declarations: true\n", encoding="utf-8")
    scenario = tmp_path / "undeclared.yaml"
    scenario.write_text(
        "name: undeclared\n"
        "block:\n"
        "  operations:\n"
        "    - name: query\n"
        "      raise: SQLFailure\n",
        encoding="utf-8",
    )
    result = cli_runner.invoke(app, ["run", str(scenario), "--config", str(config), "--json"], env=QUIET)
    assert result.exit_code == 2
    payload = json.loads(result.stdout)
    assert payload["error_type"] == "DeclarationError"
    assert len(payload["details"]["problems"]) == 1


def test_error_context_is_printed():
    result = cli_runner.invoke(app, ["run", "no-such-scenario"], env=QUIET)
    assert "[in ScenarioLoader.load]" in result.stdout


def test_run_strict_mode_rejects_undeclared(tmp_path):
    config = tmp_path / "strict.yaml"
    config.write_text("strict_declarations: true\n", encoding="utf-8")
    scenario = tmp_path / "undeclared.yaml"
    scenario.write_text(
        "name: undeclared\n"
        "block:\n"
        "  operations:\n"
        "    - raise: FileNotFound\n",
        encoding="utf-8",
    )
    result = cli_runner.invoke(app, ["run", str(scenario), "--config", str(config)], env=QUIET)
    assert result.exit_code == 2


def test_run_invalid_config(tmp_path):
    config = tmp_path / "bad.yaml"
    config.write_text("max_depth: -1\n", encoding="utf-8")
    result = cli_runner.invoke(app, ["run", "try-catch", "--config", str(config)], env=QUIET)
    assert result.exit_code == 2


def test_check_ok_and_problems(tmp_path):
    result = cli_runner.invoke(app, ["check", "finally-resource"], env=QUIET)
    assert result.exit_code == 0
    assert "ok" in result.stdout

    scenario = tmp_path / "undeclared.yaml"
    scenario.write_text(
        "name: undeclared\n"
        "block:\n"
        "  operations:\n"
        "    - name: query\n"
        "      raise: SQLFailure\n",
        encoding="utf-8",
    )
    result = cli_runner.invoke(app, ["check", str(scenario)], env=QUIET)
    assert result.exit_code == 1
    assert "SQLFailure" in result.stdout


def test_kinds_tree():
    result = cli_runner.invoke(app, ["kinds"], env=QUIET)
    assert result.exit_code == 0
    assert "DivisionByZero" in result.stdout
    assert "unchecked" in result.stdout


def test_scenarios_listing():
    result = cli_runner.invoke(app, ["scenarios"], env=QUIET)
    assert result.exit_code == 0
    assert "multiple-catch" in result.stdout
