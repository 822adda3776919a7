import json
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from .config.configuration import RunnerConfiguration, load_config
from .declarations import check_declarations
from .error.exceptions import ConfigurationError, DeclarationError, ErrorFlowError, ScenarioError, error_details
from .kinds import KindRegistry
from .outcome import Outcome
from .runner import StructuredErrorRunner
from .scenario import Scenario, list_bundled, load_scenario
from .utils.logging import LogConfig, get_logger

# Initialize Typer app
app = typer.Typer(help="Evaluate structured error-handling scenarios")

# Initialize Rich console
console = Console()

OUTCOME_STYLES = {
    "completed": "bold green",
    "handled": "bold cyan",
    "unhandled": "bold red",
    "terminated": "bold magenta",
}


def _report(error: ErrorFlowError, as_json: bool = False, prefix: str = "") -> None:
    if as_json:
        typer.echo(json.dumps(error_details(error), default=str))
    else:
        console.print(f"[bold red]{prefix}{escape(str(error))}[/bold red]")


def _setup(config_path: Optional[Path], as_json: bool = False) -> RunnerConfiguration:
    try:
        config = load_config(str(config_path) if config_path else None)
    except ConfigurationError as e:
        _report(e, as_json, prefix="Configuration error: ")
        raise typer.Exit(code=2)
    LogConfig.from_config(config).configure()
    return config


def _load(reference: str, as_json: bool = False) -> Scenario:
    try:
        return load_scenario(reference)
    except ScenarioError as e:
        _report(e, as_json)
        raise typer.Exit(code=2)


def _render_outcome(scenario: Scenario, outcome: Outcome, show_trace: bool) -> None:
    console.print(f"[bold]{scenario.name}[/bold] {scenario.description}")
    for line in outcome.output:
        console.print(f"  {line}", markup=False, highlight=False)

    style = OUTCOME_STYLES[outcome.status.value]
    summary = f"[{style}]{outcome.status.value}[/{style}]"
    details: Dict[str, Any] = outcome.to_dict()
    for key in ("value", "handler_result", "kind", "exit_status"):
        if key in details and details[key] is not None:
            summary += f" {key}={details[key]!r}"
    summary += f" cleanup_ran={outcome.cleanup_ran}"
    console.print(summary)

    if details.get("failure_trace"):
        console.print(details["failure_trace"], markup=False, highlight=False)

    if show_trace and outcome.trace.events:
        table = Table(title="Trace", show_header=True)
        table.add_column("#", justify="right")
        table.add_column("Event")
        table.add_column("Block")
        table.add_column("Detail")
        for index, event in enumerate(outcome.trace.events, start=1):
            table.add_row(str(index), event.event.value, event.block, event.detail)
        console.print(table)


@app.command("run")
def run(
    scenario: str = typer.Argument(..., help="Scenario file or bundled scenario name"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config file"),
    as_json: bool = typer.Option(False, "--json", help="Print the outcome as JSON"),
    show_trace: bool = typer.Option(True, "--trace/--no-trace", help="Show the evaluation trace")
):
    """Evaluate a scenario and compare it with its expectation."""
    config = _setup(config_path, as_json)
    loaded = _load(scenario, as_json)
    log = get_logger(__name__, scenario=loaded.name)

    runner = StructuredErrorRunner(config)
    try:
        outcome = runner.evaluate(loaded.block)
    except DeclarationError as e:
        _report(e, as_json)
        raise typer.Exit(code=2)
    except ErrorFlowError as e:
        log.error(f"Evaluation failed: {e}")
        _report(e, as_json, prefix="Evaluation failed: ")
        raise typer.Exit(code=2)

    mismatches = loaded.verify(outcome)
    if as_json:
        payload = outcome.to_dict()
        payload["scenario"] = loaded.name
        payload["mismatches"] = mismatches
        typer.echo(json.dumps(payload, default=str))
    else:
        _render_outcome(loaded, outcome, show_trace)
        for mismatch in mismatches:
            console.print(f"[bold red]mismatch[/bold red] {mismatch}")

    if mismatches:
        log.warning(f"{len(mismatches)} expectation mismatch(es)")
        raise typer.Exit(code=1)


@app.command("check")
def check(
    scenario: str = typer.Argument(..., help="Scenario file or bundled scenario name"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config file")
):
    """Check handler ordering and declarations without evaluating."""
    _setup(config_path)
    loaded = _load(scenario)

    problems = check_declarations(loaded.block)
    if not problems:
        console.print(f"[bold green]{loaded.name}: ok[/bold green]")
        return
    for problem in problems:
        console.print(f"[bold yellow]{problem}[/bold yellow]")
    raise typer.Exit(code=1)


def _add_branch(tree: Tree, subtree: Dict[str, dict], registry: KindRegistry) -> None:
    for name, children in subtree.items():
        mark = "checked" if registry.is_checked(name) else "unchecked"
        branch = tree.add(f"{name} [dim]({mark})[/dim]")
        _add_branch(branch, children, registry)


@app.command("kinds")
def kinds():
    """Show the builtin failure kind tree."""
    registry = KindRegistry.builtin()
    (root, children), = registry.tree().items()
    tree = Tree(f"[bold]{root}[/bold] [dim](checked)[/dim]")
    _add_branch(tree, children, registry)
    console.print(tree)


@app.command("scenarios")
def scenarios():
    """List bundled scenarios."""
    table = Table(title="Bundled scenarios")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Expected outcome")
    table.add_column("Description")
    for name in list_bundled():
        loaded = load_scenario(name)
        expected = loaded.expect.outcome if loaded.expect else "-"
        table.add_row(name, expected, loaded.description)
    console.print(table)


def main():
    app()


if __name__ == "__main__":
    main()
