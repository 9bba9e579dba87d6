"""causalcheck CLI - typer application entry point."""

from __future__ import annotations

import atexit
import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from causalcheck.config import load_config
from causalcheck.errors import CausalCheckError
from causalcheck.graph import (
    dump_graph,
    load_constraints,
    load_graph,
    reconcile,
    validate,
    validate_post_normalisation,
)
from causalcheck.observability import close_file_logging, configure_logging, get_logger

if TYPE_CHECKING:
    from causalcheck.graph import ReconciliationResult, STRPMutation, ValidationResult
    from causalcheck.models import GoalConstraint, Graph

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="causalcheck",
    help="causalcheck: Validate and reconcile causal decision graphs.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)

SEVERITY_STYLES = {
    "error": "[red]error[/red]",
    "warn": "[yellow]warn[/yellow]",
    "info": "[dim]info[/dim]",
}


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_dir: Annotated[
        Path | None,
        typer.Option(
            "--log",
            help="Enable JSONL file logging to DIR/debug.jsonl.",
            envvar="CAUSALCHECK_LOG_DIR",
        ),
    ] = None,
) -> None:
    """causalcheck: Validate and reconcile causal decision graphs."""
    configure_logging(verbosity=verbose, log_to_file=log_dir is not None, log_dir=log_dir)
    if log_dir is not None:
        atexit.register(close_file_logging)


def _load_graph_or_exit(path: Path) -> Graph:
    try:
        return load_graph(path)
    except CausalCheckError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None


def _load_constraints_or_exit(path: Path | None) -> list[GoalConstraint] | None:
    if path is None:
        return None
    try:
        return load_constraints(path)
    except CausalCheckError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None


def _print_issues(result: ValidationResult, title: str) -> None:
    """Render issues as a table, followed by the verdict."""
    issues = result.issues
    if issues:
        table = Table(title=title)
        table.add_column("Severity", style="bold")
        table.add_column("Code", style="cyan")
        table.add_column("Path", style="dim")
        table.add_column("Message")
        for issue in issues:
            table.add_row(
                SEVERITY_STYLES.get(issue.severity, issue.severity),
                issue.code,
                escape(issue.path or "-"),
                escape(issue.message),
            )
        console.print()
        console.print(table)

    summary = result.controllability_summary
    if summary is not None and summary.total_outcome_risk_nodes:
        console.print(
            f"Controllability: {summary.with_controllable_ancestry}/"
            f"{summary.total_outcome_risk_nodes} outcome/risk nodes have a controllable ancestor"
        )

    console.print()
    if result.valid:
        console.print(f"[green]✓ Graph is valid[/green] ({result.summary})")
    else:
        console.print(f"[red]✗ Graph is invalid[/red] ({result.summary})")


def _print_mutations(mutations: list[STRPMutation]) -> None:
    if not mutations:
        console.print("[green]✓ No reconciliation needed[/green]")
        return

    table = Table(title="Reconciliation")
    table.add_column("Rule", style="cyan")
    table.add_column("Code", style="bold")
    table.add_column("Target", style="dim")
    table.add_column("Field")
    table.add_column("Before")
    table.add_column("After")
    for m in mutations:
        target = m.node_id or m.edge_id or m.constraint_id or "-"
        table.add_row(
            m.rule,
            m.code,
            escape(target),
            m.field,
            escape(repr(m.before)),
            escape(repr(m.after)),
        )
    console.print()
    console.print(table)
    console.print(f"{len(mutations)} mutation(s) applied")


def _run_reconcile(
    graph: Graph,
    constraints_file: Path | None,
    fill_controllable: bool,
) -> ReconciliationResult:
    constraints = _load_constraints_or_exit(constraints_file)
    return reconcile(graph, goal_constraints=constraints, fill_controllable_data=fill_controllable)


@app.command()
def version() -> None:
    """Show version information."""
    from causalcheck import __version__

    console.print(f"causalcheck v{__version__}")


@app.command("validate")
def validate_command(
    graph_file: Annotated[Path, typer.Argument(help="Graph JSON (or YAML) file.")],
    reconcile_first: Annotated[
        bool,
        typer.Option("--reconcile", help="Run the reconciliation pass before validating."),
    ] = False,
    fill_controllable: Annotated[
        bool,
        typer.Option(
            "--fill-controllable",
            help="With --reconcile, fill missing data on controllable factors.",
        ),
    ] = False,
    constraints_file: Annotated[
        Path | None,
        typer.Option("--constraints", help="Goal constraints file to normalise (with --reconcile)."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="YAML file overriding limits and thresholds."),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Print the result as JSON."),
    ] = False,
) -> None:
    """Validate a graph. Exits with status 1 when the graph is invalid."""
    try:
        config = load_config(config_file)
    except CausalCheckError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None

    graph = _load_graph_or_exit(graph_file)

    reconciliation: ReconciliationResult | None = None
    if reconcile_first:
        reconciliation = _run_reconcile(graph, constraints_file, fill_controllable)

    result = validate(graph, config=config)
    log.info("cli_validate_finished", graph_file=str(graph_file), valid=result.valid)

    if json_output:
        payload = result.to_dict()
        if reconciliation is not None:
            payload["mutations"] = [m.to_dict() for m in reconciliation.mutations]
        console.print_json(json.dumps(payload, default=str))
    else:
        if reconciliation is not None:
            _print_mutations(reconciliation.mutations)
        _print_issues(result, title=f"Validation: {graph_file.name}")

    if not result.valid:
        raise typer.Exit(1)


@app.command("reconcile")
def reconcile_command(
    graph_file: Annotated[Path, typer.Argument(help="Graph JSON (or YAML) file.")],
    constraints_file: Annotated[
        Path | None,
        typer.Option("--constraints", help="Goal constraints file to normalise."),
    ] = None,
    fill_controllable: Annotated[
        bool,
        typer.Option("--fill-controllable", help="Fill missing data on controllable factors."),
    ] = False,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the reconciled graph to this file."),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Print the mutation log (and constraints) as JSON."),
    ] = False,
) -> None:
    """Run the structural reconciliation pass and print its mutation log."""
    graph = _load_graph_or_exit(graph_file)
    result = _run_reconcile(graph, constraints_file, fill_controllable)

    if output is not None:
        dump_graph(result.graph, output)

    if json_output:
        payload: dict[str, object] = {"mutations": [m.to_dict() for m in result.mutations]}
        if result.goal_constraints is not None:
            payload["goal_constraints"] = [
                c.model_dump(exclude_none=True) for c in result.goal_constraints
            ]
        console.print_json(json.dumps(payload, default=str))
        return

    _print_mutations(result.mutations)
    if output is not None:
        console.print(f"Reconciled graph written to [cyan]{escape(str(output))}[/cyan]")


@app.command("post-norm")
def post_norm_command(
    graph_file: Annotated[Path, typer.Argument(help="Graph JSON (or YAML) file.")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Print the result as JSON."),
    ] = False,
) -> None:
    """Check effect directions against strength signs after normalisation."""
    graph = _load_graph_or_exit(graph_file)
    result = validate_post_normalisation(graph)

    if json_output:
        console.print_json(json.dumps(result.to_dict(), default=str))
    else:
        _print_issues(result, title=f"Post-normalisation: {graph_file.name}")

    if not result.valid:
        raise typer.Exit(1)
