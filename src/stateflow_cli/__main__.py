"""Main entry point for the Stateflow CLI.

This module provides the Typer-based command-line interface for executing
state-machine workflow definitions locally. It handles definition loading,
input parsing, workflow execution, and reporting of output and history.

Commands:
    run: Execute a workflow from a YAML/JSON definition
    version: Show CLI version

Key Design:
    - The workflow output is printed to stdout as JSON; logs go to stderr
    - Exit with structured error codes for different failure modes
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from stateflow_cli import __version__
from stateflow_cli.config import StateflowConfig
from stateflow_cli.errors import DefinitionError
from stateflow_cli.events import ALL_EVENTS, EventBus, WorkflowEvent
from stateflow_cli.exec import run_workflow
from stateflow_cli.exit_codes import EX_OK, EX_RUNTIME, EX_SCHEMA, EX_UNKNOWN, EX_USAGE
from stateflow_cli.loader import LoadError, load_definition, parse_input
from stateflow_cli.logging_setup import configure_logging
from stateflow_cli.types import RunResult

app = typer.Typer(
    name="stateflow",
    help="Run declarative state-machine workflows with parallel branches",
    add_completion=False,
    pretty_exceptions_enable=False,
)
console = Console()


def _read_input(input_json: str | None, input_file: str | None) -> Any:
    """Resolve execution input from --input or --input-file.

    Raises:
        SystemExit: With EX_USAGE on conflicting flags or invalid JSON
    """
    if input_json is not None and input_file is not None:
        console.print("[red]Error:[/red] Use either --input or --input-file, not both")
        sys.exit(EX_USAGE)

    try:
        if input_file is not None:
            try:
                text = Path(input_file).read_text(encoding="utf-8")
            except OSError as e:
                raise LoadError(f"Failed to read input file {input_file}: {e}") from e
            return parse_input(text)
        return parse_input(input_json)
    except LoadError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(EX_USAGE)


def _render_history(result: RunResult) -> None:
    table = Table(title=f"History ({result.execution_id})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Event", style="cyan")
    table.add_column("Timestamp")
    table.add_column("Detail")

    for index, event in enumerate(result.history, start=1):
        detail = event.get("detail")
        table.add_row(
            str(index),
            event["type"],
            event["timestamp"],
            json.dumps(detail) if detail else "",
        )
    console.print(table)


@app.command()
def version() -> None:
    """Show the version of stateflow-cli."""
    console.print(f"stateflow-cli version {__version__}")


@app.command()
def run(
    definition_file: Annotated[
        str, typer.Argument(help="Path to workflow definition (YAML/JSON)")
    ],
    input_json: Annotated[
        str | None, typer.Option("--input", "-i", help="Execution input as a JSON string")
    ] = None,
    input_file: Annotated[
        str | None, typer.Option("--input-file", help="Read execution input from a JSON file")
    ] = None,
    history: Annotated[
        bool, typer.Option("--history", help="Print the execution history table")
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose output")] = False,
) -> None:
    """Run a workflow definition.

    Execution flow:
        1. Load the definition and parse the input
        2. Execute the state machine (Parallel branches run concurrently)
        3. Print the final output as JSON, and the history if requested

    Args:
        definition_file: Path to workflow definition file (.yaml, .yml, or .json)
        input_json: Execution input as a JSON string
        input_file: Path to a JSON file holding the execution input
        history: Print recorded history events after the run
        verbose: Enable debug logging and event tracing
    """
    config = StateflowConfig()
    configure_logging(config, verbose=verbose)

    try:
        definition = load_definition(definition_file, config)
    except LoadError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(EX_SCHEMA)

    input_data = _read_input(input_json, input_file)

    event_bus = EventBus()
    if verbose:

        def _trace_event(event: WorkflowEvent) -> None:
            console.print(f"[dim]{event.timestamp.isoformat()} {event.event_type}[/dim]")

        event_bus.subscribe(ALL_EVENTS, _trace_event)

    try:
        result = asyncio.run(run_workflow(definition, input_data, config, event_bus=event_bus))
    except DefinitionError as e:
        console.print(f"[red]Invalid definition:[/red] {e}")
        sys.exit(EX_SCHEMA)
    except Exception as e:
        console.print(f"\n[red]Unexpected error:[/red] {e}")
        if verbose:
            console.print_exception()
        sys.exit(EX_UNKNOWN)

    if history:
        _render_history(result)

    if not result.success:
        console.print(f"[red]Workflow failed:[/red] {result.error}: {result.cause}")
        sys.exit(EX_RUNTIME)

    typer.echo(json.dumps(result.output, indent=2))
    if verbose:
        console.print(f"[dim]Duration: {result.duration_seconds:.2f}s[/dim]")
    sys.exit(EX_OK)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
