"""
formlogic command line interface.

Commands:
- check: validate a schema and summarize its fields
- order: print the calculated-field evaluation order
- eval:  evaluate a schema against a values file
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from formlogic._version import get_version
from formlogic.core.config import EngineConfig, discover_config, load_config
from formlogic.core.engine import FormEngine
from formlogic.core.errors import ConfigError, CycleError, FormLogicError, SchemaError
from formlogic.core.schema_loader import load_schema, load_values
from formlogic.core.schema_parser import parse_schema

console = Console()

app = typer.Typer(
    help="formlogic - evaluate conditional and calculated fields of form schemas",
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"formlogic {get_version()}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """formlogic CLI main callback for global options."""
    _configure_logging(verbose)


def _resolve_config(schema_path: Path, config_path: Path | None) -> EngineConfig:
    if config_path is not None:
        return load_config(config_path)
    return discover_config(schema_path.parent)


def _load_engine(schema: Path, config: Path | None) -> FormEngine:
    """Build an engine, turning schema problems into a clean exit."""
    try:
        engine_config = _resolve_config(schema, config)
        return FormEngine(parse_schema(load_schema(schema), engine_config), engine_config)
    except CycleError as e:
        typer.echo(f"Cycle error: {e}", err=True)
        raise typer.Exit(code=1)
    except SchemaError as e:
        typer.echo(f"Schema error: {e}", err=True)
        raise typer.Exit(code=1)
    except ConfigError as e:
        typer.echo(f"Config error: {e}", err=True)
        raise typer.Exit(code=1)


@app.command("check")
def check_command(
    schema: Path = typer.Argument(..., help="Schema file (.json, .yaml)"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to formlogic.toml"),
) -> None:
    """Validate a schema: rules, dependencies and calculation cycles."""
    engine = _load_engine(schema, config)
    parsed = engine.parsed

    table = Table(title=parsed.schema_id or schema.name)
    table.add_column("Path")
    table.add_column("Widget")
    table.add_column("Required")
    table.add_column("Rules")
    table.add_column("Formula")

    for node in parsed.fields:
        rules = [
            name
            for name, rule in (
                ("hidden", node.hidden_when),
                ("required", node.required_when),
                ("read-only", node.read_only_when),
            )
            if rule is not None
        ]
        formula = node.calculation.formula if node.calculation else ""
        table.add_row(
            "  " * node.level + node.path,
            node.widget.value,
            "yes" if node.is_required else "",
            ", ".join(rules),
            formula,
        )

    console.print(table)
    broken = [c.target for c in parsed.calculations if not c.is_parsed]
    for target in broken:
        console.print(f"[yellow]Formula for {target} does not parse; it will stay empty[/yellow]")
    console.print(
        f"[green]✓ Schema is valid[/green]: {len(parsed.fields)} fields, "
        f"{len(parsed.conditional_paths)} conditional, {len(parsed.calculations)} calculated"
    )


@app.command("order")
def order_command(
    schema: Path = typer.Argument(..., help="Schema file (.json, .yaml)"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to formlogic.toml"),
) -> None:
    """Print calculated fields in evaluation order."""
    engine = _load_engine(schema, config)
    for i, calc in enumerate(engine.parsed.ordered_calculations(), start=1):
        typer.echo(f"{i}. {calc}")


@app.command("eval")
def eval_command(
    schema: Path = typer.Argument(..., help="Schema file (.json, .yaml)"),
    values: Path = typer.Argument(..., help="Values file (.json, .yaml)"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to formlogic.toml"),
    output_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """Evaluate flags and calculated values for a values snapshot."""
    engine = _load_engine(schema, config)
    try:
        snapshot = load_values(values)
    except FormLogicError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    result = engine.recompute(snapshot)

    if output_json:
        payload = {
            "fields": {
                path: {"visible": s.visible, "required": s.required, "readOnly": s.read_only}
                for path, s in result.fields.items()
            },
            "values": dict(result.values),
            "indeterminate": sorted(result.indeterminate),
        }
        typer.echo(json.dumps(payload, indent=2, default=str))
        return

    table = Table(title="Evaluation")
    table.add_column("Path")
    table.add_column("Visible")
    table.add_column("Required")
    table.add_column("Read-only")
    table.add_column("Value")
    for path, state in result.fields.items():
        if path in result.values:
            shown = repr(result.values[path])
        elif path in result.indeterminate:
            shown = "[dim]pending[/dim]"
        else:
            shown = ""
        table.add_row(
            path,
            "yes" if state.visible else "[red]no[/red]",
            "yes" if state.required else "",
            "yes" if state.read_only else "",
            shown,
        )
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
