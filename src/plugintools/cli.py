"""
CLI entry point for plugintools.

This module provides the Typer-based command-line interface.

Commands:
    serve   Run the HTTP server
    tools   List registered tools
    show    Show one tool's descriptor and parameter schema
    call    Dispatch one tool invocation locally and print the result

Architecture Note:
    The CLI loads the configuration, builds the registry and delegates to
    the same dispatch() the HTTP server uses.
"""

import json
import traceback
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from plugintools import __version__
from plugintools.errors import PluginToolsError
from plugintools.logging_config import configure_logging
from plugintools.schema import Config, load_config
from plugintools.tools import ToolContext, build_registry, close_tools, dispatch

# Initialize Typer app with metadata
app = typer.Typer(
    name="plugintools",
    help="Discover and invoke registered tools.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to the configuration file (YAML or JSON).",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]plugintools[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    plugintools - one contract for heterogeneous tools.

    Serve the registry over HTTP, or inspect and call tools locally.
    """
    pass


def _load(config_path: Path | None) -> Config:
    """Load the configuration, exiting with code 1 on error."""
    if config_path is None:
        return Config()
    try:
        return load_config(config_path)
    except PluginToolsError as e:
        console.print(f"[red]Error loading configuration: {escape(e.message)}[/red]")
        raise typer.Exit(code=1)


@app.command()
def serve(
    config_path: ConfigOption = None,
    host: Annotated[
        Optional[str],
        typer.Option("--host", help="Override server.host."),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", help="Override server.port."),
    ] = None,
) -> None:
    """
    Run the HTTP server.

    Example:
        $ plugintools serve --config config.yaml --port 9000
    """
    from plugintools.server import serve as run_server

    config = _load(config_path)
    overrides = {}
    if host is not None:
        overrides["host"] = host
    if port is not None:
        overrides["port"] = port
    if overrides:
        config = config.model_copy(
            update={"server": config.server.model_copy(update=overrides)}
        )

    configure_logging(config.logging.level)
    run_server(config)


@app.command("tools")
def list_tools(
    config_path: ConfigOption = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output descriptors in JSON format."),
    ] = False,
) -> None:
    """
    List registered tools.

    Example:
        $ plugintools tools --config config.yaml
    """
    config = _load(config_path)
    registry = build_registry(config)
    try:
        descriptors = sorted(registry.descriptors(), key=lambda d: d.id)

        if json_output:
            print(json.dumps([d.model_dump() for d in descriptors], indent=2))
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Version", width=8)
        table.add_column("Category")
        table.add_column("Description")
        for d in descriptors:
            table.add_row(d.id, d.name, d.version, d.category, d.description)
        console.print(table)
    finally:
        close_tools(registry)


@app.command()
def show(
    tool_id: Annotated[str, typer.Argument(help="The tool ID to show.")],
    config_path: ConfigOption = None,
) -> None:
    """
    Show one tool's descriptor and parameter schema.

    Example:
        $ plugintools show shell-executor
    """
    config = _load(config_path)
    registry = build_registry(config)
    try:
        tool = registry.get_optional(tool_id)
        if tool is None:
            console.print(f"[red]Tool with ID {tool_id} not found[/red]")
            raise typer.Exit(code=1)

        d = tool.descriptor
        console.print(f"[bold]{d.name}[/bold] ([cyan]{d.id}[/cyan]) v{d.version}")
        console.print(f"[dim]{d.category}[/dim] {d.description}")
        console.print()

        table = Table(show_header=True, header_style="bold")
        table.add_column("Parameter", style="cyan")
        table.add_column("Type")
        table.add_column("Required", width=8)
        table.add_column("Default")
        table.add_column("Description")
        for spec in tool.parameters:
            table.add_row(
                spec.name,
                spec.type.value,
                "[green]yes[/green]" if spec.required else "no",
                "" if spec.default is None else str(spec.default),
                spec.description,
            )
        console.print(table)
    finally:
        close_tools(registry)


def _parse_params(pairs: list[str], body: str | None) -> dict[str, Any]:
    """Merge a JSON body with key=value pairs (pairs win)."""
    params: dict[str, Any] = {}
    if body:
        try:
            decoded = json.loads(body)
        except ValueError as e:
            raise typer.BadParameter(f"--body is not valid JSON: {e}") from e
        if not isinstance(decoded, dict):
            raise typer.BadParameter("--body must be a JSON object")
        params.update(decoded)

    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected key=value, got {pair!r}")
        params[key] = value
    return params


@app.command()
def call(
    tool_id: Annotated[str, typer.Argument(help="The tool ID to invoke.")],
    config_path: ConfigOption = None,
    param: Annotated[
        Optional[list[str]],
        typer.Option(
            "--param",
            "-p",
            help="Parameter as key=value (repeatable).",
        ),
    ] = None,
    body: Annotated[
        Optional[str],
        typer.Option("--body", help="Parameters as a JSON object."),
    ] = None,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug mode with full error tracebacks."),
    ] = False,
) -> None:
    """
    Dispatch one tool invocation and print the result as JSON.

    Exits with code 1 when the tool fails.

    Example:
        $ plugintools call shell-executor -c config.yaml -p command="git status"
    """
    params = _parse_params(param or [], body)
    config = _load(config_path)
    registry = build_registry(config)
    try:
        tool = registry.get_optional(tool_id)
        if tool is None:
            console.print(f"[red]Tool with ID {tool_id} not found[/red]")
            raise typer.Exit(code=1)

        try:
            output = dispatch(tool, params, ToolContext(request_id="cli"))
        except Exception as e:
            console.print(f"[red]Unexpected error: {escape(str(e))}[/red]")
            if debug:
                console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
            raise typer.Exit(code=1)

        if output.success:
            print(json.dumps(output.data, indent=2, default=str))
            return

        if output.failure is not None:
            print(json.dumps({"error": True, **output.failure.to_dict()}, indent=2, default=str))
        else:
            print(json.dumps({"error": True, "message": output.error}, indent=2))
        raise typer.Exit(code=1)
    finally:
        close_tools(registry)


if __name__ == "__main__":
    app()
