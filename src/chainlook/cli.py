# src/chainlook/cli.py
"""ChainLook Command Line Interface.

Entry point for the chainlook CLI tool.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, NoReturn

import typer
import yaml
from pydantic import ValidationError

from chainlook import __version__
from chainlook.contracts.errors import ChainlookError, ConfigError, TransportError
from chainlook.contracts.widget import WidgetDefinition
from chainlook.core.config import ChainlookSettings, load_settings
from chainlook.core.logging import configure_logging
from chainlook.core.schema import fetch_widget_schema, validate_definition
from chainlook.engine.collector import get_required_fields
from chainlook.engine.resolver import WidgetResolver
from chainlook.plugins.clients.http import HTTPClient
from chainlook.plugins.manager import PluginManager

app = typer.Typer(
    name="chainlook",
    help="ChainLook: resolve dashboard widgets from subgraphs, IPFS and HTTP.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"chainlook version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """ChainLook: resolve dashboard widgets from subgraphs, IPFS and HTTP."""
    pass


def _load_settings(settings: str | None) -> ChainlookSettings:
    try:
        config = load_settings(Path(settings) if settings else None)
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    configure_logging(config.logging.level, config.logging.json_output)
    return config


def _load_widget_file(path: Path) -> Any:
    """Read a widget definition from JSON or YAML (by extension)."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        typer.echo(f"Error: Widget file not found: {path}", err=True)
        raise typer.Exit(1) from None

    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            return yaml.safe_load(text)
        return json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        typer.echo(f"Error: Cannot parse {path.name}: {e}", err=True)
        raise typer.Exit(1) from None


def _load_widget(path: Path) -> WidgetDefinition:
    try:
        return validate_definition(_load_widget_file(path))
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _parse_variables(pairs: list[str]) -> dict[str, Any]:
    """Parse ``name=value`` pairs; values are JSON when they parse as JSON."""
    variables: dict[str, Any] = {}
    for pair in pairs:
        name, sep, raw = pair.partition("=")
        if not sep or not name:
            typer.echo(f"Error: Invalid --var '{pair}', expected name=value", err=True)
            raise typer.Exit(1)
        try:
            variables[name] = json.loads(raw)
        except json.JSONDecodeError:
            variables[name] = raw
    return variables


def _fail(e: ChainlookError) -> NoReturn:
    typer.echo(f"Error: {e}", err=True)
    if isinstance(e, TransportError) and e.not_found:
        typer.echo("  The resource was not found (it may not be published yet).", err=True)
    raise typer.Exit(1) from None


@app.command()
def resolve(
    widget: Path = typer.Argument(..., help="Widget definition file (JSON or YAML)."),
    var: list[str] = typer.Option(
        [],
        "--var",
        "-v",
        help="Variable binding name=value (repeatable).",
    ),
    settings: str | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Fetch and print a widget's result rows as JSON."""
    config = _load_settings(settings)
    definition = _load_widget(widget)
    variables = _parse_variables(var)

    resolver = WidgetResolver(config)
    try:
        rows = asyncio.run(resolver.resolve(definition, variables))
    except ChainlookError as e:
        _fail(e)

    typer.echo(json.dumps(rows, indent=2, default=str))


@app.command()
def fields(
    widget: Path = typer.Argument(..., help="Widget definition file (JSON or YAML)."),
) -> None:
    """Print the fields providers must return for a widget."""
    definition = _load_widget(widget)
    for name in sorted(get_required_fields(definition)):
        typer.echo(name)


@app.command()
def validate(
    widget: Path = typer.Argument(..., help="Widget definition file (JSON or YAML)."),
    settings: str | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Validate a widget definition against the widget schema."""
    config = _load_settings(settings)
    raw = _load_widget_file(widget)

    async def load_schema() -> dict[str, Any]:
        async with HTTPClient.from_settings(config.http) as http:
            return await fetch_widget_schema(http, config)

    try:
        schema = asyncio.run(load_schema())
        definition = validate_definition(raw, schema)
    except ChainlookError as e:
        _fail(e)

    typer.echo(f"Widget valid: {widget.name}")
    typer.echo(f"  Type: {definition.type.value}")
    if definition.data is not None:
        sources = definition.data.source_configs()
        typer.echo(f"  Sources: {len(sources)}")


@app.command()
def dashboard(
    dashboard_id: str = typer.Argument(..., help="Dashboard id: ipfs:<cid> or ipns:<name>."),
    settings: str | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Fetch a dashboard document published on IPFS or IPNS."""
    config = _load_settings(settings)
    resolver = WidgetResolver(config)
    try:
        document = asyncio.run(resolver.fetch_dashboard(dashboard_id))
    except ChainlookError as e:
        _fail(e)

    typer.echo(json.dumps(document, indent=2, default=str))


# Plugins subcommand group
plugins_app = typer.Typer(help="Plugin management commands.")
app.add_typer(plugins_app, name="plugins")


@plugins_app.command("list")
def plugins_list(
    plugin_type: str | None = typer.Option(
        None,
        "--type",
        "-t",
        help="Filter by plugin type (provider, transform).",
    ),
) -> None:
    """List available providers and field transforms."""
    valid_types = {"provider", "transform"}

    if plugin_type and plugin_type not in valid_types:
        typer.echo(f"Error: Invalid type '{plugin_type}'.", err=True)
        typer.echo(f"Valid types: {', '.join(sorted(valid_types))}", err=True)
        raise typer.Exit(1)

    manager = PluginManager()
    manager.register_builtin_plugins()

    if plugin_type in (None, "provider"):
        typer.echo("\nPROVIDERS:")
        for provider_cls in manager.get_providers():
            summary = (provider_cls.__doc__ or "").strip().splitlines()[0:1]
            typer.echo(f"  {provider_cls.name:14} - {summary[0] if summary else ''}")

    if plugin_type in (None, "transform"):
        typer.echo("\nTRANSFORMS:")
        for name in sorted(manager.get_field_transforms()):
            typer.echo(f"  {name}")

    typer.echo()  # Final newline


if __name__ == "__main__":
    app()
