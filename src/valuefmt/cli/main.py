"""CLI entry point for valuefmt.

Invoked as::

    valuefmt [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m valuefmt.cli.main

Commands
--------
list        Load the catalog and list installed formatters
info        Show one formatter's metadata
decode      Render a raw value with a formatter
encode      Convert a rendering back into a raw value
validate    Check whether a raw value is valid for a formatter
version     Show version information
"""
from __future__ import annotations

import logging
import sys
from typing import BinaryIO

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from valuefmt.core import ErrorChannel, FormatterConfig, Notification
from valuefmt.service import CollectingSink, FormatterService

console = Console()
err_console = Console(stderr=True)


_cli_handler: logging.Handler | None = None


def _configure_logging(verbose: bool) -> None:
    global _cli_handler

    package_logger = logging.getLogger("valuefmt")
    if _cli_handler is not None:
        package_logger.removeHandler(_cli_handler)
    if verbose:
        _cli_handler = RichHandler(console=err_console, show_path=False)
        _cli_handler.setFormatter(logging.Formatter("%(message)s"))
        package_logger.setLevel(logging.DEBUG)
    else:
        # notifications are printed by the CLI itself
        _cli_handler = logging.NullHandler()
    package_logger.addHandler(_cli_handler)


def _print_notification(notification: Notification) -> None:
    color = "red" if notification.is_error else "yellow"
    label = "Error" if notification.is_error else "Warning"
    err_console.print(f"[{color}]{label}:[/{color}] {notification.message}", markup=True, highlight=False)


def _build_service(ctx: click.Context) -> FormatterService:
    options = ctx.obj
    config_file = options.get("config")
    try:
        config = FormatterConfig.from_yaml(config_file) if config_file else FormatterConfig.from_env()
    except (OSError, ValueError) as exc:
        err_console.print(f"[red]Error:[/red] Invalid configuration: {exc}")
        sys.exit(1)

    channel = ErrorChannel()
    if not options.get("verbose"):
        channel.subscribe(_print_notification)
    service = FormatterService(config, channel=channel)
    if options.get("path"):
        service.set_path(options["path"])
    service.load()
    return service


class _ErrorWatch:
    """Records whether an ERROR notification was emitted while active.

    Usage::

        with _ErrorWatch(service.channel) as watch:
            service.encode(name, data)
        if watch.failed:
            sys.exit(1)
    """

    def __init__(self, channel: ErrorChannel) -> None:
        self._channel = channel
        self.failed = False

    def _record(self, notification: Notification) -> None:
        if notification.is_error:
            self.failed = True

    def __enter__(self) -> "_ErrorWatch":
        self._channel.subscribe(self._record)
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._channel.unsubscribe(self._record)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="valuefmt")
@click.option(
    "--path",
    type=click.Path(file_okay=False),
    default=None,
    help="Formatters directory (default: <config dir>/formatters)",
)
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML configuration file",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, path: str | None, config: str | None, verbose: bool) -> None:
    """Discover and run external value-formatter plugins."""
    ctx.ensure_object(dict)
    ctx.obj.update(path=path, config=config, verbose=verbose)
    _configure_logging(verbose)


# ---------------------------------------------------------------------------
# version command
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from valuefmt import __version__

    table = Table(show_header=False, box=None)
    table.add_row("[bold]valuefmt[/bold]", f"v{__version__}")
    table.add_row("Python", f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")
    table.add_row("Platform", sys.platform)
    console.print(table)


# ---------------------------------------------------------------------------
# list command
# ---------------------------------------------------------------------------


@cli.command(name="list")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "yaml"], case_sensitive=False),
    default="table",
    help="Listing format",
)
@click.pass_context
def list_command(ctx: click.Context, output_format: str) -> None:
    """Load the catalog and list installed formatters."""
    service = _build_service(ctx)
    view = service.view

    if output_format == "json":
        click.echo(view.to_json(indent=2))
        return
    if output_format == "yaml":
        click.echo(view.to_yaml(), nl=False)
        return

    if view.row_count() == 0:
        console.print(f"No formatters installed in {service.formatters_path}")
        return

    table = Table(title=f"Formatters: {service.formatters_path}")
    table.add_column("Name", style="bold")
    table.add_column("Version")
    table.add_column("Description")
    table.add_column("Command", style="dim")
    for row in view.rows():
        table.add_row(row["name"], row["version"], row["description"], row["cmd"])
    console.print(table)


# ---------------------------------------------------------------------------
# info command
# ---------------------------------------------------------------------------


@cli.command(name="info")
@click.argument("name")
@click.pass_context
def info_command(ctx: click.Context, name: str) -> None:
    """Show metadata for formatter NAME."""
    service = _build_service(ctx)
    formatter = service.lookup(name)
    if formatter is None:
        err_console.print(f"[red]Error:[/red] Can't find formatter with name: {name}")
        sys.exit(1)

    table = Table(show_header=False, box=None)
    for key, value in formatter.to_dict().items():
        if key == "cmd_list":
            continue
        table.add_row(f"[bold]{key}[/bold]", str(value))
    console.print(table)


# ---------------------------------------------------------------------------
# value commands
# ---------------------------------------------------------------------------


@cli.command(name="decode")
@click.argument("name")
@click.argument("file", type=click.File("rb"), default="-")
@click.option("--raw", is_flag=True, default=False, help="Print only the decoded output")
@click.pass_context
def decode_command(ctx: click.Context, name: str, file: BinaryIO, raw: bool) -> None:
    """Decode the value in FILE (default: stdin) with formatter NAME."""
    service = _build_service(ctx)
    sink = CollectingSink()
    with _ErrorWatch(service.channel) as watch:
        reply = service.decode(name, file.read(), sink)
    if watch.failed or reply is None:
        sys.exit(1)

    if raw:
        click.echo(reply.output)
        return

    table = Table(show_header=False, box=None)
    table.add_row("[bold]format[/bold]", reply.format)
    table.add_row("[bold]read-only[/bold]", "yes" if reply.read_only else "no")
    if reply.error:
        table.add_row("[bold]error[/bold]", f"[red]{reply.error}[/red]")
    console.print(table)
    click.echo(reply.output)


@cli.command(name="encode")
@click.argument("name")
@click.argument("file", type=click.File("rb"), default="-")
@click.pass_context
def encode_command(ctx: click.Context, name: str, file: BinaryIO) -> None:
    """Encode the rendering in FILE (default: stdin) with formatter NAME."""
    service = _build_service(ctx)
    with _ErrorWatch(service.channel) as watch:
        reply = service.encode(name, file.read())
    if watch.failed or reply is None:
        sys.exit(1)
    click.echo(reply.output)


@cli.command(name="validate")
@click.argument("name")
@click.argument("file", type=click.File("rb"), default="-")
@click.pass_context
def validate_command(ctx: click.Context, name: str, file: BinaryIO) -> None:
    """Check the value in FILE (default: stdin) with formatter NAME.

    Exits with status 1 if the value is invalid or the check failed.
    """
    service = _build_service(ctx)
    with _ErrorWatch(service.channel) as watch:
        reply = service.is_valid(name, file.read())
    if watch.failed or reply is None:
        sys.exit(1)
    if reply.valid:
        console.print("[green]VALID[/green]")
    else:
        console.print("[yellow]INVALID[/yellow]")
        sys.exit(1)


if __name__ == "__main__":
    cli()
