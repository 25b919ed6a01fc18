"""Command-line interface for MicroTasker."""

import logging
import sys
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from . import __version__
from .config import ConfigModel, as_dict, default_config_path, get_config, load_config, save_config
from .parser import CaptureParser, parse_capture_input
from .recurring import RecurrenceGenerator, RecurrenceParser
from .utils.datetime import parse_iso_date, to_iso_string


console = Console()


def parse_date_option(ctx, param, value):
    """Click callback turning ``YYYY-MM-DD`` into a date."""
    if value is None:
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        raise click.BadParameter(f"'{value}' is not a date in YYYY-MM-DD format")


@click.group()
@click.option("--config", type=click.Path(), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(__version__, prog_name="microtasker")
@click.pass_context
def main(ctx, config, verbose):
    """MicroTasker - quick-capture micro tasks with recurring routines."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if config:
        load_config(Path(config))
    else:
        get_config()


@main.command()
@click.option("--host", help="Interface to bind (defaults to config)")
@click.option("--port", type=int, help="Port to listen on (defaults to config)")
@click.option("--debug", is_flag=True, help="Reload on code changes")
def serve(host, port, debug):
    """Run the web API."""
    from .webapp.server.app import start_server

    config = get_config()
    config.ensure_data_dir()
    console.print(f"[green]Starting MicroTasker API on {host or config.host}:{port or config.port}[/green]")
    start_server(host=host, port=port, reload=debug)


@main.command()
@click.argument("text", nargs=-1, required=True)
@click.option("--today", callback=parse_date_option, help="Date #today refers to (YYYY-MM-DD)")
def parse(text, today):
    """Preview how capture TEXT would be stored."""
    text = " ".join(text)
    parser = CaptureParser.from_config(get_config())
    parsed, errors, suggestions = parse_capture_input(text, parser, today=today)

    for error in errors:
        console.print(f"[red]✗ {error.message}[/red]")
    for suggestion in suggestions:
        console.print(f"[yellow]💡 {suggestion}[/yellow]")

    if not parsed.is_valid:
        sys.exit(1)

    table = Table(title="Capture preview", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in parsed.to_dict().items():
        if isinstance(value, list):
            value = ", ".join(value)
        table.add_row(key, "" if value is None else str(value))
    console.print(table)


@main.command(name="next")
@click.argument("from_date", callback=parse_date_option)
@click.argument("frequency")
@click.option("--end-date", callback=parse_date_option, help="Last allowed date (YYYY-MM-DD)")
@click.option("--count", "-n", type=int, default=1, help="Number of occurrences to show")
def next_command(from_date, frequency, end_date, count):
    """Show the occurrences after FROM_DATE for FREQUENCY."""
    parsed = RecurrenceParser.parse(frequency)
    if parsed is None:
        raise click.BadParameter(f"Unknown frequency '{frequency}'", param_hint="FREQUENCY")

    generator = RecurrenceGenerator()
    current = from_date
    for _ in range(count):
        current = generator.next_occurrence(current, parsed, from_date.day)
        if not generator.should_materialize(current, end_date):
            console.print(f"[dim]Series ends on {to_iso_string(end_date)}[/dim]")
            break
        console.print(to_iso_string(current))


@main.group()
def config():
    """Show or create the configuration file."""
    pass


@config.command(name="show")
def config_show():
    """Print the active configuration."""
    console.print(Panel(yaml.dump(as_dict(get_config()), sort_keys=False).rstrip(),
                        title=str(default_config_path())))


@config.command(name="init")
@click.option("--path", type=click.Path(), help="Where to write the file")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def config_init(path, force):
    """Write a default configuration file."""
    target = Path(path) if path else default_config_path()
    if target.exists() and not force:
        console.print(f"[yellow]Config already exists at {target} (use --force to overwrite)[/yellow]")
        sys.exit(1)

    save_config(ConfigModel(), target)
    console.print(f"[green]✓ Wrote {target}[/green]")


if __name__ == "__main__":
    main()
