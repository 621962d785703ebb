"""
main.py

Click-based CLI for publishing raw events and inspecting received batches.

Features:
- Parse a received batch file (vendor or CloudEvents elements) into a table
- Publish a single raw JSON event to a topic endpoint
"""

import json
import sys
from pathlib import Path
from typing import Any, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..builder import EventGridPublisherBuilder
from ..exceptions import EventGridError
from ..parser import parse_auto, parse_typed
from ..utils.config_manager import ConfigManager
from ..utils.logger import initialize_logging_from_config, setup_logging

console = Console()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def read_batch_file(file_path: str) -> str:
    """
    Read a raw batch file.

    Raises:
        click.ClickException: On file read errors
    """
    try:
        return Path(file_path).read_text(encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Failed to read file: {e}")


def save_results_to_file(data: Any, output_file: str) -> None:
    """
    Save results to JSON file with pretty formatting.

    Raises:
        click.ClickException: On write errors
    """
    try:
        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            json.dump(data, f, indent=2)
        console.print(f"[green]Results saved to:[/green] {output_path.absolute()}")
    except OSError as e:
        raise click.ClickException(f"Failed to write output file: {e}")


# =============================================================================
# MAIN CLI GROUP
# =============================================================================

@click.group()
@click.version_option(version=__version__, prog_name="eventgrid")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML settings file"
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool):
    """
    Event publishing client.

    Publish raw events to a topic endpoint and parse received batches.
    """
    ctx.ensure_object(dict)
    ctx.obj["settings"] = None

    if config_path:
        try:
            settings = ConfigManager.reload_config(config_path)
        except ValueError as e:
            raise click.ClickException(str(e))
        ctx.obj["settings"] = settings
        if verbose:
            settings = settings.model_copy(
                update={"logging": settings.logging.model_copy(update={"log_level": "DEBUG"})}
            )
        initialize_logging_from_config(settings)
    else:
        setup_logging(log_level="DEBUG" if verbose else "WARNING", log_format="text")


# =============================================================================
# PARSE COMMAND
# =============================================================================

@cli.command(name="parse")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--session-id",
    "-s",
    type=str,
    default=None,
    help="Session id for the batch (generated if omitted)"
)
@click.option(
    "--vendor-only",
    is_flag=True,
    default=False,
    help="Read every element as a vendor envelope instead of detecting the format"
)
@click.option(
    "--output",
    "-o",
    type=str,
    default=None,
    help="Save parsed events to JSON file"
)
def parse_batch(file_path: str, session_id: Optional[str], vendor_only: bool, output: Optional[str]):
    """
    Parse a received event batch.

    Example:
        eventgrid parse received.json --session-id run-42
    """
    raw_json = read_batch_file(file_path)

    try:
        if vendor_only:
            batch = parse_typed(raw_json, session_id=session_id)
        else:
            batch = parse_auto(raw_json, session_id=session_id)
    except (EventGridError, ValueError) as e:
        raise click.ClickException(f"Failed to parse batch: {e}")

    table = Table(title=f"Session {batch.session_id}")
    table.add_column("#", style="dim")
    table.add_column("Format", style="cyan")
    table.add_column("Id", style="green")
    table.add_column("Type", style="yellow")
    table.add_column("Time", style="blue")

    for index, event in enumerate(batch.events):
        event_time = event.event_time.isoformat() if event.event_time else "-"
        table.add_row(str(index), type(event).__name__, event.id, event.event_type, event_time)

    console.print(table)
    console.print(f"[bold]{len(batch.events)}[/bold] event(s) parsed")

    if output:
        save_results_to_file(
            {
                "session_id": batch.session_id,
                "events": [event.to_envelope() for event in batch.events],
            },
            output
        )


# =============================================================================
# PUBLISH COMMAND
# =============================================================================

@cli.command(name="publish-raw")
@click.option("--endpoint", envvar="EVENTGRID_TOPIC_ENDPOINT", default=None, help="Topic endpoint URL")
@click.option("--key", envvar="EVENTGRID_AUTH_KEY", default=None, help="Topic authentication key")
@click.option("--id", "event_id", required=True, help="Event id")
@click.option("--type", "event_type", required=True, help="Event type")
@click.option("--data", "event_data", required=True, help="JSON payload text")
@click.option("--subject", default=None, help="Event subject (defaults to '/')")
@click.option("--data-version", default=None, help="Payload schema version (defaults to '1.0')")
@click.pass_context
def publish_raw(
    ctx: click.Context,
    endpoint: Optional[str],
    key: Optional[str],
    event_id: str,
    event_type: str,
    event_data: str,
    subject: Optional[str],
    data_version: Optional[str]
):
    """
    Publish one raw JSON event.

    Example:
        eventgrid publish-raw --id car-1 --type Arcus.Samples.Cars.NewCarRegistered \\
            --data '{"licensePlate": "1-TOM-337"}'
    """
    settings = ctx.obj.get("settings") if ctx.obj else None
    publisher_settings = settings.publisher if settings is not None else None

    if publisher_settings is not None:
        endpoint = endpoint or publisher_settings.topic_endpoint
        key = key or publisher_settings.authentication_key

    try:
        builder = EventGridPublisherBuilder.for_topic(endpoint).using_authentication_key(key)
        if publisher_settings is not None:
            builder.with_retry_policy(publisher_settings.retry).with_timeout(publisher_settings.timeout_seconds)

        with builder.build() as publisher:
            with console.status("[bold cyan]Publishing event..."):
                result = publisher.publish_raw(
                    event_id,
                    event_type,
                    event_data,
                    subject=subject,
                    data_version=data_version
                )
    except EventGridError as e:
        raise click.ClickException(e.message)

    console.print(Panel(
        f"[green]Event published[/green]\n"
        f"Event ID: {event_id}\n"
        f"HTTP status: {result.status_code}\n"
        f"Attempts: {result.attempts}",
        title="Success",
        border_style="green"
    ))


# =============================================================================
# ERROR HANDLING & ENTRY POINT
# =============================================================================

def main():
    """Entry point for CLI."""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
