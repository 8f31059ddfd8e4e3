"""Command line entry point."""
from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click

from chatlogue import __version__
from chatlogue.config import get_settings
from chatlogue.errors import ChatlogueError, FormatNotRecognizedError
from chatlogue.formats import FeatureRegistry, default_registry
from chatlogue.lib.json import dumps
from chatlogue.lib.log import configure_logging
from chatlogue.models import DoneEvent, ErrorEvent, MembersEvent, MessagesEvent, MetaEvent

EXIT_PARSE_FAILED = 1
EXIT_NOT_RECOGNIZED = 2


@dataclass
class AppEnv:
    registry: FeatureRegistry


def _echo_json(payload: object) -> None:
    click.echo(dumps(payload))


@click.group()
@click.version_option(__version__, prog_name="chatlogue")
@click.option("--verbose", is_flag=True, help="Enable debug logging.")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, json_logs: bool) -> None:
    """Detect and stream-parse chat export files."""
    settings = get_settings()
    configure_logging(verbose=verbose or settings.verbose, json_logs=json_logs or settings.log_json)
    ctx.obj = AppEnv(registry=default_registry())


@cli.command("formats")
@click.pass_obj
def formats_cmd(env: AppEnv) -> None:
    """List the registered export formats."""
    for feature in env.registry.features():
        exts = ",".join(sorted(feature.extensions)) or "*"
        click.echo(f"{feature.id}\t{feature.platform.value}\tpriority={feature.priority}\t{exts}\t{feature.name}")


@cli.command("detect")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def detect_cmd(env: AppEnv, path: Path) -> None:
    """Print the id of the format PATH uses."""
    plugin = env.registry.detect(path)
    if plugin is None:
        click.echo(f"Format not recognized: {path}", err=True)
        sys.exit(EXIT_NOT_RECOGNIZED)
    click.echo(plugin.feature.id)


@cli.command("parse")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--batch-size", type=click.IntRange(min=1), default=None, help="Messages per batch.")
@click.option("--stream-batches", is_flag=True, help="Emit batches as soon as they are flushed.")
@click.option("--events", "show_events", is_flag=True, help="Print every event as a JSON line.")
@click.pass_obj
def parse_cmd(
    env: AppEnv,
    path: Path,
    batch_size: Optional[int],
    stream_batches: bool,
    show_events: bool,
) -> None:
    """Parse PATH and print a summary (or the event stream)."""
    options: dict[str, object] = {"stream_batches": stream_batches}
    if batch_size is not None:
        options["batch_size"] = batch_size
    try:
        stream = env.registry.parse(path, **options)
    except FormatNotRecognizedError as exc:
        click.echo(str(exc), err=True)
        sys.exit(EXIT_NOT_RECOGNIZED)
    except ChatlogueError as exc:
        raise click.ClickException(str(exc)) from exc

    summary: dict[str, object] = {"file": str(path), "batches": 0}
    with stream:
        for event in stream:
            if show_events:
                _echo_json(event)
            if isinstance(event, MetaEvent):
                summary["meta"] = event.meta.model_dump(mode="json")
            elif isinstance(event, MessagesEvent):
                summary["batches"] = int(summary["batches"]) + 1  # type: ignore[arg-type]
            elif isinstance(event, MembersEvent):
                summary["members"] = len(event.members)
            elif isinstance(event, DoneEvent):
                summary["messages"] = event.message_count
            elif isinstance(event, ErrorEvent):
                click.echo(f"Parse failed: {event.reason}", err=True)
                sys.exit(EXIT_PARSE_FAILED)
    if not show_events:
        _echo_json(summary)


def main() -> None:
    cli(prog_name="chatlogue")


if __name__ == "__main__":
    main()
