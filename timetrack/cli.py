"""Timetrack CLI - record checkpoints and see where the time went."""

import logging
import sys
from email.utils import format_datetime

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from timetrack import __version__
from timetrack.config import CONFIG_KEYS, Config
from timetrack.database import Database, init_database, load_database, save_database
from timetrack.dates import (
    END_OF_DAY,
    START_OF_DAY,
    YMDHM_FORMAT,
    day_bounds,
    days_before,
    local_now,
    parse_datetime,
    to_local,
)
from timetrack.durations import duration_of, format_duration, format_hours, is_billable
from timetrack.errors import TimeTrackError, format_error, not_found
from timetrack.position import position_of, resolve
from timetrack.report import build_log
from timetrack.types import Identifier, Timestamp, parse_identifier

console = Console()
err_console = Console(stderr=True)


def _fail(error: TimeTrackError):
    console.print(f"[red]{escape(format_error(error))}[/red]", soft_wrap=True)
    sys.exit(1)


def _open_database() -> tuple[Config, Database]:
    cfg = Config.load()
    result = load_database(cfg.database_path)
    if not result.ok:
        _fail(result.error)
    return cfg, result.value


def _save(cfg: Config, db: Database) -> None:
    result = save_database(db, cfg.database_path)
    if not result.ok:
        _fail(result.error)


def _parse_identifier(raw: str) -> Identifier:
    result = parse_identifier(raw)
    if not result.ok:
        _fail(result.error)
    return result.value


def _format_time(timestamp: int) -> str:
    return to_local(timestamp).strftime(YMDHM_FORMAT)


def _describe(db: Database, timestamp: int) -> str:
    checkpoint = db.store.get(Timestamp(timestamp))
    tag = db.tag_name(checkpoint)
    text = f"{_format_time(timestamp)} ({format_duration(duration_of(db.store, timestamp))}h): {checkpoint.message}"
    if tag:
        text += f" [{tag}]"
    return escape(text)


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Log database reads and writes")
def main(debug):
    """Timetrack: checkpoint-based time tracking."""
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
        )


@main.command()
def init():
    """Create an empty database at the configured path."""
    cfg = Config.load()
    result = init_database(cfg.database_path)
    if not result.ok:
        _fail(result.error)
    console.print(f"[green]✓[/green] Created database: {result.value}")


@main.command()
@click.argument("message", default="")
@click.argument("tag", default="")
@click.option("--time", "-t", "time_str", help="When the checkpoint happened (now, HH:MM, YYYY-MM-DD [HH:MM])")
def add(message, tag, time_str):
    """Add a checkpoint, optionally tagged with a tag's short name."""
    now = local_now()
    timestamp = int(now.timestamp())
    if time_str:
        time_result = parse_datetime(time_str, now)
        if not time_result.ok:
            _fail(time_result.error)
        timestamp = int(time_result.value.timestamp())

    cfg, db = _open_database()
    result = db.add_checkpoint(timestamp, message, tag)
    if not result.ok:
        _fail(result.error)
    _save(cfg, db)

    console.print(f"[green]✓[/green] Added checkpoint: {_describe(db, timestamp)}")


@main.command("print")
@click.argument("identifier", default="0")
def print_cmd(identifier):
    """Show everything about one checkpoint.

    IDENTIFIER is a position (0 = most recent) or @TIMESTAMP.
    """
    ident = _parse_identifier(identifier)
    _, db = _open_database()

    timestamp = resolve(db.store, ident)
    checkpoint = db.store.get(ident)
    if checkpoint is None:
        _fail(not_found("checkpoint", ident))

    tag = db.tag_for(checkpoint)
    table = Table(show_header=False, box=None)
    table.add_column(justify="right", style="bold")
    table.add_column()
    table.add_row("Time", format_datetime(to_local(timestamp)))
    table.add_row("Duration", format_duration(duration_of(db.store, timestamp)))
    table.add_row("Message", escape(checkpoint.message))
    table.add_row("Tag", escape(f"{tag.short_name} - {tag.long_name}") if tag else "")
    table.add_row("Position", str(position_of(db.store, timestamp)))
    table.add_row("Timestamp", str(timestamp))
    console.print(table)


@main.command()
@click.argument("identifier", default="0")
def rm(identifier):
    """Remove a checkpoint (default: the most recent one)."""
    ident = _parse_identifier(identifier)
    cfg, db = _open_database()

    timestamp = resolve(db.store, ident)
    result = db.remove_checkpoint(ident)
    if not result.ok:
        _fail(result.error)
    _save(cfg, db)

    console.print(
        f"[green]✓[/green] Removed checkpoint: {_format_time(timestamp)} {escape(result.value.message)}"
    )


@main.command()
@click.argument("range_days", metavar="RANGE", type=int, required=False)
@click.option("--back", "-b", type=int, help="How many days before today to end the listing")
@click.option("--start", "-s", "start_str", help="Date/time to start from")
@click.option("--end", "-e", "end_str", help="Date/time to end at")
@click.option("--filter", "-f", "filter_str", help="Only list checkpoints with these tags (space separated)")
@click.option("--verbose", "-v", count=True, help="-v totals only, -vv daily totals")
def log(range_days, back, start_str, end_str, filter_str, verbose):
    """List checkpoints with their durations.

    RANGE is how many days before the end day to include (default 0).
    """
    if (range_days is not None or back is not None) and (start_str or end_str):
        console.print("[red]Can't combine --start/--end with RANGE/--back[/red]")
        sys.exit(1)

    now = local_now()
    today = now.date()

    if end_str:
        end_result = parse_datetime(end_str, now, default_time=END_OF_DAY)
        if not end_result.ok:
            _fail(end_result.error)
        end = int(end_result.value.timestamp())
    else:
        _, end = day_bounds(days_before(today, back or 0))

    if start_str:
        start_result = parse_datetime(start_str, now, default_time=START_OF_DAY)
        if not start_result.ok:
            _fail(start_result.error)
        start = int(start_result.value.timestamp())
    else:
        start, _ = day_bounds(days_before(to_local(end).date(), range_days or 0))

    _, db = _open_database()
    filter_tags = tuple(filter_str.split()) if filter_str else ()
    result = build_log(db, start, end, filter_tags)
    if not result.ok:
        _fail(result.error)
    report = result.value

    verbosity = verbose or 3
    window = f"{_format_time(start)} and {_format_time(end)}"
    if verbosity == 1:
        console.print(f"Total stats for checkpoints between {window}")
    elif verbosity == 2:
        console.print(f"Daily stats for checkpoints between {window}")
    else:
        console.print(f"Checkpoints between {window}")
    if filter_tags:
        console.print(f"Only including checkpoints tagged: {escape(' '.join(filter_tags))}")

    for day_log in report.days:
        if verbosity >= 2:
            console.print()
            console.print(f"[bold]{day_log.day.strftime('%Y-%m-%d %a')}[/bold]")
        if verbosity >= 3:
            table = Table()
            table.add_column("POS", justify="right")
            table.add_column("DUR", justify="right")
            table.add_column("TIME")
            table.add_column("TAG")
            table.add_column("MESSAGE")
            for entry in day_log.entries:
                if entry.duration is None:
                    duration = format_duration(None)
                elif is_billable(entry, db.registry):
                    duration = format_hours(entry.duration)
                else:
                    duration = ""
                table.add_row(
                    str(entry.position),
                    duration,
                    to_local(entry.timestamp).strftime("%H:%M"),
                    escape(db.tag_name(entry.checkpoint)),
                    escape(entry.checkpoint.message),
                )
            console.print(table)
        if verbosity >= 2:
            console.print(f"Duration: {format_hours(day_log.total)}")

    console.print()
    console.print(f"[bold]Total duration: {format_hours(report.total)}[/bold]")


@main.command()
@click.argument("identifier", default="0")
@click.option("--time", "-t", "time_str", help="New time (HH:MM keeps the day, YYYY-MM-DD keeps the time)")
@click.option("--message", "-m", help="New message")
@click.option("--no-message", is_flag=True, help="Clear the message")
@click.option("--tag", help="Short name of the new tag")
@click.option("--no-tag", is_flag=True, help="Remove the tag")
def edit(identifier, time_str, message, no_message, tag, no_tag):
    """Change a checkpoint's time, message or tag."""
    if message is not None and no_message:
        console.print("[red]Can't use both --message and --no-message[/red]")
        sys.exit(1)
    if tag is not None and no_tag:
        console.print("[red]Can't use both --tag and --no-tag[/red]")
        sys.exit(1)
    if time_str is None and message is None and not no_message and tag is None and not no_tag:
        console.print("[yellow]Nothing to change.[/yellow]")
        return

    ident = _parse_identifier(identifier)
    cfg, db = _open_database()

    timestamp = resolve(db.store, ident)
    if timestamp is None or timestamp not in db.store:
        _fail(not_found("checkpoint", ident))
    # Pin to the timestamp so later edits survive the move
    target = Timestamp(timestamp)

    if time_str:
        current = to_local(timestamp)
        time_result = parse_datetime(
            time_str,
            local_now(),
            default_date=current.date(),
            default_time=current.time(),
        )
        if not time_result.ok:
            _fail(time_result.error)
        new_timestamp = int(time_result.value.timestamp())
        if new_timestamp != timestamp and new_timestamp in db.store:
            console.print(f"[yellow]Replacing the checkpoint at {_format_time(new_timestamp)}[/yellow]")
        move_result = db.retime(target, new_timestamp)
        if not move_result.ok:
            _fail(move_result.error)
        target = Timestamp(move_result.value)

    if no_message:
        result = db.clear_message(target)
        if not result.ok:
            _fail(result.error)
    elif message is not None:
        result = db.edit_message(target, message)
        if not result.ok:
            _fail(result.error)

    if tag is not None or no_tag:
        result = db.retag(target, tag or "")
        if not result.ok:
            _fail(result.error)

    _save(cfg, db)
    console.print(f"[green]✓[/green] Edited checkpoint: {_describe(db, target.value)}")


@main.command()
def tags():
    """List all tags."""
    _, db = _open_database()

    if len(db.registry):
        table = Table()
        table.add_column("ID", justify="right")
        table.add_column("SHORT")
        table.add_column("LONG")
        for tag_id, tag in db.registry.items():
            table.add_row(str(tag_id), escape(tag.short_name), escape(tag.long_name))
        console.print(table)
    else:
        console.print("[yellow]No tags found.[/yellow]")
        console.print("Create one with: tt add-tag -s SHORT -l LONG")

    dangling = db.dangling_references()
    if dangling:
        console.print()
        console.print(f"[yellow]{len(dangling)} checkpoint(s) reference removed tags and show as untagged[/yellow]")


@main.command("add-tag")
@click.option("--short", "-s", "short_name", required=True, help="Short name, quick to type")
@click.option("--long", "-l", "long_name", required=True, help="Long name, for display")
def add_tag(short_name, long_name):
    """Add a tag."""
    cfg, db = _open_database()
    result = db.add_tag(short_name, long_name)
    if not result.ok:
        _fail(result.error)
    _save(cfg, db)
    console.print(f"[green]✓[/green] Added tag {result.value}: {escape(short_name)} - {escape(long_name)}")


@main.command("rm-tag")
@click.option("--short", "-s", "short_name", required=True, help="Short name of the tag to remove")
def rm_tag(short_name):
    """Remove a tag. Its checkpoints become untagged."""
    cfg, db = _open_database()
    result = db.remove_tag(short_name)
    if not result.ok:
        _fail(result.error)
    _save(cfg, db)
    console.print(f"[green]✓[/green] Removed tag: {escape(short_name)}")


@main.group()
def config():
    """Manage configuration (~/.timetrack/config.yaml)."""
    pass


@config.command("show")
def config_show():
    """Show current configuration."""
    cfg = Config.load()
    for key, value in cfg.to_dict().items():
        console.print(f"  {key}: {escape(value)}")


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key, value):
    """Set a configuration value.

    Examples:
        tt config set database_path ~/Dropbox/timetrack.json
    """
    from pathlib import Path

    key = key.replace("-", "_")
    if key not in CONFIG_KEYS:
        console.print(f"[red]Unknown config key: {escape(key)}[/red]")
        console.print(f"[dim]Known keys: {', '.join(sorted(CONFIG_KEYS))}[/dim]")
        sys.exit(1)

    cfg = Config.load()
    cfg.database_path = Path(value).expanduser()
    result = cfg.save()
    if not result.ok:
        _fail(result.error)
    console.print(f"[green]✓[/green] Set {key}")
