"""gapfill CLI - fit tasks into the free time in your day."""

import json
import logging
import sys

import click

from .config import load_config
from .core.report import format_gap_line, format_schedule_sections, format_summary
from .lifecycle import ScheduleManager
from .scheduler import run_daemon
from .workflows import memo_titles, open_manager

# Unknown ids, bad transitions, malformed times, conflicts, unreadable stores
ACTION_ERRORS = (LookupError, ValueError, RuntimeError)


@click.group()
@click.version_option(package_name="gapfill")
@click.option("--debug", is_flag=True, help="Verbose logging")
def main(debug: bool):
    """gapfill - fit tasks into the free time in your day."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else logging.WARNING,
    )


def _open(explain: bool = False) -> ScheduleManager:
    try:
        return open_manager(load_config(), explain=explain)
    except ACTION_ERRORS as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _show_schedule(manager: ScheduleManager, as_json: bool) -> None:
    """Shared schedule display logic."""
    result = manager.result
    if as_json:
        click.echo(
            json.dumps(
                {
                    "pending": [b.to_dict() for b in manager.pending()],
                    "accepted": [b.to_dict() for b in manager.accepted.values()],
                    "moved": sorted(manager.moved),
                    "dropped": [s.to_dict() for s in result.dropped],
                    "mandatory_dropped": [s.to_dict() for s in result.mandatory_dropped],
                    "summary": manager.summary.to_dict(),
                },
                indent=2,
            )
        )
        return

    sections = format_schedule_sections(
        result,
        pending=manager.pending(),
        committed=sorted(manager.accepted.values(), key=lambda b: b.start_time),
        titles=memo_titles(manager),
        moved_ids=set(manager.moved),
    )
    click.echo("### Suggestions")
    click.echo(sections["suggestions"])
    click.echo("\n### Accepted")
    click.echo(sections["committed"])
    click.echo("\n### Could not fit")
    click.echo(sections["dropped"])
    click.echo()
    click.echo(format_summary(manager.summary))


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def gaps(as_json: bool):
    """List today's free gaps (net of accepted blocks)."""
    manager = _open()
    available = manager.available_gaps()

    if as_json:
        click.echo(json.dumps([g.to_dict() for g in available], indent=2))
        return

    if not available:
        click.echo("No free time left today.")
        return
    for gap in available:
        click.echo(format_gap_line(gap))


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--explain/--no-explain", default=True, help="Ask for explanations (if enabled in config)")
def suggest(as_json: bool, explain: bool):
    """Show today's suggestions."""
    manager = _open(explain=explain)
    _show_schedule(manager, as_json)


@main.command()
@click.argument("suggestion_id")
def accept(suggestion_id: str):
    """Accept a pending suggestion."""
    manager = _open()
    try:
        block = manager.accept(suggestion_id)
    except ACTION_ERRORS as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Accepted {block.start_time}-{block.end_time}.")


@main.command()
@click.argument("suggestion_id")
def reject(suggestion_id: str):
    """Reject a pending suggestion for the rest of the day."""
    manager = _open()
    try:
        manager.reject(suggestion_id)
    except ACTION_ERRORS as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo("Rejected.")


@main.command()
@click.argument("suggestion_id")
@click.argument("start")
@click.argument("end")
@click.option("--gap", "gap_id", default=None, help="Target gap id (default: the gap containing the range)")
def move(suggestion_id: str, start: str, end: str, gap_id: str | None):
    """Move a pending suggestion to START-END (HH:MM)."""
    manager = _open()
    try:
        block = manager.move(suggestion_id, start, end, gap_id)
    except ACTION_ERRORS as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Moved to {block.start_time}-{block.end_time}.")


@main.command()
@click.argument("suggestion_id")
@click.argument("end")
def resize(suggestion_id: str, end: str):
    """Change the end time (HH:MM) of a pending or accepted suggestion."""
    manager = _open()
    try:
        block = manager.resize(suggestion_id, end)
    except ACTION_ERRORS as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Now {block.start_time}-{block.end_time}.")


@main.command()
@click.argument("suggestion_id")
@click.option("--minutes", type=int, default=None, help="Time actually spent (default: the block length)")
def complete(suggestion_id: str, minutes: int | None):
    """Log an accepted suggestion as done."""
    manager = _open()
    try:
        memo = manager.complete(suggestion_id, minutes)
    except ACTION_ERRORS as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Logged. {memo.title}: {memo.status.time_spent_minutes} minutes in total.")


@main.command()
@click.argument("suggestion_id")
def missed(suggestion_id: str):
    """Release an accepted suggestion without logging progress."""
    manager = _open()
    try:
        manager.missed(suggestion_id)
    except ACTION_ERRORS as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo("Released.")


@main.command()
def reset():
    """Start today over: clear accepted, rejected and moved suggestions."""
    manager = _open()
    try:
        manager.reset_day(force=True)
        manager.regenerate()
        manager.sync.flush()
    except ACTION_ERRORS as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo("Day reset.")


@main.command()
def daemon():
    """Run the scheduler: daily reset plus periodic regeneration."""
    logging.getLogger().setLevel(logging.INFO)
    run_daemon()


if __name__ == "__main__":
    main()
