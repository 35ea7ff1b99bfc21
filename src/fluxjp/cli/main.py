"""Main CLI entry point for FluxJP."""

import asyncio
import json
from datetime import date
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich import print as rprint
from rich.panel import Panel
from rich.table import Table

from fluxjp.cli.helpers import console, describe_item, get_db, setup_logging
from fluxjp.core.backup import export_snapshot, read_backup, write_backup
from fluxjp.core.errors import BackupFormatError, MergeError, StoreError
from fluxjp.core.importer import import_items
from fluxjp.core.merge import merge_snapshot
from fluxjp.core.metrics import ProgressMetrics
from fluxjp.core.models import Favorite, Item, Level
from fluxjp.core.scheduler import Grade, preview_intervals
from fluxjp.core.session import SessionKind, StudyEngine
from fluxjp.core.stats import DailyStatsAggregator
from fluxjp.core.storage import SEARCH_LIMIT

load_dotenv()

app = typer.Typer(
    name="fluxjp",
    help="Spaced repetition for Japanese vocabulary.",
    no_args_is_help=True,
)

backup_app = typer.Typer(help="Export and restore progress backups.")
app.add_typer(backup_app, name="backup")

favorite_app = typer.Typer(help="Manage favorite items.")
app.add_typer(favorite_app, name="favorite")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """FluxJP command line."""
    setup_logging(verbose)


# ============================================================================
# STUDY command
# ============================================================================


@app.command()
def study(
    kind: SessionKind = typer.Option(
        SessionKind.CATCH_UP,
        "--kind",
        "-k",
        help="Run kind: catch_up, learn_new, remediation, curated (favorites)",
    ),
    limit: int | None = typer.Option(
        None,
        "--limit",
        "-l",
        min=0,
        help="Maximum items in the run",
    ),
) -> None:
    """Start an interactive study session."""
    engine = StudyEngine(get_db())
    session = engine.start_session(kind, limit=limit)

    if session.completed:
        rprint("[green]Nothing to study right now![/green]")
        return

    rprint(f"\n[bold]Study Session[/bold] ({kind}): {len(session.queue)} item(s)\n")

    while (item := engine.current_item) is not None:
        console.print(
            Panel(item.word, title=f"{item.level} - {session.remaining} left", border_style="blue")
        )
        typer.prompt("\n[Press Enter to reveal answer]", default="", show_default=False)
        _show_answer(item)

        grade = _prompt_grade()
        if grade is None:
            engine.end_session()
            rprint("\n[yellow]Session ended early.[/yellow]")
            return

        try:
            outcome = engine.submit_grade(grade)
        except StoreError as e:
            rprint(f"[red]Could not save grade: {e}[/red] Try again.")
            continue

        if outcome.requeued:
            rprint("[yellow]Will come back later in this session.[/yellow]")
        else:
            rprint(f"[dim]Next review: {outcome.item.due_date.astimezone():%Y-%m-%d}[/dim]")
        rprint("")

    rprint("\n[bold green]Session complete![/bold green]")
    rprint(f"Graded {session.graded} time(s), {session.forgotten} forgotten.")


def _show_answer(item: Item) -> None:
    body = item.meaning
    if item.reading:
        body = f"{item.reading}\n{body}"
    if item.sentence:
        body += f"\n\n{item.sentence}"
        if item.sentence_meaning:
            body += f"\n[dim]{item.sentence_meaning}[/dim]"
    console.print(Panel(body, title="Answer", border_style="green"))

    preview = preview_intervals(item)
    if preview.remembered_interval:
        rprint(f"[dim]Remembered -> {preview.remembered_interval} day(s)[/dim]")


def _prompt_grade() -> Grade | None:
    """Prompt user for a grade."""
    rprint("\n[bold]How did it go?[/bold]")
    rprint(
        "  [red]1[/red] Forgotten  "
        "[green]2[/green] Remembered  "
        "[cyan]3[/cyan] Easy  "
        "[dim]q[/dim] Quit"
    )

    while True:
        choice = typer.prompt("Grade", default="2")
        if choice.lower() == "q":
            return None
        try:
            return Grade.parse(choice)
        except ValueError:
            rprint("[red]Invalid choice. Enter 1-3 or q to quit.[/red]")


# ============================================================================
# STATS command
# ============================================================================


@app.command()
def stats() -> None:
    """Show study statistics."""
    db = get_db()
    aggregator = DailyStatsAggregator(db)
    metrics = ProgressMetrics(db)
    dashboard = StudyEngine(db).dashboard()
    totals = aggregator.totals()

    table = Table(title="FluxJP Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Total Items", str(db.count_items()))
    table.add_row("Due Now", str(dashboard["due_count"]))
    table.add_row("New Learned Today", str(dashboard["new_learned_today"]))
    table.add_row("Total Reviews", str(totals["total_reviews"]))
    table.add_row("Accuracy", f"{totals['average_accuracy']:.0f}%")
    table.add_row("Retention (30d)", f"{dashboard['retention_rate']:.0%}")
    table.add_row("Study Time", f"{totals['total_study_minutes']} min")
    table.add_row("Current Streak", f"{dashboard['streak']} day(s)")
    table.add_row("Longest Streak", f"{aggregator.longest_streak()} day(s)")

    pipeline = metrics.memory_pipeline()
    table.add_row("", "")
    table.add_row("[bold]Memory Pipeline[/bold]", "")
    for stage in ("new", "learning", "short_term", "long_term", "mastered"):
        table.add_row(f"  {stage.replace('_', ' ')}", str(pipeline[stage]))

    table.add_row("", "")
    table.add_row("[bold]Next 7 Days[/bold]", "")
    today = date.today()
    for load in metrics.future_load(today=today):
        label = "today" if load.day == today else load.day.strftime("%a %m-%d")
        value = f"[red]{load.count}[/red]" if load.is_overload else str(load.count)
        table.add_row(f"  {label}", value)

    console.print(table)


# ============================================================================
# SEARCH command
# ============================================================================


@app.command()
def search(
    query: str = typer.Argument(..., help="Text to look for in words, readings and meanings"),
    limit: int = typer.Option(SEARCH_LIMIT, "--limit", "-l", min=1, help="Maximum results"),
) -> None:
    """Search items by word, reading, meaning, category or tag."""
    results = get_db().search_items(query, limit=limit)
    if not results:
        rprint(f"[dim]No items found matching '{query}'[/dim]")
        return

    table = Table(title=f"Found {len(results)} item(s)")
    table.add_column("ID", style="dim")
    table.add_column("Word")
    table.add_column("Reading")
    table.add_column("Meaning")
    table.add_column("Level")
    table.add_column("Status", style="cyan")
    for item in results:
        table.add_row(
            str(item.id), item.word, item.reading, item.meaning, str(item.level), str(item.status)
        )
    console.print(table)


# ============================================================================
# IMPORT command
# ============================================================================


@app.command("import")
def import_cmd(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON word list"),
    level: Level = typer.Option(Level.N5, "--level", help="Level for rows that have none"),
) -> None:
    """Import a JSON array of words as new items."""
    try:
        with open(path, encoding="utf-8") as f:
            records = json.load(f)
    except json.JSONDecodeError as e:
        rprint(f"[red]Not valid JSON: {e}[/red]")
        raise typer.Exit(1)

    if not isinstance(records, list):
        rprint("[red]JSON must be an array of words.[/red]")
        raise typer.Exit(1)

    try:
        report = asyncio.run(import_items(get_db(), records, default_level=level))
    except StoreError as e:
        rprint(f"[red]Import failed: {e}[/red]")
        raise typer.Exit(1)

    rprint(f"[green]Added {report.added} item(s).[/green]")
    if report.duplicates:
        rprint(f"[dim]{report.duplicates} already present.[/dim]")
    if report.skipped:
        rprint(f"[yellow]Skipped {report.skipped} invalid row(s).[/yellow]")


# ============================================================================
# BACKUP commands
# ============================================================================


@backup_app.command("export")
def backup_export(
    path: Path = typer.Argument(..., help="Where to write the backup"),
) -> None:
    """Write all progress to a JSON backup file."""
    snapshot = export_snapshot(get_db())
    write_backup(path, snapshot)
    rprint(f"[green]Backed up {len(snapshot.items)} item(s) to {path}[/green]")


@backup_app.command("restore")
def backup_restore(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Backup file to merge"),
) -> None:
    """Merge a backup into the local data, keeping the better progress."""
    try:
        loaded = read_backup(path)
        report = asyncio.run(merge_snapshot(get_db(), loaded.snapshot, skipped=loaded.skipped))
    except (BackupFormatError, MergeError) as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Restore")
    table.add_column("Result", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Items inserted", str(report.items_inserted))
    table.add_row("Items updated", str(report.items_updated))
    table.add_row("Items unchanged", str(report.items_unchanged))
    table.add_row("Days merged", str(report.stats_merged))
    table.add_row("Favorites added", str(report.favorites_added))
    table.add_row("Favorites dropped", str(report.favorites_dropped))
    table.add_row("Invalid records", str(report.skipped))
    table.add_row("Settings adopted", "yes" if report.settings_adopted else "no")
    console.print(table)


# ============================================================================
# FAVORITE commands
# ============================================================================


@favorite_app.command("add")
def favorite_add(item_id: int = typer.Argument(..., help="Item ID")) -> None:
    """Add an item to favorites."""
    db = get_db()
    item = db.get_by_id(item_id)
    if item is None:
        rprint(f"[red]Item not found: {item_id}[/red]")
        raise typer.Exit(1)
    db.add_favorite(
        Favorite(item_id=item.id, word=item.word, reading=item.reading, meaning=item.meaning)
    )
    rprint(f"[green]Added to favorites:[/green] {describe_item(item)}")


@favorite_app.command("list")
def favorite_list() -> None:
    """List favorite items."""
    favorites = get_db().list_favorites()
    if not favorites:
        rprint("[dim]No favorites yet.[/dim]")
        return

    table = Table(title=f"Favorites ({len(favorites)})")
    table.add_column("Item", style="dim")
    table.add_column("Word")
    table.add_column("Reading")
    table.add_column("Meaning")
    for fav in favorites:
        table.add_row(str(fav.item_id), fav.word, fav.reading, fav.meaning)
    console.print(table)


@favorite_app.command("remove")
def favorite_remove(item_id: int = typer.Argument(..., help="Item ID")) -> None:
    """Remove an item from favorites."""
    if not get_db().remove_favorite(item_id):
        rprint(f"[yellow]Item {item_id} is not a favorite.[/yellow]")
        raise typer.Exit(1)
    rprint("[green]Removed from favorites.[/green]")


# ============================================================================
# RESET command
# ============================================================================


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete all items, statistics, favorites and settings."""
    if not yes and not typer.confirm("This deletes all progress. Continue?"):
        raise typer.Exit(1)
    get_db().delete_all()
    rprint("[green]All data deleted.[/green]")


# ============================================================================
# SERVE command
# ============================================================================


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run the server on"),
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
) -> None:
    """Start the JSON API server."""
    import uvicorn

    rprint("\n[bold]Starting FluxJP API server[/bold]")
    rprint(f"  URL: http://{host}:{port}")
    rprint("\n[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run("fluxjp.web.app:app", host=host, port=port, reload=reload)


# ============================================================================
# Main entry point
# ============================================================================


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
