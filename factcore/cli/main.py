"""
CLI entry point for factcore.
"""

# Standard library imports
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

# Third-party imports
import typer
from rich.console import Console
from rich.table import Table

# Local application imports
from factcore.config import Settings, build_controller, load_settings
from factcore.exceptions import (
    ConstructionError,
    FactcoreError,
    FactIndexError,
    StorageError,
    TransferError,
)
from factcore.session import SessionController
from factcore.transfer import export_facts, filter_new_entries, read_entries
from factcore.cli.review_ui import start_review_flow

logger = logging.getLogger(__name__)

console = Console()

app = typer.Typer(
    name="factcore",
    help="Factcore: spaced-repetition review of terms and definitions.",
    add_completion=False,
    rich_markup_mode="markdown",
)


# ---------------------------------------------------------------------------
# Shared options and controller lifecycle
# ---------------------------------------------------------------------------

_data_option = typer.Option(  # noqa: B008
    None,
    "--data",
    help="Path to the data file. Falls back to FACTCORE_DATA_PATH.",
)

_backend_option = typer.Option(  # noqa: B008
    None,
    "--backend",
    help="Storage backend: json or duckdb. Falls back to FACTCORE_STORAGE_BACKEND.",
)


def _settings_for(data: Optional[Path], backend: Optional[str]) -> Settings:
    """Environment settings with any command-line overrides applied."""
    overrides = {}
    if data is not None:
        overrides["data_path"] = data
    if backend is not None:
        overrides["storage_backend"] = backend
    return load_settings(**overrides)


@contextmanager
def _open_controller(
    data: Optional[Path], backend: Optional[str]
) -> Iterator[SessionController]:
    """
    Build a controller, load it, and shut it down afterwards. Saving is left
    to each command. Construction and storage failures end the command with
    exit code 1.
    """
    try:
        controller = build_controller(_settings_for(data, backend))
    except ConstructionError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    with controller:
        try:
            controller.load()
        except StorageError as e:
            console.print(f"[bold red]Could not load facts:[/bold red] {e}")
            raise typer.Exit(code=1) from e
        yield controller


def _save(controller: SessionController) -> None:
    try:
        controller.save()
    except StorageError as e:
        console.print(
            f"[bold red]Could not save facts; changes were not kept:[/bold red] {e}"
        )
        raise typer.Exit(code=1) from e


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show log output."
    ),
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Fact management
# ---------------------------------------------------------------------------


@app.command()
def add(
    term: str = typer.Argument(..., help="The term to learn."),  # noqa: B008
    definition: str = typer.Argument(  # noqa: B008
        ..., help="The expected answer."
    ),
    data: Optional[Path] = _data_option,
    backend: Optional[str] = _backend_option,
):
    """Add a new fact. It is due for review immediately."""
    with _open_controller(data, backend) as controller:
        try:
            fact = controller.add_fact(term, definition)
        except ValueError as e:
            console.print(f"[bold red]Invalid fact:[/bold red] {e}")
            raise typer.Exit(code=1) from e
        _save(controller)
    console.print(f"[green]Added[/green] [bold]{fact.term}[/bold].")


@app.command("list")
def list_facts(
    show_all: bool = typer.Option(
        False, "--all", "-a", help="Include facts that are not due yet."
    ),
    show_defs: bool = typer.Option(
        False, "--show-defs", "-d", help="Show definitions."
    ),
    data: Optional[Path] = _data_option,
    backend: Optional[str] = _backend_option,
):
    """
    List facts with their positions.

    Positions always refer to the full list, so they can be passed to
    `delete` even when only due facts are shown.
    """
    with _open_controller(data, backend) as controller:
        all_facts = controller.snapshot_all()
        eligible = {f.uuid for f in controller.snapshot_eligible()}

    rows = [
        (index, fact)
        for index, fact in enumerate(all_facts)
        if show_all or fact.uuid in eligible
    ]
    if not rows:
        console.print("[yellow]No facts.[/yellow]")
        return

    table = Table(title="Facts" if show_all else "Due facts")
    table.add_column("#", style="dim")
    table.add_column("Term", style="cyan")
    table.add_column("Definition", style="magenta")
    table.add_column("Due", style="yellow")
    for index, fact in rows:
        table.add_row(
            str(index),
            fact.term,
            fact.definition if show_defs else "[dim]hidden[/dim]",
            "now" if fact.uuid in eligible else str(fact.scheduling.next_eligible),
        )
    console.print(table)


@app.command()
def delete(
    index: int = typer.Argument(  # noqa: B008
        ..., help="Position of the fact, as shown by `list`."
    ),
    data: Optional[Path] = _data_option,
    backend: Optional[str] = _backend_option,
):
    """Delete the fact at a position."""
    with _open_controller(data, backend) as controller:
        try:
            removed = controller.delete_at_index(index)
        except FactIndexError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=1) from e
        _save(controller)
    console.print(f"[green]Deleted[/green] [bold]{removed.term}[/bold].")


@app.command()
def clear(
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Bypass confirmation prompt."
    ),
    data: Optional[Path] = _data_option,
    backend: Optional[str] = _backend_option,
):
    """Delete every fact."""
    if not yes:
        confirmed = typer.confirm("Are you sure you want to delete every fact?")
        if not confirmed:
            console.print("Clear operation cancelled.")
            raise typer.Exit()

    with _open_controller(data, backend) as controller:
        count = len(controller.store)
        controller.clear()
        _save(controller)
    console.print(f"[green]Deleted {count} fact(s).[/green]")


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------


@app.command()
def review(
    limit: Optional[int] = typer.Option(
        None, "--limit", "-l", help="Maximum number of facts to review."
    ),
    keep_going: bool = typer.Option(
        False,
        "--keep-going",
        help="Keep practising facts that are not due once the due ones are done.",
    ),
    data: Optional[Path] = _data_option,
    backend: Optional[str] = _backend_option,
):
    """Start an interactive review session."""
    with _open_controller(data, backend) as controller:
        summary = start_review_flow(controller, limit=limit, keep_going=keep_going)
        if summary.reviewed:
            _save(controller)


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@app.command()
def stats(
    data: Optional[Path] = _data_option,
    backend: Optional[str] = _backend_option,
):
    """Display statistics about the stored facts."""
    with _open_controller(data, backend) as controller:
        stats_data = controller.stats()

    overall_table = Table(title="Overall Stats", show_header=False)
    overall_table.add_column("Metric", style="cyan")
    overall_table.add_column("Value", style="magenta")
    overall_table.add_row("Total Facts", str(stats_data["total_facts"]))
    overall_table.add_row("Due Now", str(stats_data["eligible_facts"]))
    overall_table.add_row("Answers Recorded", str(stats_data["reviews"]))
    overall_table.add_row("Wrong Answers", str(stats_data["penalties"]))
    console.print(overall_table)

    if not stats_data["total_facts"]:
        console.print("[yellow]No facts stored yet.[/yellow]")
        return

    stages_table = Table(title="Stages")
    stages_table.add_column("Stage", style="cyan")
    stages_table.add_column("Count", style="magenta")
    for stage, count in sorted(stats_data["stages"].items()):
        stages_table.add_row(stage, str(count))
    console.print(stages_table)


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------


@app.command("import")
def import_facts(
    file: Path = typer.Argument(..., help="YAML file to import."),  # noqa: B008
    overwrite: bool = typer.Option(
        False, "--overwrite", help="Replace every stored fact with the file's."
    ),
    allow_duplicates: bool = typer.Option(
        False,
        "--allow-duplicates",
        help="Import entries whose term is already stored.",
    ),
    data: Optional[Path] = _data_option,
    backend: Optional[str] = _backend_option,
):
    """Import facts from a YAML file."""
    try:
        entries, errors = read_entries(file)
    except TransferError as e:
        console.print(f"[bold red]Import failed:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    if errors:
        console.print("[bold red]Invalid entries were skipped:[/bold red]")
        for error in errors:
            console.print(f"- {error}")

    with _open_controller(data, backend) as controller:
        if overwrite:
            controller.clear()
        duplicate_count = 0
        if not allow_duplicates:
            entries, duplicate_count = filter_new_entries(
                controller.snapshot_all(), entries
            )
        added = controller.add_facts(entry.pair for entry in entries)
        _save(controller)

    console.print("[bold green]Import complete![/bold green]")
    console.print(f"- [green]{len(added)}[/green] facts were added.")
    if duplicate_count:
        console.print(
            f"- [yellow]{duplicate_count}[/yellow] duplicate facts were skipped."
        )


@app.command("export")
def export_command(
    file: Path = typer.Argument(..., help="YAML file to write."),  # noqa: B008
    overwrite: bool = typer.Option(
        False,
        "--overwrite",
        help="Replace the file instead of merging with its entries.",
    ),
    data: Optional[Path] = _data_option,
    backend: Optional[str] = _backend_option,
):
    """Export every fact to a YAML file, sorted by term."""
    with _open_controller(data, backend) as controller:
        facts = controller.snapshot_all()

    try:
        written = export_facts(facts, file, overwrite_existing=overwrite)
    except TransferError as e:
        console.print(f"[bold red]Export failed:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    console.print(f"[green]Exported {written} fact(s) to[/green] [cyan]{file}[/cyan].")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """
    Run the CLI application, turning unexpected engine errors into exit code 1.
    """
    try:
        app()
    except FactcoreError as e:
        console.print(f"[bold red]UNEXPECTED ERROR: {e}[/bold red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
