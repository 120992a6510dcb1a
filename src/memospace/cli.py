"""Typer CLI for the Memospace knowledge base."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import logfire
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .app import MemospaceApp
from .config import get_data_dir
from .exceptions import StoreError
from .graph.edges import EdgeDescriptor
from .persistence.json_store import NOTES_FILE, JsonKnowledgeBase

# Load environment variables from .env file
load_dotenv()

# Configure logfire (no console output, nothing sent remotely)
logfire.configure(console=False, send_to_logfire=False)

app = typer.Typer(
    name="memospace",
    help="Notes, categories and a typed link graph between them",
)
console = Console()

T = TypeVar("T")


def _split_category(category: str | None) -> list[str]:
    """Parse ``a/b/c`` into a category path."""
    if not category:
        return []
    return [part.strip() for part in category.split("/") if part.strip()]


def _require_initialized() -> Path:
    data_dir = get_data_dir()
    if not (data_dir / NOTES_FILE).exists():
        typer.echo("Error: Memospace not initialized. Run 'memospace init' first.", err=True)
        raise typer.Exit(1)
    return data_dir


def _run(command: Callable[[MemospaceApp], Awaitable[T]]) -> T:
    """Attach an app to the data directory, run a command and close it."""
    data_dir = _require_initialized()

    async def runner() -> T:
        async with MemospaceApp(JsonKnowledgeBase(data_dir)) as memospace:
            return await command(memospace)

    try:
        return asyncio.run(runner())
    except StoreError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e


def _resolve_note_id(memospace: MemospaceApp, prefix: str) -> str:
    """Accept a full note id or a unique prefix of one."""
    matches = [note.id for note in memospace.store.notes if note.id.startswith(prefix)]
    if len(matches) != 1:
        typer.echo(f"Error: '{prefix}' matches {len(matches)} notes", err=True)
        raise typer.Exit(1)
    return matches[0]


@app.command()
def init() -> None:
    """Create the data directory and empty documents."""
    data_dir = get_data_dir()
    created = JsonKnowledgeBase(data_dir).init()
    for path in created:
        typer.echo(f"Created {path}")
    typer.echo(f"Memospace initialized at {data_dir}")


@app.command()
def add(
    content: str,
    category: str = typer.Option(None, "--category", "-c", help="Category path, e.g. work/ideas"),
    title: str = typer.Option(None, "--title", "-t", help="Title (derived from content if omitted)"),
) -> None:
    """Save a new note."""

    async def command(memospace: MemospaceApp):
        return await memospace.coordinator.save_note(content, _split_category(category), title)

    result = _run(command)
    note = result.value
    typer.echo(f"Saved {note.id[:8]} \"{note.title}\" in {' / '.join(note.category_path)}")


@app.command()
def notes(
    category: str = typer.Option(None, "--category", "-c", help="Only notes under this path"),
    search: str = typer.Option(None, "--search", "-s", help="Filter by title, content or tags"),
) -> None:
    """List notes."""

    async def command(memospace: MemospaceApp):
        memospace.view.select_category(_split_category(category))
        memospace.view.set_search(search or "")
        return memospace.view.filtered_notes

    found = _run(command)
    if not found:
        typer.echo("No notes found.")
        return

    table = Table(title=f"Notes ({len(found)})")
    table.add_column("Id", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Category")
    for note in found:
        table.add_row(note.id[:8], note.title, " / ".join(note.category_path))
    console.print(table)


@app.command()
def link(
    source: str = typer.Argument(..., help="Source note id (or unique prefix)"),
    target: str = typer.Argument(..., help="Target note id (or unique prefix)"),
    link_type: str = typer.Option("Related", "--type", help="Link type or custom label"),
    label: str = typer.Option(None, "--label", help="Label shown on the edge"),
    color: str = typer.Option(None, "--color", help="purple or yellow"),
    directional: bool = typer.Option(
        None, "--directional/--bidirectional", help="Override the type's default arrowhead"
    ),
) -> None:
    """Link two notes."""

    async def command(memospace: MemospaceApp):
        source_id = _resolve_note_id(memospace, source)
        target_id = _resolve_note_id(memospace, target)
        return await memospace.coordinator.create_link(
            source_id, target_id, link_type, label, color, directional
        )

    result = _run(command)
    typer.echo(f"Linked {result.value.source_id[:8]} -> {result.value.target_id[:8]}")


def _edges_table(edges: list[EdgeDescriptor], titles: dict[str, str]) -> Table:
    table = Table(title=f"Edges ({len(edges)})")
    table.add_column("Source")
    table.add_column("Target")
    table.add_column("Label", style="bold")
    table.add_column("Curve")
    table.add_column("Arrow")
    table.add_column("Color")
    for edge in edges:
        table.add_row(
            titles.get(edge.source, edge.source[:8]),
            titles.get(edge.target, edge.target[:8]),
            edge.label,
            edge.curve.value,
            "→" if edge.has_arrowhead else "↔",
            f"[{edge.color}]{edge.color}[/]",
        )
    return table


@app.command()
def edges(
    category: str = typer.Option(None, "--category", "-c", help="Only notes under this path"),
) -> None:
    """Show the graph edges between visible notes."""

    async def command(memospace: MemospaceApp):
        memospace.view.select_category(_split_category(category))
        titles = {note.id: note.title for note in memospace.store.notes}
        return memospace.edges(), titles

    found, titles = _run(command)
    if not found:
        typer.echo("No edges.")
        return
    console.print(_edges_table(found, titles))


@app.command()
def layout(
    category: str = typer.Option(None, "--category", "-c", help="Only notes under this path"),
) -> None:
    """Arrange visible notes on a circle and save their positions."""

    async def command(memospace: MemospaceApp):
        memospace.view.select_category(_split_category(category))
        return await memospace.positions.auto_layout(memospace.view.visible_note_ids)

    result = _run(command)
    typer.echo(f"Placed {result.saved_count} notes")
    for note_id, error in result.failures.items():
        typer.echo(f"  failed {note_id[:8]}: {error}", err=True)
    if result.failures:
        raise typer.Exit(1)


@app.command(name="rename-category")
def rename_category(
    category: str = typer.Argument(..., help="Category path, e.g. work/ideas"),
    new_name: str = typer.Argument(..., help="New name for the last path element"),
) -> None:
    """Rename a category; notes and subcategories follow."""

    async def command(memospace: MemospaceApp):
        target = memospace.store.category_by_path(_split_category(category))
        if target is None:
            typer.echo(f"Error: Category not found: {category}", err=True)
            raise typer.Exit(1)
        return await memospace.coordinator.rename_category(target.id, new_name)

    result = _run(command)
    typer.echo(f"Renamed to {result.value.full_path}")


@app.command(name="delete-category")
def delete_category(
    category: str = typer.Argument(..., help="Category path, e.g. work/ideas"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a category with its subcategories and all their notes."""

    async def command(memospace: MemospaceApp):
        target = memospace.store.category_by_path(_split_category(category))
        if target is None:
            typer.echo(f"Error: Category not found: {category}", err=True)
            raise typer.Exit(1)
        if not yes and not typer.confirm(
            f"Delete {target.full_path} and its {target.note_count} notes?"
        ):
            raise typer.Exit(0)
        return await memospace.coordinator.delete_category(target.id)

    result = _run(command)
    typer.echo(f"Deleted {result.value.full_path}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
