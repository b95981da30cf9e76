"""docbase add / remove — document lifecycle within a base.

Source type is detected from the origin unless --type is given:
  https:// / http://  → url
  directory           → folder (all files, recursively)
  anything else       → file

Usage:
  docbase add <base-id> manual.pdf
  docbase add <base-id> ./docs
  docbase add <base-id> https://example.com/faq
  docbase remove <base-id> <doc-id> --yes
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from docbase.cli.common import DataDirOption, console, open_repository
from docbase.cli.errors import describe_error, err_no_api_key
from docbase.errors import DocbaseError, NotFound
from docbase.models import SOURCE_TYPES, Container


def detect_type(origin: str) -> str:
    """Infer the source type of *origin*."""
    if origin.startswith(("https://", "http://")):
        return "url"
    if Path(origin).is_dir():
        return "folder"
    return "file"


def add_cmd(
    base_id: Annotated[str, typer.Argument(help="Document base id.")],
    origin: Annotated[str, typer.Argument(help="File, folder, or URL to add.")],
    type_: Annotated[
        str | None,
        typer.Option("--type", "-t", help=f"Source type: {', '.join(SOURCE_TYPES)}."),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Add a file, folder, or web page to a document base."""
    source_type = type_ or detect_type(origin)
    if source_type not in SOURCE_TYPES:
        console.print(
            f"[red]Error:[/] Invalid --type {source_type!r}. Use one of: {', '.join(SOURCE_TYPES)}"
        )
        raise typer.Exit(1)
    if source_type in ("file", "folder"):
        origin = str(Path(origin).expanduser().resolve())

    repo = open_repository(data_dir)
    updates = 0

    def _on_progress() -> None:
        nonlocal updates
        updates += 1
        console.print(f"  [dim]… progress update {updates}[/]")

    console.print(f"\n[bold]→ {origin}[/] [dim]({source_type})[/]")
    try:
        doc_id = repo.add_document(base_id, source_type, origin, _on_progress)
    except DocbaseError as exc:
        console.print(describe_error(exc, base_id))
        raise typer.Exit(1) from exc
    except EnvironmentError as exc:
        console.print(err_no_api_key(str(exc)))
        raise typer.Exit(1) from exc

    doc = repo.get(base_id).find(doc_id)
    if isinstance(doc, Container):
        console.print(f"  [green]✓[/] Added folder: {len(doc.items)} files indexed")
    else:
        console.print(f"  [green]✓[/] Added: {doc.get_title() if doc else origin}")
    console.print(f"  id: {doc_id}")


def remove_cmd(
    base_id: Annotated[str, typer.Argument(help="Document base id.")],
    doc_id: Annotated[str, typer.Argument(help="Document id (see: docbase list -d BASE_ID).")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """Remove a document (or a whole folder) and its chunks from a base."""
    repo = open_repository(data_dir)
    try:
        doc = repo.get(base_id).find(doc_id)
        if doc is None:
            raise NotFound(doc_id)
    except NotFound as exc:
        console.print(describe_error(exc, base_id))
        raise typer.Exit(1) from exc

    console.print(f"\nRemove: [bold]{escape(doc.get_title())}[/] ({doc.type})")
    if not yes:
        if not typer.confirm("Confirm removal?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

    try:
        repo.remove_document(base_id, doc_id)
    except DocbaseError as exc:
        console.print(describe_error(exc, base_id))
        raise typer.Exit(1) from exc
    console.print(f"[green]✓[/] Removed: {doc_id}")
