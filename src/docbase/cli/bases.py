"""docbase list / create / rename / delete — document base management.

Usage:
  docbase create "Product manuals"
  docbase list
  docbase list --documents <base-id>
  docbase rename <base-id> "Manuals"
  docbase delete <base-id> --yes
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from docbase.cli.common import DataDirOption, console, open_repository
from docbase.cli.errors import describe_error
from docbase.errors import NotFound
from docbase.models import Container


def list_cmd(
    documents: Annotated[
        str | None,
        typer.Option("--documents", "-d", help="Show the documents of this base."),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """List document bases, or the documents of one base."""
    repo = open_repository(data_dir)

    if documents is not None:
        try:
            base = repo.get(documents)
        except NotFound as exc:
            console.print(describe_error(exc))
            raise typer.Exit(1) from exc
        tree = Tree(f"[bold]{base.name}[/] [dim]{base.uuid}[/]")
        for doc in base.documents:
            node = tree.add(f"{escape(f'[{doc.type}]')} {escape(doc.get_title())}  [dim]{doc.uuid}[/]")
            if isinstance(doc, Container):
                for item in doc.items:
                    node.add(f"{escape(item.get_title())}  [dim]{item.uuid}[/]")
        console.print(tree)
        return

    bases = repo.list()
    if not bases:
        console.print("[dim]No document bases. Create one:  docbase create NAME[/]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Embedding")
    table.add_column("Documents", justify="right")
    for base in bases:
        table.add_row(
            base.uuid,
            base.name,
            f"{base.embedding_engine}/{base.embedding_model}",
            str(len(base.documents)),
        )
    console.print(table)


def create_cmd(
    name: Annotated[str, typer.Argument(help="Display name of the new base.")],
    engine: Annotated[
        str | None,
        typer.Option("--engine", help="Embedding engine (default: embedding.engine)."),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", help="Embedding model (default: embedding.model)."),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Create an empty document base."""
    repo = open_repository(data_dir)
    base_id = repo.create(
        name,
        engine or repo.config.embedding.engine,
        model or repo.config.embedding.model,
    )
    console.print(f"[green]✓[/] Created document base [bold]{name}[/]: {base_id}")


def rename_cmd(
    base_id: Annotated[str, typer.Argument(help="Document base id.")],
    name: Annotated[str, typer.Argument(help="New display name.")],
    data_dir: DataDirOption = None,
) -> None:
    """Rename a document base."""
    repo = open_repository(data_dir)
    try:
        repo.rename(base_id, name)
    except NotFound as exc:
        console.print(describe_error(exc))
        raise typer.Exit(1) from exc
    console.print(f"[green]✓[/] Renamed {base_id} to [bold]{name}[/]")


def delete_cmd(
    base_id: Annotated[str, typer.Argument(help="Document base id.")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """Delete a document base and its vector store."""
    repo = open_repository(data_dir)
    try:
        base = repo.get(base_id)
    except NotFound as exc:
        console.print(describe_error(exc))
        raise typer.Exit(1) from exc

    console.print(f"\nDelete document base: [bold]{base.name}[/] ({len(base.documents)} documents)")
    if not yes:
        if not typer.confirm("Confirm deletion?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

    repo.delete(base_id)
    console.print(f"[green]✓[/] Deleted: {base.name}")
