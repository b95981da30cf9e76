"""docbase query — nearest chunks for a question."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.table import Table

from docbase.cli.common import DataDirOption, console, open_repository
from docbase.cli.errors import describe_error, err_no_api_key
from docbase.errors import DocbaseError

_PREVIEW_CHARS = 120


def query_cmd(
    base_id: Annotated[str, typer.Argument(help="Document base id.")],
    text: Annotated[str, typer.Argument(help="Query text.")],
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-n", min=1, help="Max results (default: rag.search_result_count)."),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Show the chunks of a base closest to TEXT."""
    repo = open_repository(data_dir)
    try:
        results = repo.query(base_id, text, limit)
    except DocbaseError as exc:
        console.print(describe_error(exc, base_id))
        raise typer.Exit(1) from exc
    except EnvironmentError as exc:
        console.print(err_no_api_key(str(exc)))
        raise typer.Exit(1) from exc

    if not results:
        console.print("[dim]No results.[/]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Source")
    table.add_column("Content")
    for result in results:
        preview = " ".join(result.content.split())
        if len(preview) > _PREVIEW_CHARS:
            preview = preview[: _PREVIEW_CHARS - 1] + "…"
        table.add_row(
            f"{result.score:.3f}",
            str(result.metadata.get("title", "")),
            preview,
        )
    console.print(table)
