"""Helpers shared by the docbase commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from docbase.cli.errors import err_config
from docbase.config import ConfigError, load_config
from docbase.repository import DocumentRepository

console = Console()

DataDirOption = Annotated[
    Path | None,
    typer.Option(
        "--data-dir",
        help="Directory holding docrepo.json and the stores (default: storage.data_dir).",
    ),
]


def open_repository(data_dir: Path | None) -> DocumentRepository:
    """Load config and the document repository, exiting 1 on a config error."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc
    return DocumentRepository(cfg, data_dir=data_dir).load()
