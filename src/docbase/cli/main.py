"""Docbase CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from docbase.cli.bases import create_cmd, delete_cmd, list_cmd, rename_cmd
from docbase.cli.common import console
from docbase.cli.documents import add_cmd, remove_cmd
from docbase.cli.query import query_cmd


def _version() -> str:
    try:
        return importlib.metadata.version("docbase")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"docbase {_version()}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Route library logging through rich; DEBUG with --verbose, else WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # LiteLLM and urllib3 are noisy at DEBUG.
    for name in ("LiteLLM", "httpx", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)


app = typer.Typer(
    name="docbase",
    help=(
        "Docbase — document bases for retrieval-augmented generation.\n\n"
        "  docbase create NAME          Create a document base.\n"
        "  docbase add BASE_ID ORIGIN   Index a file, folder, or web page.\n"
        "  docbase query BASE_ID TEXT   Find the closest chunks."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
) -> None:
    """Docbase — document bases for retrieval-augmented generation."""
    configure_logging(verbose)


app.command("list")(list_cmd)
app.command("create")(create_cmd)
app.command("rename")(rename_cmd)
app.command("delete")(delete_cmd)
app.command("add")(add_cmd)
app.command("remove")(remove_cmd)
app.command("query")(query_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed docbase version."""
    typer.echo(f"docbase {_version()}")


if __name__ == "__main__":
    app()
