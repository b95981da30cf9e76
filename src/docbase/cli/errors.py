"""Docbase rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from docbase.cli.errors import err_base_not_found
    console.print(err_base_not_found(base_id))
    raise typer.Exit(1)
"""

from __future__ import annotations

from docbase.errors import (
    DocbaseError,
    DocumentTooLarge,
    EmptyDocument,
    LoadFailure,
    NotFound,
    UnsupportedType,
)
from docbase.ingest.loader import SUPPORTED_EXTENSIONS


def err_base_not_found(base_id: str) -> str:
    """No document base with this id."""
    return (
        f"[red]Error:[/] Document base '{base_id}' not found.\n"
        "  Run:  docbase list  to see all document bases."
    )


def err_document_not_found(doc_id: str, base_id: str) -> str:
    """No document with this id in the base."""
    return (
        f"[red]Error:[/] Document '{doc_id}' is not in document base '{base_id}'.\n"
        f"  Run:  docbase list --documents {base_id}"
    )


def err_unsupported_type(origin: str) -> str:
    """The loader cannot parse this source."""
    exts = " ".join(sorted(SUPPORTED_EXTENSIONS))
    return (
        f"[red]Error:[/] Unsupported document type: '{origin}'\n"
        f"  Supported files: {exts}\n"
        "  URLs must start with https:// or http://"
    )


def err_load_failure(origin: str, reason: str) -> str:
    """The loader could not read the source."""
    return (
        f"[red]Error:[/] Unable to load '{origin}': {reason}\n"
        "  Check the path or URL is reachable and readable."
    )


def err_empty_document(origin: str) -> str:
    """Loaded text is empty (or an image-only PDF)."""
    return (
        f"[red]Error:[/] '{origin}' contains no text.\n"
        "  Scanned PDFs must be OCR'd before they can be added."
    )


def err_document_too_large(origin: str, max_size_mb: float) -> str:
    """Loaded text exceeds rag.max_document_size_mb."""
    return (
        f"[red]Error:[/] '{origin}' is too large (max {max_size_mb:g} MB of text).\n"
        "  Split the document, or raise the limit in docbase.yaml:\n"
        "    rag:\n"
        f"      max_document_size_mb: {max_size_mb * 2:g}"
    )


def err_no_api_key(message: str) -> str:
    """No API key in the environment for the embedding engine."""
    return f"[red]Error:[/] {message}"


def err_config(message: str) -> str:
    """Config file is invalid."""
    return f"[red]Error:[/] Invalid configuration.\n  {message}"


def describe_error(exc: DocbaseError, base_id: str = "") -> str:
    """Return the rich message for any ``DocbaseError``."""
    if isinstance(exc, NotFound):
        if exc.kind == "Document base":
            return err_base_not_found(exc.doc_id)
        return err_document_not_found(exc.doc_id, base_id)
    if isinstance(exc, UnsupportedType):
        return err_unsupported_type(exc.origin)
    if isinstance(exc, LoadFailure):
        return err_load_failure(exc.origin, exc.reason)
    if isinstance(exc, EmptyDocument):
        return err_empty_document(exc.origin)
    if isinstance(exc, DocumentTooLarge):
        return err_document_too_large(exc.origin, exc.max_size_mb)
    return f"[red]Error:[/] {exc}"
