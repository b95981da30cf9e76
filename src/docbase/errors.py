"""Exceptions raised by the document base pipelines.

Inside folder ingestion every per-file error is caught and logged; everywhere
else these propagate to the caller unchanged.
"""

from __future__ import annotations


class DocbaseError(Exception):
    """Base class for all document base errors."""


class UnsupportedType(DocbaseError):
    """The loader cannot parse this source type / origin."""

    def __init__(self, source_type: str, origin: str) -> None:
        super().__init__(f"Unsupported document type: [{source_type}] {origin}")
        self.source_type = source_type
        self.origin = origin


class LoadFailure(DocbaseError):
    """The loader failed to produce text for a source."""

    def __init__(self, origin: str, reason: str = "Unable to load document") -> None:
        super().__init__(f"{reason}: {origin}")
        self.origin = origin
        self.reason = reason


class EmptyDocument(DocbaseError):
    """Loaded text is blank or only contains page-break markers."""

    def __init__(self, origin: str) -> None:
        super().__init__(f"Document is empty: {origin}")
        self.origin = origin


class DocumentTooLarge(DocbaseError):
    """Loaded text exceeds the configured size limit."""

    def __init__(self, origin: str, max_size_mb: float) -> None:
        super().__init__(f"Document is too large (max {max_size_mb:g}MB): {origin}")
        self.origin = origin
        self.max_size_mb = max_size_mb


class NotFound(DocbaseError):
    """No document (or document base) with this id."""

    def __init__(self, doc_id: str, kind: str = "Document") -> None:
        super().__init__(f"{kind} not found: {doc_id}")
        self.doc_id = doc_id
        self.kind = kind
