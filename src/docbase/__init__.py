"""Docbase — document bases for retrieval-augmented generation."""

from docbase.config import DocbaseConfig, load_config
from docbase.docbase import DocumentBase
from docbase.errors import (
    DocbaseError,
    DocumentTooLarge,
    EmptyDocument,
    LoadFailure,
    NotFound,
    UnsupportedType,
)
from docbase.models import Container, DocumentSource, Leaf, QueryResult
from docbase.repository import DocumentRepository

__all__ = [
    "Container",
    "DocbaseConfig",
    "DocbaseError",
    "DocumentBase",
    "DocumentRepository",
    "DocumentSource",
    "DocumentTooLarge",
    "EmptyDocument",
    "Leaf",
    "LoadFailure",
    "NotFound",
    "QueryResult",
    "UnsupportedType",
    "load_config",
]
