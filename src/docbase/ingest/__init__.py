"""Docbase ingest collaborators — loader, splitter, embedder, file enumerator."""

from docbase.ingest.embedder import LiteLLMEmbedder
from docbase.ingest.files import DirectoryEnumerator
from docbase.ingest.loader import DocumentLoader
from docbase.ingest.splitter import TextSplitter

__all__ = [
    "DirectoryEnumerator",
    "DocumentLoader",
    "LiteLLMEmbedder",
    "TextSplitter",
]
