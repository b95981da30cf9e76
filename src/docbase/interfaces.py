"""Collaborator interfaces required by ``DocumentBase``.

The engine only depends on these method contracts; concrete implementations
live in ``docbase.ingest`` and ``docbase.db.store``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from docbase.models import QueryResult


class Loader(ABC):
    """Turns a source origin (path or URL) into raw text."""

    @abstractmethod
    def is_parseable(self, source_type: str, origin: str) -> bool:
        """Return True if ``load()`` supports this type / origin."""

    @abstractmethod
    def load(self, source_type: str, origin: str) -> str:
        """Return the full text of the source.

        Raises:
            LoadFailure: If the source cannot be read or decoded.
        """


class Splitter(ABC):
    """Splits a document's text into ordered chunks."""

    @abstractmethod
    def split(self, text: str) -> list[str]:
        """Return the chunks of *text* in document order."""


class Embedder(ABC):
    """Computes a fixed-width vector for one chunk."""

    @abstractmethod
    def embed(self, chunk: str) -> list[float]:
        """Return the embedding vector of *chunk*."""


class StoreHandle(ABC):
    """An open connection to one document base's vector store.

    Outside an explicit transaction every write is committed immediately.
    """

    @abstractmethod
    def begin_transaction(self) -> None:
        """Start a transaction; writes are held until ``commit_transaction()``."""

    @abstractmethod
    def commit_transaction(self) -> None:
        """Commit the open transaction."""

    @abstractmethod
    def insert(
        self,
        source_uuid: str,
        content: str,
        vector: list[float],
        metadata: dict[str, Any],
    ) -> None:
        """Store one chunk row keyed by *source_uuid*."""

    @abstractmethod
    def delete(self, source_uuid: str) -> int:
        """Delete every row keyed by *source_uuid*. Returns the row count."""

    @abstractmethod
    def query(self, vector: list[float], limit: int) -> list[QueryResult]:
        """Return up to *limit* nearest rows, best first."""

    @abstractmethod
    def close(self) -> None:
        """Release the connection."""

    def __enter__(self) -> StoreHandle:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class VectorStore(ABC):
    """Factory for store handles, one store per document base."""

    @abstractmethod
    def connect(self, store_id: str) -> StoreHandle:
        """Open (creating if needed) the store for document base *store_id*."""

    @abstractmethod
    def destroy(self, store_id: str) -> None:
        """Remove the store for *store_id* and all its rows."""


class FileEnumerator(ABC):
    """Lists the files of a folder source."""

    @abstractmethod
    def list_files_recursively(self, folder: str) -> list[str]:
        """Return every file under *folder* in deterministic (lexical) order."""
