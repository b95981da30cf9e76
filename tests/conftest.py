"""Shared pytest fixtures and in-memory collaborators."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Callable

import pytest

from docbase.config import DocbaseConfig
from docbase.db.connection import Database
from docbase.db.migrations import run_migrations
from docbase.docbase import DocumentBase
from docbase.interfaces import Embedder, FileEnumerator, Loader, Splitter, StoreHandle, VectorStore
from docbase.models import QueryResult
from docbase.repository import Collaborators


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class FakeLoader(Loader):
    """Returns ``texts[origin]`` (raising it if it is an exception)."""

    def __init__(self) -> None:
        self.texts: dict[str, Any] = {}
        self.unsupported: set[str] = set()
        self.default_text = "Alpha paragraph.\n\nBeta paragraph."
        self.loaded: list[str] = []

    def is_parseable(self, source_type: str, origin: str) -> bool:
        return origin not in self.unsupported

    def load(self, source_type: str, origin: str) -> str:
        self.loaded.append(origin)
        value = self.texts.get(origin, self.default_text)
        if isinstance(value, BaseException):
            raise value
        return value


class FakeSplitter(Splitter):
    """One chunk per blank-line separated paragraph."""

    def split(self, text: str) -> list[str]:
        return [p.strip() for p in text.split("\n\n") if p.strip()]


class FakeEmbedder(Embedder):
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.fail_on: set[str] = set()

    def embed(self, chunk: str) -> list[float]:
        self.calls.append(chunk)
        if chunk in self.fail_on:
            raise RuntimeError(f"embedding failed for {chunk!r}")
        return [float(len(chunk)), 1.0, 0.0]


class FakeHandle(StoreHandle):
    def __init__(self, store: FakeVectorStore, store_id: str) -> None:
        self._store = store
        self.store_id = store_id
        self.closed = False

    def begin_transaction(self) -> None:
        self._store.events.append(("begin",))

    def commit_transaction(self) -> None:
        self._store.events.append(("commit",))

    def insert(self, source_uuid, content, vector, metadata) -> None:
        if self._store.on_insert is not None:
            self._store.on_insert(source_uuid)
        self._store.events.append(("insert", source_uuid))
        self._store.rows.append(
            {"uuid": source_uuid, "content": content, "vector": vector, "metadata": metadata}
        )

    def delete(self, source_uuid: str) -> int:
        self._store.events.append(("delete", source_uuid))
        before = len(self._store.rows)
        self._store.rows = [r for r in self._store.rows if r["uuid"] != source_uuid]
        return before - len(self._store.rows)

    def query(self, vector, limit) -> list[QueryResult]:
        self._store.events.append(("query", limit))
        return [
            QueryResult(content=r["content"], score=1.0, metadata=r["metadata"])
            for r in self._store.rows[:limit]
        ]

    def close(self) -> None:
        self.closed = True
        self._store.events.append(("close",))


class FakeVectorStore(VectorStore):
    """Records every store call in ``events`` and rows in ``rows``."""

    def __init__(self) -> None:
        self.events: list[tuple] = []
        self.rows: list[dict[str, Any]] = []
        self.connected: list[str] = []
        self.destroyed: list[str] = []
        self.on_insert: Callable[[str], None] | None = None

    def connect(self, store_id: str) -> FakeHandle:
        self.connected.append(store_id)
        return FakeHandle(self, store_id)

    def destroy(self, store_id: str) -> None:
        self.destroyed.append(store_id)
        self.rows = []

    def count(self, kind: str) -> int:
        return sum(1 for e in self.events if e[0] == kind)

    def uuids(self) -> set[str]:
        return {r["uuid"] for r in self.rows}


class FakeEnumerator(FileEnumerator):
    def __init__(self) -> None:
        self.folders: dict[str, list[str]] = {}

    def list_files_recursively(self, folder: str) -> list[str]:
        return list(self.folders.get(folder, []))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def collab():
    """Fresh set of in-memory collaborators."""
    return SimpleNamespace(
        loader=FakeLoader(),
        splitter=FakeSplitter(),
        embedder=FakeEmbedder(),
        store=FakeVectorStore(),
        enumerator=FakeEnumerator(),
    )


@pytest.fixture
def config():
    return DocbaseConfig()


@pytest.fixture
def make_base(collab, config):
    """Factory for a DocumentBase wired to the in-memory collaborators."""

    def _make(uuid: str = "base-1", **kwargs: Any) -> DocumentBase:
        return DocumentBase(
            uuid,
            "Test base",
            "openai",
            "text-embedding-3-small",
            config=kwargs.pop("config", config),
            store=collab.store,
            loader=kwargs.pop("loader", collab.loader),
            splitter=kwargs.pop("splitter", collab.splitter),
            embedder_factory=lambda engine, model: collab.embedder,
            enumerator=collab.enumerator,
            **kwargs,
        )

    return _make


@pytest.fixture
def tmp_store(tmp_path):
    """File-based store DB in tmp_path with schema initialized, closed after test."""
    conn = Database(tmp_path / "store.db").connect()
    run_migrations(conn)
    yield conn
    conn.close()


@pytest.fixture
def collaborators(collab):
    """``Collaborators`` bundle over the in-memory fakes."""
    return Collaborators(
        store=collab.store,
        loader=collab.loader,
        splitter=collab.splitter,
        embedder_factory=lambda engine, model: collab.embedder,
        enumerator=collab.enumerator,
    )
