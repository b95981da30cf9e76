"""Document repository — the set of document bases, persisted to ``docrepo.json``.

The registry file holds each base's identity, embedding settings and source
tree; chunk rows live in each base's own vector store. The registry is saved
after every mutation and on every progress notification, so a folder
ingestion that dies mid-way leaves a registry matching its committed batches.
"""

from __future__ import annotations

import json
import logging
import os
import uuid as uuidlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from docbase.config import DocbaseConfig
from docbase.db.store import SqliteVectorStore
from docbase.docbase import DocumentBase, EmbedderFactory, ProgressCallback
from docbase.errors import NotFound
from docbase.ingest.embedder import LiteLLMEmbedder
from docbase.ingest.files import DirectoryEnumerator
from docbase.ingest.loader import DocumentLoader
from docbase.ingest.splitter import TextSplitter
from docbase.interfaces import FileEnumerator, Loader, Splitter, VectorStore
from docbase.models import QueryResult, source_from_dict

logger = logging.getLogger(__name__)

_REGISTRY_FILENAME = "docrepo.json"


@dataclass
class Collaborators:
    """The concrete collaborators shared by every base of a repository."""

    store: VectorStore
    loader: Loader
    splitter: Splitter
    embedder_factory: EmbedderFactory
    enumerator: FileEnumerator = field(default_factory=DirectoryEnumerator)


def default_collaborators(config: DocbaseConfig, data_dir: Path) -> Collaborators:
    """Build the SQLite / LiteLLM collaborator set from *config*."""

    def _embedder(engine: str, model: str) -> LiteLLMEmbedder:
        return LiteLLMEmbedder(
            engine,
            model,
            timeout=config.embedding.timeout,
            num_retries=config.embedding.num_retries,
        )

    return Collaborators(
        store=SqliteVectorStore(data_dir),
        loader=DocumentLoader(),
        splitter=TextSplitter(
            chunk_size=config.splitter.chunk_size, overlap=config.splitter.overlap
        ),
        embedder_factory=_embedder,
    )


class DocumentRepository:
    """Registry of document bases.

    Args:
        config: Application configuration.
        data_dir: Directory holding ``docrepo.json`` and the per-base stores.
            Defaults to ``config.storage.data_dir``.
        collaborators: Collaborator set for every base (defaults to SQLite + LiteLLM).
    """

    def __init__(
        self,
        config: DocbaseConfig,
        data_dir: Path | str | None = None,
        collaborators: Collaborators | None = None,
    ) -> None:
        self.config = config
        self.data_dir = Path(data_dir if data_dir is not None else config.storage.data_dir)
        self.collaborators = collaborators or default_collaborators(config, self.data_dir)
        self._bases: list[DocumentBase] = []

    @property
    def registry_path(self) -> Path:
        return self.data_dir / _REGISTRY_FILENAME

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> DocumentRepository:
        """Read ``docrepo.json``; a missing file means an empty repository."""
        self._bases = []
        if not self.registry_path.exists():
            return self
        raw = json.loads(self.registry_path.read_text(encoding="utf-8"))
        for entry in raw.get("bases", []):
            base = self._make_base(
                str(entry["uuid"]),
                str(entry["name"]),
                str(entry["embedding_engine"]),
                str(entry["embedding_model"]),
            )
            base.documents = [source_from_dict(doc) for doc in entry.get("documents", [])]
            self._bases.append(base)
        logger.debug("Loaded %d document bases from %s", len(self._bases), self.registry_path)
        return self

    def save(self) -> None:
        """Write ``docrepo.json`` atomically (temp file + rename)."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        data = self.to_dict()
        tmp = self.registry_path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp, self.registry_path)

    # ------------------------------------------------------------------
    # Bases
    # ------------------------------------------------------------------

    def list(self) -> list[DocumentBase]:
        return list(self._bases)

    def get(self, base_id: str) -> DocumentBase:
        for base in self._bases:
            if base.uuid == base_id:
                return base
        raise NotFound(base_id, kind="Document base")

    def create(self, name: str, embedding_engine: str, embedding_model: str) -> str:
        """Create an empty base and return its uuid."""
        base = self._make_base(str(uuidlib.uuid4()), name, embedding_engine, embedding_model)
        self._bases.append(base)
        self.save()
        logger.info('Created document base "%s" (%s)', name, base.uuid)
        return base.uuid

    def rename(self, base_id: str, name: str) -> None:
        self.get(base_id).name = name
        self.save()

    def delete(self, base_id: str) -> None:
        """Delete a base, its vector store, and its registry entry."""
        base = self.get(base_id)
        base.destroy()
        self._bases.remove(base)
        self.save()
        logger.info('Deleted document base "%s" (%s)', base.name, base_id)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def add_document(
        self,
        base_id: str,
        type: str,
        origin: str,
        callback: ProgressCallback | None = None,
    ) -> str:
        """Add *origin* to base *base_id* under a new uuid; returns the uuid."""
        base = self.get(base_id)
        doc_id = base.add(str(uuidlib.uuid4()), type, origin, self._saving(callback))
        self.save()
        return doc_id

    def remove_document(
        self,
        base_id: str,
        doc_id: str,
        callback: ProgressCallback | None = None,
    ) -> None:
        base = self.get(base_id)
        base.delete(doc_id, self._saving(callback))
        self.save()

    def query(self, base_id: str, text: str, limit: int | None = None) -> list[QueryResult]:
        return self.get(base_id).query(text, limit)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _make_base(
        self, uuid: str, name: str, embedding_engine: str, embedding_model: str
    ) -> DocumentBase:
        c = self.collaborators
        return DocumentBase(
            uuid,
            name,
            embedding_engine,
            embedding_model,
            config=self.config,
            store=c.store,
            loader=c.loader,
            splitter=c.splitter,
            embedder_factory=c.embedder_factory,
            enumerator=c.enumerator,
        )

    def _saving(self, callback: ProgressCallback | None) -> Callable[[], None]:
        def _on_progress() -> None:
            self.save()
            if callback is not None:
                callback()

        return _on_progress

    def __len__(self) -> int:
        return len(self._bases)

    def __iter__(self):
        return iter(self._bases)

    def to_dict(self) -> dict[str, Any]:
        return {"bases": [base.to_dict() for base in self._bases]}
