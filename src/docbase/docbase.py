"""Document base — ingestion and deletion of sources against one vector store.

A ``DocumentBase`` owns an ordered list of sources and the vector store
addressed by its own uuid. It keeps both consistent:

- a leaf (file / url) is registered only after all its chunks are stored;
- a folder is registered first (visible while loading), then filled with
  leaves one file at a time; a bad file is logged and skipped;
- folder writes are committed every ``add_commit_every`` successful files and
  deletes every ``delete_commit_every`` removed items, plus one trailing
  commit, so a crash loses at most one uncommitted batch.

Callers must serialize ``add`` / ``delete`` calls per base: there is no
internal locking.
"""

from __future__ import annotations

import logging
import re
import uuid as uuidlib
from typing import Any, Callable

from docbase.config import DocbaseConfig
from docbase.errors import DocumentTooLarge, EmptyDocument, NotFound, UnsupportedType
from docbase.interfaces import Embedder, FileEnumerator, Loader, Splitter, StoreHandle, VectorStore
from docbase.models import Container, DocumentSource, Leaf, QueryResult, make_source

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[], None]
EmbedderFactory = Callable[[str, str], Embedder]

# Text made only of page-break markers, e.g. an image-only PDF:
# ----------------Page (0) Break----------------
_EMPTY_PAGES_RE = re.compile(r"(?:\s*-+Page \(\d+\) Break-+\s*)+")
_TITLE_RE = re.compile(r"<title>(.*?)</title>", re.IGNORECASE)


def _notify(callback: ProgressCallback | None) -> None:
    if callback is not None:
        callback()


class DocumentBase:
    """A named collection of sources backed by one vector store.

    Args:
        uuid: Identity of the base; also the id of its vector store.
        name: Display name.
        embedding_engine: Embedding provider (``openai``, ``ollama``, ...).
        embedding_model: Embedding model name.
        config: Application configuration (size limit, batch sizes).
        store: Vector store factory; ``store.connect(uuid)`` opens this base's store.
        loader: Source loader.
        splitter: Text splitter.
        embedder_factory: Builds the embedder for ``(engine, model)`` on first use.
        enumerator: Lists the files of folder sources.
        add_commit_every: Successful folder additions per commit (default from config).
        delete_commit_every: Confirmed folder-item removals per commit (default from config).
    """

    def __init__(
        self,
        uuid: str,
        name: str,
        embedding_engine: str,
        embedding_model: str,
        *,
        config: DocbaseConfig,
        store: VectorStore,
        loader: Loader,
        splitter: Splitter,
        embedder_factory: EmbedderFactory,
        enumerator: FileEnumerator,
        add_commit_every: int | None = None,
        delete_commit_every: int | None = None,
    ) -> None:
        self.uuid = uuid
        self.name = name
        self.embedding_engine = embedding_engine
        self.embedding_model = embedding_model
        self.documents: list[DocumentSource] = []

        self.config = config
        self.store = store
        self.loader = loader
        self.splitter = splitter
        self.enumerator = enumerator
        self._embedder_factory = embedder_factory
        self._embedder: Embedder | None = None

        self.add_commit_every = (
            add_commit_every if add_commit_every is not None else config.rag.add_commit_every
        )
        self.delete_commit_every = (
            delete_commit_every
            if delete_commit_every is not None
            else config.rag.delete_commit_every
        )
        if self.add_commit_every < 1 or self.delete_commit_every < 1:
            raise ValueError("commit batch sizes must be >= 1")

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, doc_id: str) -> DocumentSource | None:
        for source in self.documents:
            if source.uuid == doc_id:
                return source
        return None

    def _index_of(self, doc_id: str) -> int:
        for i, source in enumerate(self.documents):
            if source.uuid == doc_id:
                return i
        return -1

    @property
    def embedder(self) -> Embedder:
        if self._embedder is None:
            self._embedder = self._embedder_factory(self.embedding_engine, self.embedding_model)
        return self._embedder

    # ------------------------------------------------------------------
    # Add
    # ------------------------------------------------------------------

    def add(
        self,
        uuid: str,
        type: str,
        origin: str,
        callback: ProgressCallback | None = None,
    ) -> str:
        """Index *origin* as source *uuid* and register it. Returns the uuid.

        An existing source with the same uuid is deleted first. Folders are
        registered before their files are indexed; files and URLs only once
        fully indexed, so a failure leaves ``documents`` untouched.

        Raises:
            UnsupportedType, LoadFailure, EmptyDocument, DocumentTooLarge:
                For file / url sources whose pipeline fails.
        """
        if self.find(uuid) is not None:
            self.delete(uuid)

        source = make_source(uuid, type, origin)

        if isinstance(source, Container):
            self.documents.append(source)
            _notify(callback)
            self.add_folder(source, callback)
        else:
            self.add_document(source, None, callback)
            self.documents.append(source)

        logger.info('Added document "%s" to database "%s"', source.origin, self.name)
        return source.uuid

    def add_document(
        self,
        source: Leaf,
        store: StoreHandle | None = None,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Load, split, embed, and store one leaf source.

        With a caller-supplied *store* handle the caller owns the transaction
        and nothing is committed here. Without one, a handle is opened for
        this call and each insert autocommits.
        """
        if not self.loader.is_parseable(source.type, source.origin):
            raise UnsupportedType(source.type, source.origin)

        logger.debug("Processing document [%s] %s", source.type, source.origin)

        text = self.loader.load(source.type, source.origin)

        stripped = text.strip()
        if not stripped or _EMPTY_PAGES_RE.fullmatch(stripped):
            logger.info("Empty document %s", source.origin)
            raise EmptyDocument(source.origin)

        max_size_mb = self.config.rag.max_document_size_mb
        if len(text) > max_size_mb * 1024 * 1024:
            logger.info("Document is too large (max %gMB) %s", max_size_mb, source.origin)
            raise DocumentTooLarge(source.origin, max_size_mb)

        if source.type == "url":
            match = _TITLE_RE.search(text)
            if match and match.group(1).strip():
                source.title = match.group(1).strip()

        chunks = self.splitter.split(text)

        # One embedding call at a time.
        embedded: list[tuple[str, list[float]]] = []
        for chunk in chunks:
            embedded.append((chunk, self.embedder.embed(chunk)))

        metadata: dict[str, Any] = {
            "uuid": source.uuid,
            "type": source.type,
            "title": source.get_title(),
            "url": source.url,
        }
        if store is not None:
            self._insert_all(store, source, embedded, metadata)
        else:
            with self.store.connect(self.uuid) as handle:
                self._insert_all(handle, source, embedded, metadata)

        logger.debug("Stored %d chunks for %s", len(embedded), source.origin)
        _notify(callback)

    @staticmethod
    def _insert_all(
        store: StoreHandle,
        source: Leaf,
        embedded: list[tuple[str, list[float]]],
        metadata: dict[str, Any],
    ) -> None:
        for content, vector in embedded:
            store.insert(source.uuid, content, vector, dict(metadata))

    def add_folder(self, source: Container, callback: ProgressCallback | None = None) -> None:
        """Index every file under the folder as a child leaf of *source*.

        Files that fail are logged and skipped; the folder job itself never
        fails because of one file. Commits every ``add_commit_every``
        successes (notifying *callback*), then once more at the end.

        Raises:
            ValueError: If *source* already has items. Re-scanning a populated
                folder is done by re-adding it, which deletes it first.
        """
        if source.items:
            raise ValueError(
                f"Folder {source.origin!r} is already indexed ({len(source.items)} items); "
                "re-add it to rebuild."
            )

        files = self.enumerator.list_files_recursively(source.origin)
        logger.debug("Found %d files in %s", len(files), source.origin)

        with self.store.connect(self.uuid) as store:
            store.begin_transaction()

            added = 0
            for path in files:
                leaf = Leaf(uuid=str(uuidlib.uuid4()), type="file", origin=path)
                try:
                    self.add_document(leaf, store)
                except Exception as exc:
                    logger.warning("Skipping %s: %s", path, exc)
                    continue

                source.items.append(leaf)
                added += 1
                if added % self.add_commit_every == 0:
                    store.commit_transaction()
                    _notify(callback)
                    store.begin_transaction()

            store.commit_transaction()
            _notify(callback)

        logger.info(
            "Indexed %d of %d files from folder %s", added, len(files), source.origin
        )

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete(self, doc_id: str, callback: ProgressCallback | None = None) -> None:
        """Remove source *doc_id* and its store rows.

        For a folder, each child's rows are deleted and the child removed
        from ``items``, committing every ``delete_commit_every`` removals.
        The source leaves ``documents`` before the final commit.

        Raises:
            NotFound: If no source has this id; nothing is changed.
        """
        index = self._index_of(doc_id)
        if index == -1:
            raise NotFound(doc_id)

        document = self.documents[index]
        is_folder = isinstance(document, Container) and bool(document.items)
        doc_ids = [item.uuid for item in document.items] if is_folder else [doc_id]

        with self.store.connect(self.uuid) as store:
            store.begin_transaction()

            deleted = 0
            for target in doc_ids:
                store.delete(target)

                if is_folder:
                    item_index = document.find_item(target)
                    if item_index != -1:
                        del document.items[item_index]
                        deleted += 1
                        if deleted % self.delete_commit_every == 0:
                            store.commit_transaction()
                            _notify(callback)
                            store.begin_transaction()

            del self.documents[index]

            store.commit_transaction()
            _notify(callback)

        logger.info('Deleted document "%s" from database "%s"', document.origin, self.name)

    # ------------------------------------------------------------------
    # Query / lifecycle
    # ------------------------------------------------------------------

    def query(self, text: str, limit: int | None = None) -> list[QueryResult]:
        """Return the chunks closest to *text*, best first."""
        count = limit if limit is not None else self.config.rag.search_result_count
        if count < 1:
            raise ValueError(f"limit must be >= 1, got {count}")
        vector = self.embedder.embed(text)
        with self.store.connect(self.uuid) as store:
            return store.query(vector, count)

    def destroy(self) -> None:
        """Delete this base's vector store from disk."""
        self.store.destroy(self.uuid)
        self.documents.clear()

    def to_dict(self) -> dict[str, Any]:
        return {
            "uuid": self.uuid,
            "name": self.name,
            "embedding_engine": self.embedding_engine,
            "embedding_model": self.embedding_model,
            "documents": [doc.to_dict() for doc in self.documents],
        }
