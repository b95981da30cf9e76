"""SQLite + sqlite-vec implementation of the VectorStore contract.

One database file per document base at ``<data_dir>/docrepo/<uuid>/store.db``.
Chunk rows live in ``chunks``; their vectors live in the vec0 table with
``rowid = chunks.rowid``.
"""

from __future__ import annotations

import json
import logging
import shutil
import sqlite3
from pathlib import Path
from typing import Any

from docbase.db.connection import Database
from docbase.db.migrations import run_migrations
from docbase.db.vectors import VEC_TABLE, ensure_vec_table, vec_table_exists
from docbase.interfaces import StoreHandle, VectorStore
from docbase.models import QueryResult

logger = logging.getLogger(__name__)

_STORE_FILENAME = "store.db"


def database_path(data_dir: Path | str, base_id: str) -> Path:
    """Return the store path for document base *base_id* under *data_dir*."""
    if not base_id or "/" in base_id or "\\" in base_id or base_id in (".", ".."):
        raise ValueError(f"Invalid document base id: {base_id!r}")
    return Path(data_dir) / "docrepo" / base_id / _STORE_FILENAME


class SqliteStoreHandle(StoreHandle):
    """An open connection to one store. Owned by the caller; close after use."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def begin_transaction(self) -> None:
        self._conn.execute("BEGIN")

    def commit_transaction(self) -> None:
        if not self._conn.in_transaction:
            logger.debug("commit_transaction() with no open transaction, ignored")
            return
        self._conn.execute("COMMIT")

    @property
    def in_transaction(self) -> bool:
        return self._conn.in_transaction

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def insert(
        self,
        source_uuid: str,
        content: str,
        vector: list[float],
        metadata: dict[str, Any],
    ) -> None:
        table = ensure_vec_table(self._conn, len(vector))
        cur = self._conn.execute(
            "INSERT INTO chunks (source_uuid, content, metadata) VALUES (?, ?, ?)",
            (source_uuid, content, json.dumps(metadata)),
        )
        self._conn.execute(
            f"INSERT INTO {table}(rowid, embedding) VALUES (?, ?)",
            (cur.lastrowid, json.dumps(vector)),
        )

    def delete(self, source_uuid: str) -> int:
        rowids = [
            r[0]
            for r in self._conn.execute(
                "SELECT rowid FROM chunks WHERE source_uuid = ?", (source_uuid,)
            ).fetchall()
        ]
        if not rowids:
            return 0
        if vec_table_exists(self._conn):
            placeholders = ",".join("?" * len(rowids))
            self._conn.execute(
                f"DELETE FROM {VEC_TABLE} WHERE rowid IN ({placeholders})",  # noqa: S608
                rowids,
            )
        self._conn.execute("DELETE FROM chunks WHERE source_uuid = ?", (source_uuid,))
        return len(rowids)

    def count(self, source_uuid: str | None = None) -> int:
        """Return the number of chunk rows, optionally for one source."""
        if source_uuid is None:
            return self._conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0]
        return self._conn.execute(
            "SELECT COUNT(*) FROM chunks WHERE source_uuid = ?", (source_uuid,)
        ).fetchone()[0]

    def query(self, vector: list[float], limit: int) -> list[QueryResult]:
        """Nearest-neighbour search. Score is ``1 / (1 + distance)``."""
        if not vec_table_exists(self._conn):
            return []
        vec_rows = self._conn.execute(
            f"SELECT rowid, distance FROM {VEC_TABLE} WHERE embedding MATCH ? ORDER BY distance LIMIT ?",
            (json.dumps(vector), limit),
        ).fetchall()

        results: list[QueryResult] = []
        for vec_row in vec_rows:
            row = self._conn.execute(
                "SELECT content, metadata FROM chunks WHERE rowid = ?", (vec_row["rowid"],)
            ).fetchone()
            if row is None:
                continue
            results.append(
                QueryResult(
                    content=row["content"],
                    score=1.0 / (1.0 + float(vec_row["distance"])),
                    metadata=json.loads(row["metadata"]),
                )
            )
        return results

    def close(self) -> None:
        if self._conn.in_transaction:
            logger.warning("Closing store with an uncommitted transaction, rolling back")
            self._conn.execute("ROLLBACK")
        self._conn.close()


class SqliteVectorStore(VectorStore):
    """Opens per-base SQLite stores under *data_dir*."""

    def __init__(self, data_dir: Path | str) -> None:
        self.data_dir = Path(data_dir)

    def connect(self, store_id: str) -> SqliteStoreHandle:
        conn = Database(database_path(self.data_dir, store_id)).connect()
        run_migrations(conn)
        return SqliteStoreHandle(conn)

    def destroy(self, store_id: str) -> None:
        store_dir = database_path(self.data_dir, store_id).parent
        if store_dir.exists():
            shutil.rmtree(store_dir)
            logger.info("Removed store %s", store_dir)
