"""sqlite-vec virtual table management for a document base store."""

from __future__ import annotations

import sqlite3

VEC_TABLE = "vec_chunks"

_DIMENSIONS_KEY = "dimensions"


def vec_dimensions(conn: sqlite3.Connection) -> int | None:
    """Return the vector width recorded for this store, or None before the first insert."""
    row = conn.execute(
        "SELECT value FROM store_meta WHERE key = ?", (_DIMENSIONS_KEY,)
    ).fetchone()
    return int(row[0]) if row else None


def vec_table_exists(conn: sqlite3.Connection) -> bool:
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (VEC_TABLE,)
    ).fetchone()
    return row is not None


def ensure_vec_table(conn: sqlite3.Connection, dimensions: int) -> str:
    """Create the vec0 table for *dimensions*-wide vectors if it doesn't exist yet.

    Does not commit, so it can run inside the caller's transaction.

    Args:
        conn: Active database connection (sqlite-vec must be loaded).
        dimensions: Embedding vector width (e.g. 1536 for text-embedding-3-small).

    Returns:
        The table name.

    Raises:
        ValueError: If *dimensions* is < 1 or differs from the width the
            store was created with.
    """
    if dimensions < 1:
        raise ValueError(f"dimensions must be >= 1, got {dimensions}")

    existing = vec_dimensions(conn)
    if existing is not None:
        if existing != dimensions:
            raise ValueError(
                f"Vector width mismatch: store holds {existing}-d vectors, got {dimensions}-d"
            )
        return VEC_TABLE

    conn.execute(
        f"CREATE VIRTUAL TABLE IF NOT EXISTS {VEC_TABLE} USING vec0(embedding float[{dimensions}])"
    )
    conn.execute(
        "INSERT INTO store_meta (key, value) VALUES (?, ?)",
        (_DIMENSIONS_KEY, str(dimensions)),
    )
    return VEC_TABLE
