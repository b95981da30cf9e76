"""Docbase vector store layer."""

from docbase.db.connection import Database
from docbase.db.migrations import MIGRATIONS, run_migrations
from docbase.db.store import SqliteStoreHandle, SqliteVectorStore, database_path
from docbase.db.vectors import VEC_TABLE, ensure_vec_table

__all__ = [
    "Database",
    "run_migrations",
    "MIGRATIONS",
    "SqliteStoreHandle",
    "SqliteVectorStore",
    "database_path",
    "VEC_TABLE",
    "ensure_vec_table",
]
