"""CLI fixtures — commands run against the in-memory collaborators."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from docbase.repository import DocumentRepository


@pytest.fixture
def cli_env(tmp_path, collab, collaborators, config, monkeypatch):
    """Point ``open_repository`` at *tmp_path* with fake collaborators.

    Commands are invoked with ``--data-dir`` set to ``env.data_dir``;
    ``env.reload()`` reads back what the command persisted.
    """
    monkeypatch.setattr("docbase.cli.common.load_config", lambda: config)
    monkeypatch.setattr(
        "docbase.repository.default_collaborators", lambda cfg, data_dir: collaborators
    )
    data_dir = tmp_path / "data"

    def _reload() -> DocumentRepository:
        return DocumentRepository(config, data_dir=data_dir, collaborators=collaborators).load()

    return SimpleNamespace(
        data_dir=data_dir,
        opt=["--data-dir", str(data_dir)],
        collab=collab,
        collaborators=collaborators,
        reload=_reload,
    )
