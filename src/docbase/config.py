"""Docbase configuration loader.

Priority (high → low):
  1. CLI flags           (handled at the call site, not in this module)
  2. Environment variables  (DOCBASE_EMBEDDING_MODEL, DOCBASE_DATA_DIR,
     DOCBASE_MAX_DOCUMENT_SIZE_MB)
  3. Per-project docbase.yaml  (current directory)
  4. Global ~/.docbase/config.yaml  (defaults only, no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".docbase"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "docbase.yaml"

# Matches api_key, apikey, api-key, api_secret, *_token, token, *_secret,
# secret, password, passwd, credential(s). Not max_tokens or chunk_size.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(["embedding", "rag", "splitter", "storage"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Default embedding engine/model for new document bases (docbase.yaml: embedding:)."""

    engine: str = "openai"
    model: str = "text-embedding-3-small"
    timeout: float = 60.0
    num_retries: int = 3


@dataclass
class RagCfg:
    """Ingestion limits and batch sizes (docbase.yaml: rag:).

    Attributes:
        max_document_size_mb: Loaded text larger than this is rejected.
        add_commit_every: Successful folder additions per store commit.
        delete_commit_every: Confirmed folder-item removals per store commit.
        search_result_count: Default number of chunks returned by a query.
    """

    max_document_size_mb: float = 16
    add_commit_every: int = 5
    delete_commit_every: int = 10
    search_result_count: int = 10


@dataclass
class SplitterCfg:
    """Chunk size (tokens) and overlap fraction (docbase.yaml: splitter:)."""

    chunk_size: int = 512
    overlap: float = 0.10


@dataclass
class StorageCfg:
    """Where document bases live on disk (docbase.yaml: storage:)."""

    data_dir: str = str(_GLOBAL_CONFIG_DIR / "data")


@dataclass
class DocbaseConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    rag: RagCfg = field(default_factory=RagCfg)
    splitter: SplitterCfg = field(default_factory=SplitterCfg)
    storage: StorageCfg = field(default_factory=StorageCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}'; ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: DocbaseConfig) -> None:
    if cfg.rag.max_document_size_mb <= 0:
        raise ConfigError(
            f"rag.max_document_size_mb must be > 0, got {cfg.rag.max_document_size_mb}"
        )
    if cfg.rag.add_commit_every < 1:
        raise ConfigError(f"rag.add_commit_every must be >= 1, got {cfg.rag.add_commit_every}")
    if cfg.rag.delete_commit_every < 1:
        raise ConfigError(
            f"rag.delete_commit_every must be >= 1, got {cfg.rag.delete_commit_every}"
        )
    if cfg.rag.search_result_count < 1:
        raise ConfigError(
            f"rag.search_result_count must be >= 1, got {cfg.rag.search_result_count}"
        )
    if cfg.splitter.chunk_size < 1:
        raise ConfigError(f"splitter.chunk_size must be >= 1, got {cfg.splitter.chunk_size}")
    if not 0.0 <= cfg.splitter.overlap < 1.0:
        raise ConfigError(f"splitter.overlap must be in [0.0, 1.0), got {cfg.splitter.overlap}")


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> DocbaseConfig:
    """Build a *DocbaseConfig* from a merged raw YAML dict."""
    cfg = DocbaseConfig()

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg.embedding = EmbeddingCfg(
            engine=str(e.get("engine", cfg.embedding.engine)),
            model=str(e.get("model", cfg.embedding.model)),
            timeout=float(e.get("timeout", cfg.embedding.timeout)),
            num_retries=int(e.get("num_retries", cfg.embedding.num_retries)),
        )

    if "rag" in data:
        r = data["rag"] or {}
        cfg.rag = RagCfg(
            max_document_size_mb=float(
                r.get("max_document_size_mb", cfg.rag.max_document_size_mb)
            ),
            add_commit_every=int(r.get("add_commit_every", cfg.rag.add_commit_every)),
            delete_commit_every=int(r.get("delete_commit_every", cfg.rag.delete_commit_every)),
            search_result_count=int(r.get("search_result_count", cfg.rag.search_result_count)),
        )

    if "splitter" in data:
        s = data["splitter"] or {}
        cfg.splitter = SplitterCfg(
            chunk_size=int(s.get("chunk_size", cfg.splitter.chunk_size)),
            overlap=float(s.get("overlap", cfg.splitter.overlap)),
        )

    if "storage" in data:
        st = data["storage"] or {}
        cfg.storage = StorageCfg(
            data_dir=str(Path(str(st.get("data_dir", cfg.storage.data_dir))).expanduser()),
        )

    return cfg


def _apply_env_overrides(cfg: DocbaseConfig) -> DocbaseConfig:
    """Apply DOCBASE_* environment variable overrides."""
    if model := os.environ.get("DOCBASE_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if data_dir := os.environ.get("DOCBASE_DATA_DIR"):
        cfg.storage.data_dir = str(Path(data_dir).expanduser())
    if max_size := os.environ.get("DOCBASE_MAX_DOCUMENT_SIZE_MB"):
        try:
            cfg.rag.max_document_size_mb = float(max_size)
        except ValueError as exc:
            raise ConfigError(
                f"DOCBASE_MAX_DOCUMENT_SIZE_MB must be a number, got {max_size!r}"
            ) from exc
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> DocbaseConfig:
    """Load and return a merged *DocbaseConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *docbase.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *DocbaseConfig* with env var overrides applied.

    Raises:
        ConfigError: If the global config contains API-key-like fields, or if
            a limit or batch size is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)
    cfg = _apply_env_overrides(cfg)
    _validate(cfg)
    return cfg


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.docbase/config.yaml`` with defaults if it does not exist.

    Creates the parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# Docbase global configuration (defaults only).\n"
            "# NEVER store API keys here. Use environment variables:\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "\n"
            "embedding:\n"
            "  engine: openai\n"
            "  model: text-embedding-3-small\n"
            "\n"
            "rag:\n"
            "  max_document_size_mb: 16\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
