"""Recursive file listing for folder sources."""

from __future__ import annotations

import fnmatch
from pathlib import Path

from docbase.interfaces import FileEnumerator

_DEFAULT_EXCLUDES: tuple[str, ...] = (".*", "__pycache__", "node_modules")


class DirectoryEnumerator(FileEnumerator):
    """List files under a folder, depth-first, in sorted path order.

    Entries whose name matches an *exclude* glob are skipped (hidden files
    and folders by default). Recursion stops at *max_depth* levels.
    """

    def __init__(
        self,
        exclude: tuple[str, ...] | list[str] = _DEFAULT_EXCLUDES,
        max_depth: int = 10,
    ) -> None:
        self.exclude = tuple(exclude)
        self.max_depth = max_depth

    def list_files_recursively(self, folder: str) -> list[str]:
        root = Path(folder)
        if not root.is_dir():
            return []
        return [str(p) for p in self._scan_dir(root, depth=0)]

    def _scan_dir(self, directory: Path, depth: int) -> list[Path]:
        if depth > self.max_depth:
            return []
        files: list[Path] = []
        try:
            entries = sorted(directory.iterdir())
        except PermissionError:
            return []
        for entry in entries:
            if any(fnmatch.fnmatch(entry.name, pat) for pat in self.exclude):
                continue
            if entry.is_file():
                files.append(entry)
            elif entry.is_dir():
                files.extend(self._scan_dir(entry, depth + 1))
        return files
