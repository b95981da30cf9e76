"""Document source models.

A source is either a ``Leaf`` (a file or URL whose uuid keys vector store
rows) or a ``Container`` (a folder holding leaves, never stored itself).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Literal, Union

SourceType = Literal["file", "url", "folder"]
LeafType = Literal["file", "url"]

SOURCE_TYPES: tuple[str, ...] = ("file", "url", "folder")


def source_type(value: str) -> SourceType:
    """Validate *value* as a source type."""
    if value not in SOURCE_TYPES:
        raise ValueError(
            f"Invalid source type {value!r}; expected one of: {', '.join(SOURCE_TYPES)}"
        )
    return value  # type: ignore[return-value]


def _basename(origin: str) -> str:
    name = PurePath(origin.rstrip("/\\")).name
    return name or origin


@dataclass
class Leaf:
    """A file or URL source. Its uuid addresses chunk rows in the store."""

    uuid: str
    type: LeafType
    origin: str
    title: str | None = None

    @property
    def items(self) -> tuple[()]:
        return ()

    @property
    def url(self) -> str:
        return self.origin

    def get_title(self) -> str:
        if self.title:
            return self.title
        if self.type == "file":
            return _basename(self.origin)
        return self.origin

    def to_dict(self) -> dict[str, Any]:
        return {
            "uuid": self.uuid,
            "type": self.type,
            "origin": self.origin,
            "title": self.title,
        }


@dataclass
class Container:
    """A folder source. Only its ``items`` own rows in the store."""

    uuid: str
    origin: str
    items: list[Leaf] = field(default_factory=list)

    type: Literal["folder"] = field(default="folder", init=False)
    title: None = field(default=None, init=False)

    @property
    def url(self) -> str:
        return self.origin

    def get_title(self) -> str:
        return _basename(self.origin)

    def find_item(self, item_id: str) -> int:
        """Return the index of child *item_id* in ``items``, or -1."""
        for i, item in enumerate(self.items):
            if item.uuid == item_id:
                return i
        return -1

    def to_dict(self) -> dict[str, Any]:
        return {
            "uuid": self.uuid,
            "type": self.type,
            "origin": self.origin,
            "items": [item.to_dict() for item in self.items],
        }


DocumentSource = Union[Leaf, Container]


def make_source(uuid: str, type: str, origin: str) -> DocumentSource:
    """Build a fresh, unindexed source of the given type."""
    kind = source_type(type)
    if kind == "folder":
        return Container(uuid=uuid, origin=origin)
    return Leaf(uuid=uuid, type=kind, origin=origin)


def source_from_dict(data: dict[str, Any]) -> DocumentSource:
    """Rebuild a source (and, for containers, its children) from ``to_dict()`` output."""
    kind = source_type(str(data["type"]))
    if kind == "folder":
        return Container(
            uuid=str(data["uuid"]),
            origin=str(data["origin"]),
            items=[_leaf_from_dict(item) for item in data.get("items", [])],
        )
    return _leaf_from_dict(data)


def _leaf_from_dict(data: dict[str, Any]) -> Leaf:
    kind = source_type(str(data["type"]))
    if kind == "folder":
        raise ValueError(f"Nested folder sources are not supported: {data.get('origin')!r}")
    return Leaf(
        uuid=str(data["uuid"]),
        type=kind,
        origin=str(data["origin"]),
        title=data.get("title"),
    )


@dataclass
class QueryResult:
    """A chunk returned by a similarity query (larger score = closer)."""

    content: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)
