"""Registry data models — entries, per-author maps, and one fetched snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from mexty.errors import MalformedRegistryError

REQUIRED_ENTRY_FIELDS = ("blockId", "componentName", "title", "description", "lastUpdated")


@dataclass(frozen=True)
class RegistryEntry:
    """A single published block as listed in the registry."""

    block_id: str
    component_name: str
    title: str
    description: str
    last_updated: str
    author: str | None = None
    version: str | None = None
    tags: list[str] = field(default_factory=list)


# componentName -> entry, insertion order is generation order
Registry = dict[str, RegistryEntry]

# author -> that author's registry
AuthorRegistry = dict[str, Registry]


@dataclass(frozen=True)
class RegistryMeta:
    """Summary counts reported by the server alongside the registry."""

    total_blocks: int = 0
    total_components: int = 0
    total_authors: int = 0
    last_updated: str = ""


@dataclass(frozen=True)
class RegistrySnapshot:
    """One fetched view of the catalogue, treated as immutable for a run."""

    registry: Registry = field(default_factory=dict)
    author_registry: AuthorRegistry = field(default_factory=dict)
    meta: RegistryMeta = field(default_factory=RegistryMeta)

    @property
    def component_count(self) -> int:
        return len(self.registry)

    @property
    def author_count(self) -> int:
        return len(self.author_registry)

    @property
    def is_empty(self) -> bool:
        return not self.registry

    @classmethod
    def from_dict(cls, data: Any) -> RegistrySnapshot:
        """Build a snapshot from the decoded ``/api/blocks/registry`` body.

        Raises:
            MalformedRegistryError: If any map or entry has the wrong shape.
        """
        if not isinstance(data, dict):
            raise MalformedRegistryError("response body is not an object")

        registry = _parse_registry(data.get("registry"), "registry")

        raw_authors = data.get("authorRegistry") or {}
        if not isinstance(raw_authors, dict):
            raise MalformedRegistryError("expected an object", "authorRegistry")
        author_registry: AuthorRegistry = {}
        for author, components in raw_authors.items():
            author_registry[author] = _parse_registry(components, f"authorRegistry.{author}")

        return cls(
            registry=registry,
            author_registry=author_registry,
            meta=_parse_meta(data.get("meta") or {}),
        )


def _parse_registry(raw: Any, location: str) -> Registry:
    if not isinstance(raw, dict):
        raise MalformedRegistryError("expected an object", location)
    return {
        name: _entry_from_dict(value, f"{location}.{name}", name)
        for name, value in raw.items()
    }


def _entry_from_dict(data: Any, location: str, key: str) -> RegistryEntry:
    if not isinstance(data, dict):
        raise MalformedRegistryError("entry is not an object", location)

    missing = [f for f in REQUIRED_ENTRY_FIELDS if data.get(f) is None]
    if missing:
        raise MalformedRegistryError(f"missing field(s): {', '.join(missing)}", location)

    for f in REQUIRED_ENTRY_FIELDS:
        if not isinstance(data[f], str):
            raise MalformedRegistryError(f"field '{f}' must be a string", location)

    if data["componentName"] != key:
        raise MalformedRegistryError(
            f"key does not match componentName '{data['componentName']}'", location
        )

    tags = data.get("tags") or []
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise MalformedRegistryError("'tags' must be a list of strings", location)

    author = data.get("author") or None
    version = data.get("version") or None
    for name, value in (("author", author), ("version", version)):
        if value is not None and not isinstance(value, str):
            raise MalformedRegistryError(f"field '{name}' must be a string", location)

    return RegistryEntry(
        block_id=data["blockId"],
        component_name=data["componentName"],
        title=data["title"],
        description=data["description"],
        last_updated=data["lastUpdated"],
        author=author,
        version=version,
        tags=list(tags),
    )


def _parse_meta(data: Any) -> RegistryMeta:
    if not isinstance(data, dict):
        raise MalformedRegistryError("expected an object", "meta")
    try:
        return RegistryMeta(
            total_blocks=int(data.get("totalBlocks") or 0),
            total_components=int(data.get("totalComponents") or 0),
            total_authors=int(data.get("totalAuthors") or 0),
            last_updated=str(data.get("lastUpdated") or ""),
        )
    except (TypeError, ValueError) as e:
        raise MalformedRegistryError(f"invalid count: {e}", "meta") from e
