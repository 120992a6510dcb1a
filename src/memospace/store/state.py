"""Immutable store state."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..models import Category, EntityKind, Link, Note, Position


@dataclass(frozen=True)
class KindStatus:
    """Loading flag and last error for one entity kind."""

    loading: bool = False
    error: str | None = None


def _initial_status() -> dict[EntityKind, KindStatus]:
    return {kind: KindStatus() for kind in EntityKind}


@dataclass(frozen=True)
class StoreState:
    """Snapshot of all four collections.

    Collections are insertion-ordered dicts keyed by entity id (note id for
    positions). The reducer never mutates a dict it received; a collection that
    did not change keeps its identity across transitions.
    """

    notes: Mapping[str, Note] = field(default_factory=dict)
    categories: Mapping[str, Category] = field(default_factory=dict)
    links: Mapping[str, Link] = field(default_factory=dict)
    positions: Mapping[str, Position] = field(default_factory=dict)
    status: Mapping[EntityKind, KindStatus] = field(default_factory=_initial_status)

    def collection(self, kind: EntityKind) -> Mapping[str, Any]:
        """Get the collection for an entity kind."""
        return getattr(self, kind.value)


def entity_key(kind: EntityKind, item: Any) -> str:
    """Key an entity is stored under in its collection."""
    if kind is EntityKind.POSITIONS:
        return item.note_id
    return item.id
