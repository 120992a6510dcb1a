"""Action types consumed by the store reducer."""

from dataclasses import dataclass
from typing import Any

from ..models import EntityKind


@dataclass(frozen=True)
class SetAll:
    """Replace a whole collection, e.g. after a reload."""

    kind: EntityKind
    items: tuple[Any, ...]


@dataclass(frozen=True)
class Upsert:
    """Insert an entity, or replace the one with the same id in place."""

    kind: EntityKind
    item: Any


@dataclass(frozen=True)
class Replace:
    """Swap the entity stored under ``old_id`` for ``item``, keeping its slot.

    Used to exchange a provisional entity for the one the service returned.
    """

    kind: EntityKind
    old_id: str
    item: Any


@dataclass(frozen=True)
class Remove:
    """Remove one entity. Removing a note also removes its links and position."""

    kind: EntityKind
    entity_id: str


@dataclass(frozen=True)
class RenameCategory:
    """Rename a category, rewriting descendant category paths and note paths."""

    category_id: str
    new_name: str


@dataclass(frozen=True)
class RemoveCategoryTree:
    """Remove a category, its descendants and every note filed under them."""

    category_id: str


@dataclass(frozen=True)
class SetLoading:
    kind: EntityKind
    loading: bool


@dataclass(frozen=True)
class SetError:
    kind: EntityKind
    error: str | None


Action = (
    SetAll
    | Upsert
    | Replace
    | Remove
    | RenameCategory
    | RemoveCategoryTree
    | SetLoading
    | SetError
)
