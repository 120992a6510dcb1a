"""Pure transition function for the entity store."""

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import replace
from typing import Any

from ..models import Category, EntityKind, Note
from .actions import (
    Action,
    Remove,
    RemoveCategoryTree,
    RenameCategory,
    Replace,
    SetAll,
    SetError,
    SetLoading,
    Upsert,
)
from .state import KindStatus, StoreState, entity_key


def has_prefix(path: Sequence[str], prefix: Sequence[str]) -> bool:
    """Check whether ``path`` starts with every element of ``prefix``."""
    return len(path) >= len(prefix) and list(path[: len(prefix)]) == list(prefix)


def _with_collection(
    state: StoreState, kind: EntityKind, items: Mapping[str, Any]
) -> StoreState:
    return replace(state, **{kind.value: items})


def _without_notes(state: StoreState, note_ids: set[str]) -> StoreState:
    """Drop notes along with every link and position that references them."""
    if not note_ids:
        return state
    return replace(
        state,
        notes={k: v for k, v in state.notes.items() if k not in note_ids},
        links={
            k: link
            for k, link in state.links.items()
            if link.source_id not in note_ids and link.target_id not in note_ids
        },
        positions={k: v for k, v in state.positions.items() if k not in note_ids},
    )


def _set_all(state: StoreState, action: SetAll) -> StoreState:
    items = {entity_key(action.kind, item): item for item in action.items}
    return _with_collection(state, action.kind, items)


def _upsert(state: StoreState, action: Upsert) -> StoreState:
    items = dict(state.collection(action.kind))
    items[entity_key(action.kind, action.item)] = action.item
    return _with_collection(state, action.kind, items)


def _replace(state: StoreState, action: Replace) -> StoreState:
    current = state.collection(action.kind)
    new_key = entity_key(action.kind, action.item)

    if action.old_id not in current:
        # The provisional entity is gone (e.g. a reload ran in between)
        items = dict(current)
        items[new_key] = action.item
        return _with_collection(state, action.kind, items)

    items = {}
    for key, value in current.items():
        if key == action.old_id:
            items[new_key] = action.item
        elif key != new_key:
            items[key] = value
    return _with_collection(state, action.kind, items)


def _remove(state: StoreState, action: Remove) -> StoreState:
    if action.kind is EntityKind.NOTES:
        return _without_notes(state, {action.entity_id})

    current = state.collection(action.kind)
    if action.entity_id not in current:
        return state
    items = {k: v for k, v in current.items() if k != action.entity_id}
    return _with_collection(state, action.kind, items)


def _rename_category(state: StoreState, action: RenameCategory) -> StoreState:
    target = state.categories.get(action.category_id)
    if target is None:
        return state

    old_path = list(target.path)
    new_path = old_path[:-1] + [action.new_name]

    def rebase(path: list[str]) -> list[str]:
        return new_path + list(path[len(old_path) :])

    categories = {}
    for key, category in state.categories.items():
        if key == action.category_id:
            categories[key] = category.model_copy(
                update={"name": action.new_name, "path": new_path}
            )
        elif has_prefix(category.path, old_path):
            categories[key] = category.model_copy(update={"path": rebase(category.path)})
        else:
            categories[key] = category

    notes = {
        key: (
            note.model_copy(update={"category_path": rebase(note.category_path)})
            if has_prefix(note.category_path, old_path)
            else note
        )
        for key, note in state.notes.items()
    }

    return replace(state, categories=categories, notes=notes)


def _remove_category_tree(state: StoreState, action: RemoveCategoryTree) -> StoreState:
    target = state.categories.get(action.category_id)
    if target is None:
        return state

    doomed_notes = {
        key for key, note in state.notes.items() if has_prefix(note.category_path, target.path)
    }
    state = replace(
        state,
        categories={
            key: category
            for key, category in state.categories.items()
            if not has_prefix(category.path, target.path)
        },
    )
    return _without_notes(state, doomed_notes)


def _set_loading(state: StoreState, action: SetLoading) -> StoreState:
    status = dict(state.status)
    status[action.kind] = replace(status.get(action.kind, KindStatus()), loading=action.loading)
    return replace(state, status=status)


def _set_error(state: StoreState, action: SetError) -> StoreState:
    status = dict(state.status)
    status[action.kind] = replace(status.get(action.kind, KindStatus()), error=action.error)
    return replace(state, status=status)


def count_notes(category: Category, notes: Iterable[Note]) -> int:
    """Number of notes filed under a category or any of its descendants."""
    return sum(1 for note in notes if has_prefix(note.category_path, category.path))


def _recount(state: StoreState) -> StoreState:
    """Recompute the derived note_count of every category."""
    changed = False
    categories = {}
    for key, category in state.categories.items():
        count = count_notes(category, state.notes.values())
        if count != category.note_count:
            category = category.model_copy(update={"note_count": count})
            changed = True
        categories[key] = category
    if not changed:
        return state
    return replace(state, categories=categories)


_HANDLERS: dict[type, Callable[[StoreState, Any], StoreState]] = {
    SetAll: _set_all,
    Upsert: _upsert,
    Replace: _replace,
    Remove: _remove,
    RenameCategory: _rename_category,
    RemoveCategoryTree: _remove_category_tree,
    SetLoading: _set_loading,
    SetError: _set_error,
}

_COUNTED_KINDS = (EntityKind.NOTES, EntityKind.CATEGORIES)


def _affects_note_counts(action: Action) -> bool:
    if isinstance(action, RenameCategory | RemoveCategoryTree):
        return True
    kind = getattr(action, "kind", None)
    return kind in _COUNTED_KINDS and not isinstance(action, SetLoading | SetError)


def reduce(state: StoreState, action: Action) -> StoreState:
    """Apply one action to a state and return the resulting state."""
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unknown store action: {action!r}")

    new_state = handler(state, action)
    if new_state is not state and _affects_note_counts(action):
        new_state = _recount(new_state)
    return new_state
