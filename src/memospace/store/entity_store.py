"""Entity store owning notes, categories, links and positions."""

from collections.abc import Callable, Iterable, Sequence
from typing import Any

from ..models import Category, EntityKind, Link, Note, Position
from .actions import Action, Remove, Replace, SetAll, SetError, SetLoading, Upsert
from .reducer import has_prefix, reduce
from .state import KindStatus, StoreState

Listener = Callable[[StoreState], None]


class EntityStore:
    """Single owner of the four entity collections.

    Every change goes through ``dispatch``, which runs the pure reducer and
    swaps in the resulting state in one step, so a read that follows a
    mutation in the same task always sees all of it or none of it.
    """

    def __init__(self, state: StoreState | None = None):
        """Initialize the store.

        Args:
            state: Optional initial state (empty collections by default)
        """
        self._state = state if state is not None else StoreState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> StoreState:
        return self._state

    def dispatch(self, action: Action) -> StoreState:
        """Apply an action and notify subscribers if the state changed."""
        previous = self._state
        self._state = reduce(previous, action)
        if self._state is not previous:
            for listener in list(self._listeners):
                listener(self._state)
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called after each state change.

        Returns:
            A function that unsubscribes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ========================================================================
    # Transitions
    # ========================================================================

    def set_all(self, kind: EntityKind, items: Iterable[Any]) -> None:
        self.dispatch(SetAll(kind, tuple(items)))

    def upsert(self, kind: EntityKind, item: Any) -> None:
        self.dispatch(Upsert(kind, item))

    def replace(self, kind: EntityKind, old_id: str, item: Any) -> None:
        self.dispatch(Replace(kind, old_id, item))

    def remove(self, kind: EntityKind, entity_id: str) -> None:
        self.dispatch(Remove(kind, entity_id))

    def set_loading(self, kind: EntityKind, loading: bool) -> None:
        self.dispatch(SetLoading(kind, loading))

    def set_error(self, kind: EntityKind, error: str | None) -> None:
        self.dispatch(SetError(kind, error))

    def clear_error(self, kind: EntityKind) -> None:
        if self._state.status[kind].error is not None:
            self.dispatch(SetError(kind, None))

    # ========================================================================
    # Selectors
    # ========================================================================

    @property
    def notes(self) -> list[Note]:
        return list(self._state.notes.values())

    @property
    def categories(self) -> list[Category]:
        return list(self._state.categories.values())

    @property
    def links(self) -> list[Link]:
        return list(self._state.links.values())

    @property
    def positions(self) -> dict[str, Position]:
        return dict(self._state.positions)

    def snapshot(self) -> StoreState:
        """The current immutable state; later dispatches do not change it."""
        return self._state

    def status(self, kind: EntityKind) -> KindStatus:
        return self._state.status[kind]

    def note_by_id(self, note_id: str) -> Note | None:
        return self._state.notes.get(note_id)

    def category_by_id(self, category_id: str) -> Category | None:
        return self._state.categories.get(category_id)

    def category_by_path(self, path: Sequence[str]) -> Category | None:
        wanted = list(path)
        for category in self._state.categories.values():
            if category.path == wanted:
                return category
        return None

    def link_by_id(self, link_id: str) -> Link | None:
        return self._state.links.get(link_id)

    def notes_in_category(self, category_path: Sequence[str]) -> list[Note]:
        """Notes filed under a category path or any of its descendants."""
        return [
            note
            for note in self._state.notes.values()
            if has_prefix(note.category_path, category_path)
        ]

    def notes_matching(
        self,
        category_path: Sequence[str] | None = None,
        search_text: str | None = None,
    ) -> list[Note]:
        """Filter notes by category prefix and case-insensitive search text.

        Search text matches against title, content and tags.
        """
        notes = self.notes
        if category_path:
            notes = [n for n in notes if has_prefix(n.category_path, category_path)]

        if search_text:
            query = search_text.lower()
            notes = [
                n
                for n in notes
                if query in n.title.lower()
                or query in n.content.lower()
                or any(query in tag.lower() for tag in n.tags)
            ]

        return notes

    def links_touching(self, note_id: str) -> list[Link]:
        """All links with the note as source or target."""
        return [
            link
            for link in self._state.links.values()
            if link.source_id == note_id or link.target_id == note_id
        ]

    def position_of(self, note_id: str) -> Position | None:
        return self._state.positions.get(note_id)
