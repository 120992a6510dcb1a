"""Shared fixtures: an in-memory knowledge base service with failure injection."""

import logfire
import pytest

from memospace.exceptions import NotFoundError, PersistenceError
from memospace.models import Category, EntityKind, Link, Note, Position, Viewport
from memospace.store.coordinator import MutationCoordinator
from memospace.store.entity_store import EntityStore
from memospace.store.reducer import count_notes, has_prefix
from memospace.titles import resolve_title

logfire.configure(send_to_logfire=False, console=False)


class FakeService:
    """In-memory ``KnowledgeBaseService``.

    Methods named in ``failing`` raise ``PersistenceError``; every call is
    recorded in ``calls`` as ``(method, args)``.
    """

    def __init__(self):
        self.notes: list[Note] = []
        self.categories: list[Category] = []
        self.links: list[Link] = []
        self.positions: dict[str, Position] = {}
        self.viewport = Viewport()
        self.failing: set[str] = set()
        self.calls: list[tuple[str, tuple]] = []

    def _call(self, method: str, *args) -> None:
        self.calls.append((method, args))
        if method in self.failing:
            raise PersistenceError(EntityKind.NOTES, method, "backend unavailable")

    def calls_to(self, method: str) -> list[tuple]:
        return [args for name, args in self.calls if name == method]

    def _recount(self) -> None:
        self.categories = [
            c.model_copy(update={"note_count": count_notes(c, self.notes)})
            for c in self.categories
        ]

    def _ensure_path(self, path: list[str]) -> None:
        parent_id = None
        for depth in range(1, len(path) + 1):
            prefix = path[:depth]
            existing = next((c for c in self.categories if c.path == prefix), None)
            if existing is None:
                existing = Category(name=prefix[-1], path=prefix, parent_id=parent_id)
                self.categories.append(existing)
            parent_id = existing.id

    # Seeding helpers used directly by tests
    def add_note(self, content: str, category_path: list[str] | None = None, **fields) -> Note:
        path = category_path if category_path is not None else ["General"]
        self._ensure_path(path)
        note = Note(
            title=resolve_title(content, fields.pop("title", None)),
            content=content,
            category_path=path,
            **fields,
        )
        self.notes.append(note)
        self._recount()
        return note

    def add_link(self, source: Note, target: Note, link_type: str = "Related", **fields) -> Link:
        link = Link(source_id=source.id, target_id=target.id, link_type=link_type, **fields)
        self.links.append(link)
        return link

    # Notes
    async def list_notes(self) -> list[Note]:
        self._call("list_notes")
        return list(self.notes)

    async def save_note(self, content, category_path, title=None) -> Note:
        self._call("save_note", content, category_path, title)
        return self.add_note(content, list(category_path) or ["General"], title=title)

    async def update_note(self, note_id, content) -> Note:
        self._call("update_note", note_id, content)
        return self._update(note_id, content, None)

    async def update_note_with_title(self, note_id, content, title=None) -> Note:
        self._call("update_note_with_title", note_id, content, title)
        return self._update(note_id, content, title)

    def _update(self, note_id, content, title) -> Note:
        for index, note in enumerate(self.notes):
            if note.id == note_id:
                self.notes[index] = note.model_copy(
                    update={"content": content, "title": resolve_title(content, title)}
                )
                return self.notes[index]
        raise NotFoundError(EntityKind.NOTES, note_id)

    async def delete_note(self, note_id) -> None:
        self._call("delete_note", note_id)
        self.notes = [n for n in self.notes if n.id != note_id]
        self.positions.pop(note_id, None)
        self._recount()

    # Categories
    async def list_categories(self) -> list[Category]:
        self._call("list_categories")
        return list(self.categories)

    async def create_category(self, name, parent_path=None) -> Category:
        self._call("create_category", name, parent_path)
        parent = next((c for c in self.categories if c.path == (parent_path or [])), None)
        category = Category(
            name=name,
            path=[*(parent_path or []), name],
            parent_id=parent.id if parent else None,
        )
        self.categories.append(category)
        return category

    async def rename_category(self, category_id, new_name) -> None:
        self._call("rename_category", category_id, new_name)
        target = next(c for c in self.categories if c.id == category_id)
        old_path = target.path
        new_path = [*old_path[:-1], new_name]
        self.categories = [
            c.model_copy(
                update={
                    "path": new_path + c.path[len(old_path) :],
                    "name": new_name if c.id == category_id else c.name,
                }
            )
            if has_prefix(c.path, old_path)
            else c
            for c in self.categories
        ]
        self.notes = [
            n.model_copy(update={"category_path": new_path + n.category_path[len(old_path) :]})
            if has_prefix(n.category_path, old_path)
            else n
            for n in self.notes
        ]

    async def delete_category(self, category_id) -> None:
        self._call("delete_category", category_id)
        target = next(c for c in self.categories if c.id == category_id)
        removed = {n.id for n in self.notes if has_prefix(n.category_path, target.path)}
        self.notes = [n for n in self.notes if n.id not in removed]
        self.categories = [c for c in self.categories if not has_prefix(c.path, target.path)]
        for note_id in removed:
            self.positions.pop(note_id, None)
        self._recount()

    # Links
    async def list_links(self) -> list[Link]:
        self._call("list_links")
        return list(self.links)

    async def create_link(
        self, source_id, target_id, link_type, label=None, color=None, directional=None
    ) -> Link:
        self._call("create_link", source_id, target_id, link_type, label, color, directional)
        link = Link(
            source_id=source_id,
            target_id=target_id,
            link_type=link_type,
            label=label,
            color=color,
            directional=directional,
        )
        self.links.append(link)
        return link

    async def delete_link(self, link_id) -> None:
        self._call("delete_link", link_id)
        self.links = [link for link in self.links if link.id != link_id]

    # Positions and viewport
    async def list_positions(self) -> list[Position]:
        self._call("list_positions")
        return list(self.positions.values())

    async def save_position(self, note_id, x, y) -> None:
        self._call("save_position", note_id, x, y)
        previous = self.positions.get(note_id)
        self.positions[note_id] = Position(
            note_id=note_id, x=x, y=y, z_index=previous.z_index if previous else None
        )

    async def get_viewport(self) -> Viewport:
        self._call("get_viewport")
        return self.viewport

    async def save_viewport(self, x, y, zoom) -> None:
        self._call("save_viewport", x, y, zoom)
        self.viewport = Viewport(x=x, y=y, zoom=zoom)


@pytest.fixture
def service() -> FakeService:
    """Empty in-memory service."""
    return FakeService()


@pytest.fixture
def store() -> EntityStore:
    return EntityStore()


@pytest.fixture
def coordinator(store: EntityStore, service: FakeService) -> MutationCoordinator:
    """Coordinator over an empty store and the fake service."""
    return MutationCoordinator(store, service)


