"""File-backed knowledge base: one JSON document per collection."""

import asyncio
import json
from pathlib import Path
from typing import Any

import logfire
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..config import DEFAULT_CATEGORY
from ..exceptions import NotFoundError, PersistenceError, ValidationError
from ..models import Category, EntityKind, Link, LinkColor, Note, Position, Viewport
from ..store.reducer import count_notes, has_prefix
from ..titles import resolve_title

NOTES_FILE = "notes.json"
CATEGORIES_FILE = "categories.json"
LINKS_FILE = "note_links.json"
POSITIONS_FILE = "positions.json"
UI_STATE_FILE = "ui_state.json"

_DOCUMENTS = {
    EntityKind.NOTES: (NOTES_FILE, "notes", Note),
    EntityKind.CATEGORIES: (CATEGORIES_FILE, "categories", Category),
    EntityKind.LINKS: (LINKS_FILE, "links", Link),
    EntityKind.POSITIONS: (POSITIONS_FILE, "positions", Position),
}


class JsonKnowledgeBase:
    """Implements ``KnowledgeBaseService`` over JSON files in a data directory.

    Missing files read as empty collections. Writes go to a temp file that is
    then renamed over the original. Calls are serialized with a lock so a
    read-modify-write never interleaves with another.
    """

    def __init__(self, data_dir: Path):
        """Initialize the store.

        Args:
            data_dir: Directory holding the JSON documents
        """
        self.data_dir = Path(data_dir)
        self._lock = asyncio.Lock()

    # ========================================================================
    # File helpers
    # ========================================================================

    def init(self) -> list[Path]:
        """Create the data directory and any missing documents.

        Returns:
            Paths of the documents that were created
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)
        created = []
        for kind, (filename, _, _) in _DOCUMENTS.items():
            path = self.data_dir / filename
            if not path.exists():
                self._write(kind, [])
                created.append(path)

        ui_state = self.data_dir / UI_STATE_FILE
        if not ui_state.exists():
            self._write_viewport(Viewport())
            created.append(ui_state)

        logfire.info("Initialized data directory", path=str(self.data_dir), created=len(created))
        return created

    def _read_json(self, kind: EntityKind, filename: str) -> dict[str, Any] | None:
        path = self.data_dir / filename
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(kind, f"read {filename}", str(e)) from e

    def _write_json(self, kind: EntityKind, filename: str, data: dict[str, Any]) -> None:
        path = self.data_dir / filename
        temp_path = path.with_suffix(".tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            temp_path.replace(path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise PersistenceError(kind, f"write {filename}", str(e)) from e

    def _read(self, kind: EntityKind) -> list[Any]:
        filename, key, model = _DOCUMENTS[kind]
        data = self._read_json(kind, filename)
        if data is None:
            return []
        try:
            return [model.model_validate(item) for item in data.get(key, [])]
        except PydanticValidationError as e:
            raise PersistenceError(kind, f"parse {filename}", str(e)) from e

    def _write(self, kind: EntityKind, items: list[BaseModel]) -> None:
        filename, key, _ = _DOCUMENTS[kind]
        self._write_json(kind, filename, {key: [item.model_dump(mode="json") for item in items]})

    def _write_viewport(self, viewport: Viewport) -> None:
        data = {"ui_state": {"graph_viewport": viewport.model_dump(mode="json")}}
        self._write_json(EntityKind.POSITIONS, UI_STATE_FILE, data)

    def _recount(self, categories: list[Category], notes: list[Note]) -> list[Category]:
        return [
            category.model_copy(update={"note_count": count_notes(category, notes)})
            for category in categories
        ]

    def _save_counts(self, notes: list[Note]) -> None:
        categories = self._read(EntityKind.CATEGORIES)
        self._write(EntityKind.CATEGORIES, self._recount(categories, notes))

    def _prune(self, removed_note_ids: set[str]) -> None:
        """Drop links and positions that reference removed notes."""
        if not removed_note_ids:
            return
        links = self._read(EntityKind.LINKS)
        kept_links = [
            link
            for link in links
            if link.source_id not in removed_note_ids and link.target_id not in removed_note_ids
        ]
        if len(kept_links) != len(links):
            self._write(EntityKind.LINKS, kept_links)

        positions = self._read(EntityKind.POSITIONS)
        kept_positions = [p for p in positions if p.note_id not in removed_note_ids]
        if len(kept_positions) != len(positions):
            self._write(EntityKind.POSITIONS, kept_positions)

    @staticmethod
    def _find(items: list[Any], kind: EntityKind, entity_id: str) -> int:
        for index, item in enumerate(items):
            if item.id == entity_id:
                return index
        raise NotFoundError(kind, entity_id)

    # ========================================================================
    # Notes
    # ========================================================================

    async def list_notes(self) -> list[Note]:
        async with self._lock:
            return self._read(EntityKind.NOTES)

    async def save_note(
        self, content: str, category_path: list[str], title: str | None = None
    ) -> Note:
        """Save a new note, creating any missing categories along its path.

        An empty path files the note under the default category.
        """
        async with self._lock:
            path = list(category_path) or [DEFAULT_CATEGORY]
            categories = self._read(EntityKind.CATEGORIES)
            self._ensure_path(categories, path)

            notes = self._read(EntityKind.NOTES)
            note = Note(title=resolve_title(content, title), content=content, category_path=path)
            notes.append(note)
            self._write(EntityKind.NOTES, notes)
            self._write(EntityKind.CATEGORIES, self._recount(categories, notes))

            logfire.info("Stored note", note_id=note.id, title=note.title)
            return note

    async def update_note(self, note_id: str, content: str) -> Note:
        """Replace a note's content and regenerate its title."""
        return await self.update_note_with_title(note_id, content, None)

    async def update_note_with_title(
        self, note_id: str, content: str, title: str | None = None
    ) -> Note:
        async with self._lock:
            notes = self._read(EntityKind.NOTES)
            index = self._find(notes, EntityKind.NOTES, note_id)
            notes[index] = notes[index].model_copy(
                update={"content": content, "title": resolve_title(content, title)}
            )
            self._write(EntityKind.NOTES, notes)
            return notes[index]

    async def delete_note(self, note_id: str) -> None:
        async with self._lock:
            notes = self._read(EntityKind.NOTES)
            del notes[self._find(notes, EntityKind.NOTES, note_id)]
            self._write(EntityKind.NOTES, notes)
            self._prune({note_id})
            self._save_counts(notes)

    # ========================================================================
    # Categories
    # ========================================================================

    def _ensure_path(self, categories: list[Category], path: list[str]) -> None:
        """Append a category for every missing level of ``path``."""
        parent_id = None
        for depth in range(1, len(path) + 1):
            prefix = path[:depth]
            existing = next((c for c in categories if c.path == prefix), None)
            if existing is None:
                existing = Category(name=prefix[-1], path=prefix, parent_id=parent_id)
                categories.append(existing)
                logfire.info("Created category", path=existing.full_path)
            parent_id = existing.id

    async def list_categories(self) -> list[Category]:
        async with self._lock:
            return self._read(EntityKind.CATEGORIES)

    async def create_category(self, name: str, parent_path: list[str] | None = None) -> Category:
        async with self._lock:
            categories = self._read(EntityKind.CATEGORIES)
            parent = None
            if parent_path:
                parent = next((c for c in categories if c.path == list(parent_path)), None)
                if parent is None:
                    raise NotFoundError(EntityKind.CATEGORIES, " / ".join(parent_path))

            path = [*(parent.path if parent else []), name]
            if any(c.path == path for c in categories):
                raise ValidationError(
                    EntityKind.CATEGORIES, f"Category {' / '.join(path)} already exists", "name"
                )

            category = Category(name=name, path=path, parent_id=parent.id if parent else None)
            categories.append(category)
            self._write(EntityKind.CATEGORIES, categories)
            return category

    async def rename_category(self, category_id: str, new_name: str) -> None:
        """Rename a category and rebase descendant categories and notes."""
        async with self._lock:
            categories = self._read(EntityKind.CATEGORIES)
            index = self._find(categories, EntityKind.CATEGORIES, category_id)
            old_path = categories[index].path
            new_path = [*old_path[:-1], new_name]

            def rebase(path: list[str]) -> list[str]:
                return new_path + path[len(old_path) :]

            categories = [
                c.model_copy(update={"path": rebase(c.path)}) if has_prefix(c.path, old_path) else c
                for c in categories
            ]
            categories[index] = categories[index].model_copy(update={"name": new_name})

            notes = [
                n.model_copy(update={"category_path": rebase(n.category_path)})
                if has_prefix(n.category_path, old_path)
                else n
                for n in self._read(EntityKind.NOTES)
            ]
            self._write(EntityKind.CATEGORIES, categories)
            self._write(EntityKind.NOTES, notes)

    async def delete_category(self, category_id: str) -> None:
        """Delete a category, its subcategories and every note filed under them."""
        async with self._lock:
            categories = self._read(EntityKind.CATEGORIES)
            target = categories[self._find(categories, EntityKind.CATEGORIES, category_id)]

            notes = self._read(EntityKind.NOTES)
            removed = {n.id for n in notes if has_prefix(n.category_path, target.path)}
            notes = [n for n in notes if n.id not in removed]
            categories = [c for c in categories if not has_prefix(c.path, target.path)]

            self._write(EntityKind.NOTES, notes)
            self._write(EntityKind.CATEGORIES, self._recount(categories, notes))
            self._prune(removed)
            logfire.info("Deleted category tree", path=target.full_path, notes_deleted=len(removed))

    # ========================================================================
    # Links
    # ========================================================================

    async def list_links(self) -> list[Link]:
        async with self._lock:
            return self._read(EntityKind.LINKS)

    async def create_link(
        self,
        source_id: str,
        target_id: str,
        link_type: str,
        label: str | None = None,
        color: LinkColor | None = None,
        directional: bool | None = None,
    ) -> Link:
        """Create a link. A second link of the same type between the same two notes is rejected."""
        async with self._lock:
            note_ids = {n.id for n in self._read(EntityKind.NOTES)}
            for note_id in (source_id, target_id):
                if note_id not in note_ids:
                    raise NotFoundError(EntityKind.NOTES, note_id)

            links = self._read(EntityKind.LINKS)
            pair = {source_id, target_id}
            if any(
                {other.source_id, other.target_id} == pair and other.link_type == link_type
                for other in links
            ):
                raise ValidationError(
                    EntityKind.LINKS,
                    "Link of this type already exists between these notes",
                    "link_type",
                )

            link = Link(
                source_id=source_id,
                target_id=target_id,
                link_type=link_type,
                label=label,
                color=color,
                directional=directional,
            )
            links.append(link)
            self._write(EntityKind.LINKS, links)
            return link

    async def delete_link(self, link_id: str) -> None:
        async with self._lock:
            links = self._read(EntityKind.LINKS)
            del links[self._find(links, EntityKind.LINKS, link_id)]
            self._write(EntityKind.LINKS, links)

    # ========================================================================
    # Positions and viewport
    # ========================================================================

    async def list_positions(self) -> list[Position]:
        async with self._lock:
            return self._read(EntityKind.POSITIONS)

    async def save_position(self, note_id: str, x: float, y: float) -> None:
        async with self._lock:
            if not any(n.id == note_id for n in self._read(EntityKind.NOTES)):
                raise NotFoundError(EntityKind.NOTES, note_id)

            positions = self._read(EntityKind.POSITIONS)
            previous = next((p for p in positions if p.note_id == note_id), None)
            positions = [p for p in positions if p.note_id != note_id]
            positions.append(
                Position(
                    note_id=note_id, x=x, y=y, z_index=previous.z_index if previous else None
                )
            )
            self._write(EntityKind.POSITIONS, positions)

    async def get_viewport(self) -> Viewport:
        async with self._lock:
            data = self._read_json(EntityKind.POSITIONS, UI_STATE_FILE)
            if data is None:
                return Viewport()
            try:
                return Viewport.model_validate(data["ui_state"]["graph_viewport"])
            except (KeyError, TypeError, PydanticValidationError) as e:
                raise PersistenceError(EntityKind.POSITIONS, f"parse {UI_STATE_FILE}", str(e)) from e

    async def save_viewport(self, x: float, y: float, zoom: float) -> None:
        async with self._lock:
            self._write_viewport(Viewport(x=x, y=y, zoom=zoom))


