"""Service boundary the store persists through."""

from typing import Protocol, runtime_checkable

from ..models import Category, Link, LinkColor, Note, Position, Viewport


@runtime_checkable
class KnowledgeBaseService(Protocol):
    """Asynchronous persistence operations for the knowledge base.

    Any call may fail; implementations raise ``PersistenceError`` for storage
    failures and ``NotFoundError`` for unknown ids.
    """

    # Notes
    async def list_notes(self) -> list[Note]: ...

    async def save_note(
        self, content: str, category_path: list[str], title: str | None = None
    ) -> Note: ...

    async def update_note(self, note_id: str, content: str) -> Note: ...

    async def update_note_with_title(
        self, note_id: str, content: str, title: str | None = None
    ) -> Note: ...

    async def delete_note(self, note_id: str) -> None: ...

    # Categories
    async def list_categories(self) -> list[Category]: ...

    async def create_category(
        self, name: str, parent_path: list[str] | None = None
    ) -> Category: ...

    async def rename_category(self, category_id: str, new_name: str) -> None: ...

    async def delete_category(self, category_id: str) -> None: ...

    # Links
    async def list_links(self) -> list[Link]: ...

    async def create_link(
        self,
        source_id: str,
        target_id: str,
        link_type: str,
        label: str | None = None,
        color: LinkColor | None = None,
        directional: bool | None = None,
    ) -> Link: ...

    async def delete_link(self, link_id: str) -> None: ...

    # Positions and viewport
    async def list_positions(self) -> list[Position]: ...

    async def save_position(self, note_id: str, x: float, y: float) -> None: ...

    async def get_viewport(self) -> Viewport: ...

    async def save_viewport(self, x: float, y: float, zoom: float) -> None: ...
