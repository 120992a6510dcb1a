"""Mutation coordinator: optimistic store updates backed by the persistence service."""

import asyncio
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

import logfire

from ..exceptions import (
    NotFoundError,
    PersistenceError,
    ReferentialIntegrityViolation,
    StoreError,
    ValidationError,
)
from ..models import Category, EntityKind, Link, LinkColor, Note, Position, parse_link_color
from ..persistence.base import KnowledgeBaseService
from ..titles import resolve_title
from .actions import RemoveCategoryTree, RenameCategory
from .entity_store import EntityStore

T = TypeVar("T")


class MutationStatus(str, Enum):
    """Where a mutation is in its local-apply / remote-confirm protocol."""

    APPLIED = "applied"  # local state changed, persistence pending
    CONFIRMED = "confirmed"  # persistence succeeded
    FAILED = "failed"  # persistence failed, local change kept, error recorded
    RECONCILED = "reconciled"  # persistence failed, state reloaded from the service


@dataclass(eq=False)
class MutationResult(Generic[T]):
    """Outcome of one coordinator command."""

    operation: str
    kind: EntityKind
    value: T | None = None
    status: MutationStatus = MutationStatus.APPLIED
    error: StoreError | None = None

    @property
    def confirmed(self) -> bool:
        return self.status is MutationStatus.CONFIRMED


class MutationCoordinator:
    """Runs every store mutation as local apply, then remote persist.

    Validation, not-found and referential errors are raised before the store
    is touched. Persistence failures are recorded in the kind's error slot and
    re-raised; the optimistic change is kept, except for positions, where the
    whole store is reloaded from the service instead.
    """

    def __init__(self, store: EntityStore, service: KnowledgeBaseService):
        """Initialize the coordinator.

        Args:
            store: The entity store to mutate
            service: Persistence service to confirm mutations with
        """
        self.store = store
        self.service = service
        self._pending: set[MutationResult] = set()

    def pending(self) -> list[MutationResult]:
        """Mutations applied locally and still awaiting the service."""
        return list(self._pending)

    # ========================================================================
    # Protocol helpers
    # ========================================================================

    def _reject(self, error: StoreError) -> StoreError:
        """Record a pre-mutation rejection; the caller raises it."""
        self.store.set_error(error.kind, str(error))
        logfire.warn("Mutation rejected", kind=error.kind.value, error=str(error))
        return error

    async def _remote(self, result: MutationResult, call: Awaitable[T]) -> T:
        """Await a service call, recording any failure against the result."""
        self._pending.add(result)
        try:
            return await call
        except Exception as exc:
            if isinstance(exc, PersistenceError):
                error = exc
            else:
                error = PersistenceError(result.kind, result.operation, str(exc))
            result.status = MutationStatus.FAILED
            result.error = error
            error.result = result
            self.store.set_error(result.kind, str(error))
            logfire.error(
                "Persistence call failed",
                operation=result.operation,
                kind=result.kind.value,
                error=str(exc),
            )
            if error is exc:
                raise
            raise error from exc
        finally:
            self._pending.discard(result)

    def _confirm(
        self, result: MutationResult[T], value: T | None, clear_error: bool = True
    ) -> MutationResult[T]:
        """Mark a result confirmed.

        ``clear_error=False`` keeps an error recorded for the kind earlier in
        the same command, such as a failed follow-up reload.
        """
        result.value = value
        result.status = MutationStatus.CONFIRMED
        result.error = None
        if clear_error:
            self.store.clear_error(result.kind)
        return result

    def _require_note(self, note_id: str) -> Note:
        note = self.store.note_by_id(note_id)
        if note is None:
            raise self._reject(NotFoundError(EntityKind.NOTES, note_id))
        return note

    def _require_category(self, category_id: str) -> Category:
        category = self.store.category_by_id(category_id)
        if category is None:
            raise self._reject(NotFoundError(EntityKind.CATEGORIES, category_id))
        return category

    def _require_content(self, content: str) -> None:
        if not content.strip():
            raise self._reject(
                ValidationError(EntityKind.NOTES, "Note content must not be empty", "content")
            )

    def _require_link_type(self, link_type: str) -> None:
        if not link_type.strip():
            raise self._reject(
                ValidationError(EntityKind.LINKS, "Link type must not be empty", "link_type")
            )

    async def _refresh_categories(self) -> bool:
        """Re-fetch categories after a change to derived counts or new paths.

        Returns:
            False if the reload failed and the error slot was set
        """
        try:
            categories = await self.service.list_categories()
        except Exception as e:
            self.store.set_error(EntityKind.CATEGORIES, f"Failed to reload categories: {e}")
            logfire.warn("Category reload failed", error=str(e))
            return False
        self.store.set_all(EntityKind.CATEGORIES, categories)
        return True

    async def _delete_links_remotely(self, links: Sequence[Link]) -> None:
        """Remove links that cascaded with their notes from the service."""
        for link in links:
            try:
                await self.service.delete_link(link.id)
            except NotFoundError:
                continue  # the service already removed it with its note
            except Exception as e:
                self.store.set_error(EntityKind.LINKS, f"Failed to delete link {link.id}: {e}")
                logfire.warn("Cascaded link delete failed", link_id=link.id, error=str(e))

    # ========================================================================
    # Reconciliation
    # ========================================================================

    @logfire.instrument("load_all")
    async def load_all(self) -> None:
        """Replace every collection with a fresh read from the service.

        Each kind succeeds or fails independently; a failed kind keeps its
        previous contents and records the error.
        """
        fetches = {
            EntityKind.NOTES: self.service.list_notes,
            EntityKind.CATEGORIES: self.service.list_categories,
            EntityKind.LINKS: self.service.list_links,
            EntityKind.POSITIONS: self.service.list_positions,
        }
        for kind in fetches:
            self.store.set_loading(kind, True)

        outcomes = await asyncio.gather(
            *(fetch() for fetch in fetches.values()), return_exceptions=True
        )

        for kind, outcome in zip(fetches, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                self.store.set_error(kind, str(outcome))
                logfire.error("Failed to load data", kind=kind.value, error=str(outcome))
            else:
                self.store.set_all(kind, outcome)
                self.store.clear_error(kind)
            self.store.set_loading(kind, False)

        logfire.info(
            "Loaded knowledge base",
            notes=len(self.store.state.notes),
            categories=len(self.store.state.categories),
            links=len(self.store.state.links),
            positions=len(self.store.state.positions),
        )

    # ========================================================================
    # Notes
    # ========================================================================

    async def save_note(
        self,
        content: str,
        category_path: Sequence[str] | None = None,
        title: str | None = None,
    ) -> MutationResult[Note]:
        """Create a note. Categories are re-fetched since saving can create them."""
        self._require_content(content)
        path = list(category_path or [])

        provisional = Note(
            title=resolve_title(content, title), content=content, category_path=path
        )
        self.store.upsert(EntityKind.NOTES, provisional)
        result = MutationResult("save_note", EntityKind.NOTES, provisional)

        note = await self._remote(result, self.service.save_note(content, path, title))
        self.store.replace(EntityKind.NOTES, provisional.id, note)
        await self._refresh_categories()

        logfire.info("Saved note", note_id=note.id, category=" / ".join(note.category_path))
        return self._confirm(result, note)

    async def update_note(self, note_id: str, content: str) -> MutationResult[Note]:
        """Replace a note's content."""
        existing = self._require_note(note_id)
        self._require_content(content)

        self.store.upsert(EntityKind.NOTES, existing.model_copy(update={"content": content}))
        result = MutationResult("update_note", EntityKind.NOTES, existing)

        note = await self._remote(result, self.service.update_note(note_id, content))
        self.store.upsert(EntityKind.NOTES, note)
        return self._confirm(result, note)

    async def update_note_with_title(
        self, note_id: str, content: str, title: str | None = None
    ) -> MutationResult[Note]:
        """Replace a note's content and, when given, its title."""
        existing = self._require_note(note_id)
        self._require_content(content)

        changes: dict = {"content": content}
        if title is not None and title.strip():
            changes["title"] = title.strip()
        self.store.upsert(EntityKind.NOTES, existing.model_copy(update=changes))
        result = MutationResult("update_note_with_title", EntityKind.NOTES, existing)

        note = await self._remote(
            result, self.service.update_note_with_title(note_id, content, title)
        )
        self.store.upsert(EntityKind.NOTES, note)
        return self._confirm(result, note)

    async def delete_note(self, note_id: str) -> MutationResult[Note]:
        """Delete a note together with its links and position."""
        note = self._require_note(note_id)
        cascaded = self.store.links_touching(note_id)

        self.store.remove(EntityKind.NOTES, note_id)
        result = MutationResult("delete_note", EntityKind.NOTES, note)

        await self._remote(result, self.service.delete_note(note_id))
        await self._delete_links_remotely(cascaded)
        await self._refresh_categories()

        logfire.info("Deleted note", note_id=note_id, links_deleted=len(cascaded))
        return self._confirm(result, note)

    # ========================================================================
    # Categories
    # ========================================================================

    async def create_category(
        self, name: str, parent_path: Sequence[str] | None = None
    ) -> MutationResult[Category]:
        """Create a category under an existing parent (or at the root)."""
        name = name.strip()
        if not name:
            raise self._reject(
                ValidationError(EntityKind.CATEGORIES, "Category name must not be empty", "name")
            )

        parent = None
        if parent_path:
            parent = self.store.category_by_path(parent_path)
            if parent is None:
                raise self._reject(NotFoundError(EntityKind.CATEGORIES, " / ".join(parent_path)))

        path = [*(parent.path if parent else []), name]
        if self.store.category_by_path(path) is not None:
            raise self._reject(
                ValidationError(
                    EntityKind.CATEGORIES, f"Category {' / '.join(path)} already exists", "name"
                )
            )

        provisional = Category(name=name, path=path, parent_id=parent.id if parent else None)
        self.store.upsert(EntityKind.CATEGORIES, provisional)
        result = MutationResult("create_category", EntityKind.CATEGORIES, provisional)

        category = await self._remote(
            result, self.service.create_category(name, list(parent_path) if parent_path else None)
        )
        self.store.replace(EntityKind.CATEGORIES, provisional.id, category)
        return self._confirm(result, category)

    async def rename_category(self, category_id: str, new_name: str) -> MutationResult[Category]:
        """Rename a category.

        Descendant category paths and the category paths of notes filed under
        it are rewritten to the new name.
        """
        self._require_category(category_id)
        new_name = new_name.strip()
        if not new_name:
            raise self._reject(
                ValidationError(EntityKind.CATEGORIES, "Category name must not be empty", "name")
            )

        self.store.dispatch(RenameCategory(category_id, new_name))
        result = MutationResult(
            "rename_category", EntityKind.CATEGORIES, self.store.category_by_id(category_id)
        )

        await self._remote(result, self.service.rename_category(category_id, new_name))
        reloaded = await self._refresh_categories()
        return self._confirm(result, self.store.category_by_id(category_id), clear_error=reloaded)

    async def delete_category(self, category_id: str) -> MutationResult[Category]:
        """Delete a category and cascade to its subcategories and their notes."""
        category = self._require_category(category_id)
        doomed = {note.id for note in self.store.notes_in_category(category.path)}
        cascaded = [
            link
            for link in self.store.links
            if link.source_id in doomed or link.target_id in doomed
        ]

        self.store.dispatch(RemoveCategoryTree(category_id))
        result = MutationResult("delete_category", EntityKind.CATEGORIES, category)

        await self._remote(result, self.service.delete_category(category_id))
        await self._delete_links_remotely(cascaded)

        categories, notes = await asyncio.gather(
            self.service.list_categories(), self.service.list_notes(), return_exceptions=True
        )
        reloaded = True
        for kind, outcome in ((EntityKind.CATEGORIES, categories), (EntityKind.NOTES, notes)):
            if isinstance(outcome, BaseException):
                self.store.set_error(kind, str(outcome))
                logfire.warn("Reload after category delete failed", kind=kind.value)
                if kind is EntityKind.CATEGORIES:
                    reloaded = False
            else:
                self.store.set_all(kind, outcome)

        logfire.info(
            "Deleted category",
            category=category.full_path,
            notes_deleted=len(doomed),
            links_deleted=len(cascaded),
        )
        return self._confirm(result, category, clear_error=reloaded)

    # ========================================================================
    # Links
    # ========================================================================

    def _validate_link(self, source_id: str, target_id: str, link_type: str) -> None:
        if source_id == target_id:
            raise self._reject(
                ValidationError(EntityKind.LINKS, "A note cannot link to itself", "target_id")
            )
        if self.store.note_by_id(source_id) is None:
            raise self._reject(ReferentialIntegrityViolation(source_id, "source"))
        if self.store.note_by_id(target_id) is None:
            raise self._reject(ReferentialIntegrityViolation(target_id, "target"))
        self._require_link_type(link_type)

    async def create_link(
        self,
        source_id: str,
        target_id: str,
        link_type: str,
        label: str | None = None,
        color: str | LinkColor | None = None,
        directional: bool | None = None,
    ) -> MutationResult[Link]:
        """Create a link between two existing notes."""
        self._validate_link(source_id, target_id, link_type)
        parsed_color = parse_link_color(color)
        if color is not None and parsed_color is None:
            logfire.warn("Ignoring unknown link color", color=str(color))

        provisional = Link(
            source_id=source_id,
            target_id=target_id,
            link_type=link_type,
            label=label,
            color=parsed_color,
            directional=directional,
        )
        self.store.upsert(EntityKind.LINKS, provisional)
        result = MutationResult("create_link", EntityKind.LINKS, provisional)

        link = await self._remote(
            result,
            self.service.create_link(
                source_id, target_id, link_type, label, parsed_color, directional
            ),
        )
        self.store.replace(EntityKind.LINKS, provisional.id, link)
        return self._confirm(result, link)

    async def update_link(
        self,
        link_id: str,
        link_type: str,
        label: str | None = None,
        color: str | LinkColor | None = None,
        directional: bool | None = None,
    ) -> MutationResult[Link]:
        """Change a link by deleting it and creating a replacement.

        The returned link has a new id. The store drops the old link once the
        service confirms the delete and adds the new one once the create is
        confirmed, so a reader in between sees neither.
        """
        old = self.store.link_by_id(link_id)
        if old is None:
            raise self._reject(NotFoundError(EntityKind.LINKS, link_id))
        self._require_link_type(link_type)
        parsed_color = parse_link_color(color)

        result = MutationResult("update_link", EntityKind.LINKS, old)
        await self._remote(result, self.service.delete_link(link_id))
        self.store.remove(EntityKind.LINKS, link_id)

        link = await self._remote(
            result,
            self.service.create_link(
                old.source_id, old.target_id, link_type, label, parsed_color, directional
            ),
        )
        self.store.upsert(EntityKind.LINKS, link)
        return self._confirm(result, link)

    async def delete_link(self, link_id: str) -> MutationResult[Link]:
        """Delete a link."""
        link = self.store.link_by_id(link_id)
        if link is None:
            raise self._reject(NotFoundError(EntityKind.LINKS, link_id))

        self.store.remove(EntityKind.LINKS, link_id)
        result = MutationResult("delete_link", EntityKind.LINKS, link)

        await self._remote(result, self.service.delete_link(link_id))
        return self._confirm(result, link)

    # ========================================================================
    # Positions
    # ========================================================================

    async def update_position(self, note_id: str, x: float, y: float) -> MutationResult[Position]:
        """Move a note on the canvas.

        On failure the whole store is reloaded, since a drifted position is
        otherwise hard to notice. A stored ``z_index`` is kept.
        """
        self._require_note(note_id)

        existing = self.store.position_of(note_id)
        position = Position(
            note_id=note_id, x=x, y=y, z_index=existing.z_index if existing else None
        )
        self.store.upsert(EntityKind.POSITIONS, position)
        result = MutationResult("save_position", EntityKind.POSITIONS, position)

        try:
            await self._remote(result, self.service.save_position(note_id, x, y))
        except PersistenceError as error:
            await self.load_all()
            result.status = MutationStatus.RECONCILED
            self.store.set_error(EntityKind.POSITIONS, str(error))
            raise

        return self._confirm(result, position)
