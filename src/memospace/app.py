"""Top-level component owning the store and everything derived from it."""

import asyncio

import logfire

from .channels import EditorChannel, OpenNoteRequest
from .graph.edges import EdgeDescriptor
from .graph.position_sync import PositionSync
from .persistence.base import KnowledgeBaseService
from .store.coordinator import MutationCoordinator
from .store.entity_store import EntityStore
from .view_state import EdgesListener, ViewState


class MemospaceApp:
    """Wires a service to the store, coordinator, view state and position sync.

    ``attach`` loads everything from the service; ``close`` cancels pending
    position timers and waits for in-flight writes. Also usable as an async
    context manager.
    """

    def __init__(
        self,
        service: KnowledgeBaseService,
        position_delay: float | None = None,
        on_edges: EdgesListener | None = None,
    ):
        """Initialize the app.

        Args:
            service: Persistence service
            position_delay: Debounce delay for position writes (seconds)
            on_edges: Optional callback receiving rebuilt edges
        """
        self.service = service
        self.store = EntityStore()
        self.coordinator = MutationCoordinator(self.store, service)
        self.view = ViewState(self.store, service, on_edges=on_edges)
        self.positions = PositionSync(self.coordinator, delay=position_delay)
        self.editor = EditorChannel()
        self._attached = False

    @property
    def attached(self) -> bool:
        return self._attached

    async def attach(self) -> None:
        """Load all collections and the viewport."""
        await asyncio.gather(self.coordinator.load_all(), self.view.load_viewport())
        self._attached = True

    def edges(self) -> list[EdgeDescriptor]:
        return self.view.edges

    def open_note(self, note_id: str) -> OpenNoteRequest:
        """Ask the owning view to open a note in the full-screen editor."""
        if self.store.note_by_id(note_id) is None:
            logfire.warn("Open requested for unknown note", note_id=note_id)
        return self.editor.request_open(note_id)

    async def close(self) -> None:
        """Cancel pending position timers and wait for in-flight writes."""
        await self.positions.close()
        self.view.detach()
        self._attached = False

    async def __aenter__(self) -> "MemospaceApp":
        await self.attach()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
