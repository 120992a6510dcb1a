"""Derived view of the store consumed by the graph and list UIs."""

from collections.abc import Callable, Mapping, Sequence

import logfire

from .graph.edges import EdgeDescriptor, build_edges
from .graph.layout import seed_positions
from .models import Link, Note, Viewport
from .persistence.base import KnowledgeBaseService
from .store.entity_store import EntityStore
from .store.state import StoreState

EdgesListener = Callable[[list[EdgeDescriptor]], None]


class ViewState:
    """Active category filter, search text and viewport over an entity store.

    Edges are rebuilt whenever the link collection or the set of visible notes
    changes, and pushed to ``on_edges`` if given. The graph shows every note in
    the selected category; search text narrows the note list only.
    """

    def __init__(
        self,
        store: EntityStore,
        service: KnowledgeBaseService,
        on_edges: EdgesListener | None = None,
    ):
        """Initialize view state.

        Args:
            store: Store to derive from
            service: Service used to load and save the viewport
            on_edges: Optional callback receiving rebuilt edges
        """
        self.store = store
        self.service = service
        self.on_edges = on_edges
        self.selected_category: list[str] | None = None
        self.search_query: str = ""
        self.viewport = Viewport()

        self._edges: list[EdgeDescriptor] = []
        self._edge_inputs: tuple[Mapping[str, Link], frozenset[str]] | None = None
        self._unsubscribe = store.subscribe(self._on_state)
        self._refresh_edges()

    # ========================================================================
    # Filters
    # ========================================================================

    def select_category(self, category_path: Sequence[str] | None) -> None:
        """Show only notes under ``category_path`` (None shows everything)."""
        self.selected_category = list(category_path) if category_path else None
        self._refresh_edges()

    def set_search(self, query: str) -> None:
        self.search_query = query

    @property
    def filtered_notes(self) -> list[Note]:
        """Notes for the list view: category filter plus search text."""
        return self.store.notes_matching(self.selected_category, self.search_query or None)

    @property
    def visible_note_ids(self) -> list[str]:
        """Ids of notes shown as graph nodes, in collection order."""
        return [note.id for note in self.store.notes_matching(self.selected_category)]

    # ========================================================================
    # Graph
    # ========================================================================

    @property
    def edges(self) -> list[EdgeDescriptor]:
        return list(self._edges)

    def node_placements(self) -> dict[str, tuple[float, float]]:
        """Coordinates for every visible note, seeding a grid for unplaced ones."""
        return seed_positions(self.visible_note_ids, self.store.state.positions)

    def _on_state(self, state: StoreState) -> None:
        self._refresh_edges()

    def _refresh_edges(self) -> None:
        state = self.store.state
        visible_ids = self.visible_note_ids
        inputs = (state.links, frozenset(visible_ids))
        if self._edge_inputs is not None:
            links, visible = self._edge_inputs
            if links is inputs[0] and visible == inputs[1]:
                return

        self._edge_inputs = inputs
        self._edges = build_edges(state.links.values(), visible_ids)
        if self.on_edges is not None:
            self.on_edges(self.edges)

    # ========================================================================
    # Viewport
    # ========================================================================

    async def load_viewport(self) -> Viewport:
        """Load the saved viewport, falling back to the default on failure."""
        try:
            self.viewport = await self.service.get_viewport()
        except Exception as e:
            logfire.warn("Failed to load viewport, using default", error=str(e))
            self.viewport = Viewport()
        return self.viewport

    async def set_viewport(self, x: float, y: float, zoom: float) -> None:
        """Update the viewport and persist it. Save failures are logged only."""
        self.viewport = Viewport(x=x, y=y, zoom=zoom)
        try:
            await self.service.save_viewport(x, y, zoom)
        except Exception as e:
            logfire.error("Failed to save viewport", error=str(e))

    def detach(self) -> None:
        """Stop following store changes."""
        self._unsubscribe()
