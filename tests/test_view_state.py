"""Tests for ViewState filters, reactive edges and viewport persistence."""

import pytest

from memospace.models import EntityKind, Link, Position, Viewport
from memospace.view_state import ViewState


@pytest.fixture
def seeded(service):
    """Two work notes and one home note, linked a-b and b-c."""
    a = service.add_note("alpha", ["Work"])
    b = service.add_note("beta", ["Work", "Ideas"])
    c = service.add_note("gamma", ["Home"])
    service.add_link(a, b, "Reference")
    service.add_link(b, c, "Related")
    return a, b, c


@pytest.fixture
def view(store, service) -> ViewState:
    return ViewState(store, service)


class TestFilters:
    """Tests for category and search filters."""

    @pytest.mark.asyncio
    async def test_category_filter(self, view, coordinator, seeded) -> None:
        a, b, _ = seeded
        await coordinator.load_all()

        view.select_category(["Work"])

        assert view.visible_note_ids == [a.id, b.id]
        assert [e.source for e in view.edges] == [a.id]

    @pytest.mark.asyncio
    async def test_search_narrows_list_not_graph(self, view, coordinator, seeded) -> None:
        """Search text filters the note list; graph nodes follow the category only."""
        a, b, c = seeded
        await coordinator.load_all()

        view.set_search("GAMMA")

        assert [n.id for n in view.filtered_notes] == [c.id]
        assert view.visible_note_ids == [a.id, b.id, c.id]

    @pytest.mark.asyncio
    async def test_clear_category(self, view, coordinator, seeded) -> None:
        await coordinator.load_all()
        view.select_category(["Home"])
        view.select_category(None)

        assert len(view.visible_note_ids) == 3
        assert len(view.edges) == 2


class TestReactiveEdges:
    """Tests for edge recomputation on store changes."""

    @pytest.mark.asyncio
    async def test_edges_follow_link_changes(self, store, service, coordinator, seeded) -> None:
        pushed = []
        view = ViewState(store, service, on_edges=pushed.append)
        await coordinator.load_all()
        a, _, c = seeded

        await coordinator.create_link(a.id, c.id, "Supports")

        assert len(view.edges) == 3
        assert len(pushed[-1]) == 3

    @pytest.mark.asyncio
    async def test_unrelated_change_does_not_rebuild(
        self, store, service, coordinator, seeded
    ) -> None:
        pushed = []
        ViewState(store, service, on_edges=pushed.append)
        await coordinator.load_all()
        count = len(pushed)

        store.upsert(EntityKind.POSITIONS, Position(note_id=seeded[0].id, x=1, y=1))
        store.set_error(EntityKind.CATEGORIES, "oops")

        assert len(pushed) == count

    def test_detach_stops_updates(self, store, service) -> None:
        pushed = []
        view = ViewState(store, service, on_edges=pushed.append)
        view.detach()
        count = len(pushed)

        store.set_all(EntityKind.NOTES, [])
        store.upsert(EntityKind.LINKS, Link(source_id="x", target_id="y", link_type="Related"))

        assert len(pushed) == count


class TestPlacements:
    """Tests for initial node placement."""

    @pytest.mark.asyncio
    async def test_stored_positions_and_grid_seed(self, view, coordinator, service, seeded) -> None:
        a, b, c = seeded
        service.positions[b.id] = Position(note_id=b.id, x=-5, y=7)
        await coordinator.load_all()

        placements = view.node_placements()

        # 3 notes -> 2 columns
        assert placements[a.id] == (150.0, 150.0)
        assert placements[b.id] == (-5.0, 7.0)
        assert placements[c.id] == (150.0, 450.0)


class TestViewport:
    """Tests for viewport load and save."""

    @pytest.mark.asyncio
    async def test_default_viewport(self, view) -> None:
        assert view.viewport == Viewport(x=0, y=0, zoom=0.8)

    @pytest.mark.asyncio
    async def test_load_failure_falls_back_to_default(self, view, service) -> None:
        service.viewport = Viewport(x=5, y=5, zoom=2)
        service.failing.add("get_viewport")

        viewport = await view.load_viewport()

        assert viewport.zoom == 0.8

    @pytest.mark.asyncio
    async def test_set_viewport_persists(self, view, service) -> None:
        await view.set_viewport(10, 20, 1.5)

        assert service.viewport == Viewport(x=10, y=20, zoom=1.5)
        assert view.viewport.zoom == 1.5

    @pytest.mark.asyncio
    async def test_save_failure_is_not_raised(self, view, service) -> None:
        service.failing.add("save_viewport")

        await view.set_viewport(1, 2, 3)

        assert view.viewport == Viewport(x=1, y=2, zoom=3)
