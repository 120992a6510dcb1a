"""Debounced persistence of node positions reported by the graph view."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

import logfire

from ..config import get_position_debounce
from ..exceptions import StoreError
from ..store.coordinator import MutationCoordinator
from ..store.state import StoreState
from .layout import circle_positions, clamp_to_canvas

Coords = tuple[float, float]


@dataclass
class AutoLayoutResult:
    """Positions computed by an auto-layout run and the saves that failed."""

    placements: dict[str, Coords]
    failures: dict[str, StoreError] = field(default_factory=dict)

    @property
    def saved_count(self) -> int:
        return len(self.placements) - len(self.failures)


class PositionSync:
    """Coalesces rapid position reports into one write per note.

    While a drag is in progress each report restarts that note's timer, so
    only the last position of a burst is written. A settled report cancels
    the timer and writes at once. Writes for the same note run one at a time,
    and a write whose coordinates were superseded by a newer report, or were
    already written, is skipped, so the most recent position always wins.
    """

    def __init__(self, coordinator: MutationCoordinator, delay: float | None = None):
        """Initialize position sync.

        Args:
            coordinator: Coordinator used to persist positions
            delay: Debounce delay in seconds (defaults to configuration)
        """
        self.coordinator = coordinator
        self.delay = get_position_debounce() if delay is None else delay
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._latest: dict[str, Coords] = {}
        self._written: dict[str, Coords] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._tasks: set[asyncio.Task] = set()
        self._closed = False
        self._unsubscribe = coordinator.store.subscribe(self._on_store_change)

    def has_pending(self, note_id: str) -> bool:
        """Check if a debounce timer is waiting for this note."""
        return note_id in self._timers

    @property
    def pending_count(self) -> int:
        return len(self._timers)

    @property
    def in_flight_count(self) -> int:
        return len(self._tasks)

    def report(self, note_id: str, x: float, y: float, is_settled: bool) -> None:
        """Report a node's position from the view.

        Must be called from within the running event loop.

        Args:
            note_id: Note whose node moved
            x: Canvas x coordinate
            y: Canvas y coordinate
            is_settled: True when the interaction (e.g. a drag) has ended
        """
        if self._closed:
            logfire.warn("Position reported after close", note_id=note_id)
            return

        self._latest[note_id] = clamp_to_canvas(x, y)
        self._cancel_timer(note_id)

        if is_settled:
            self._spawn_write(note_id)
        else:
            loop = asyncio.get_running_loop()
            self._timers[note_id] = loop.call_later(self.delay, self._on_timer, note_id)

    def _on_store_change(self, state: StoreState) -> None:
        """Forget notes that left the store and writes the store no longer holds."""
        for note_id in [n for n in self._latest if n not in state.notes]:
            self._forget(note_id)
        for note_id, coords in list(self._written.items()):
            position = state.positions.get(note_id)
            if position is None or (position.x, position.y) != coords:
                del self._written[note_id]

    def _forget(self, note_id: str) -> None:
        self._cancel_timer(note_id)
        self._latest.pop(note_id, None)
        self._written.pop(note_id, None)
        self._locks.pop(note_id, None)

    def _cancel_timer(self, note_id: str) -> None:
        timer = self._timers.pop(note_id, None)
        if timer is not None:
            timer.cancel()

    def _on_timer(self, note_id: str) -> None:
        self._timers.pop(note_id, None)
        if not self._closed:
            self._spawn_write(note_id)

    def _lock_for(self, note_id: str) -> asyncio.Lock:
        lock = self._locks.get(note_id)
        if lock is None:
            lock = self._locks[note_id] = asyncio.Lock()
        return lock

    def _spawn_write(self, note_id: str) -> None:
        coords = self._latest[note_id]
        task = asyncio.get_running_loop().create_task(self._write(note_id, coords))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _write(self, note_id: str, coords: Coords) -> None:
        async with self._lock_for(note_id):
            if self._latest.get(note_id) != coords:
                return  # a newer report will be written instead
            if self._written.get(note_id) == coords:
                return

            try:
                await self.coordinator.update_position(note_id, *coords)
            except StoreError as e:
                logfire.error("Position save failed", note_id=note_id, error=str(e))
                return

            if note_id in self._latest:
                self._written[note_id] = coords

    async def flush(self) -> None:
        """Write every pending position now and wait for all writes."""
        for note_id in list(self._timers):
            self._cancel_timer(note_id)
            self._spawn_write(note_id)
        await self.wait_idle()

    async def wait_idle(self) -> None:
        """Wait until no write is in flight."""
        while self._tasks:
            tasks = list(self._tasks)
            await asyncio.gather(*tasks)
            self._tasks.difference_update(tasks)

    @logfire.instrument("auto_layout")
    async def auto_layout(self, note_ids: Sequence[str]) -> AutoLayoutResult:
        """Arrange notes on a circle and persist each position in turn.

        A failed save is logged and recorded; the remaining saves continue.
        """
        result = AutoLayoutResult(placements=circle_positions(note_ids))

        for note_id, coords in result.placements.items():
            self._cancel_timer(note_id)
            self._latest[note_id] = coords
            async with self._lock_for(note_id):
                try:
                    await self.coordinator.update_position(note_id, *coords)
                except StoreError as e:
                    logfire.error("Failed to save position for node", note_id=note_id, error=str(e))
                    result.failures[note_id] = e
                    continue
                self._written[note_id] = coords

        logfire.info(
            "Auto-layout finished", saved=result.saved_count, failed=len(result.failures)
        )
        return result

    async def close(self) -> None:
        """Cancel pending timers and wait for in-flight writes to finish."""
        self._closed = True
        self._unsubscribe()
        for note_id in list(self._timers):
            self._cancel_timer(note_id)
        await self.wait_idle()
