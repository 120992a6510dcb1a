"""Deterministic node placement for the graph view."""

import math
from collections.abc import Mapping, Sequence

from ..config import (
    AUTO_LAYOUT_BASE_RADIUS,
    AUTO_LAYOUT_CENTER,
    AUTO_LAYOUT_MAX_RADIUS,
    AUTO_LAYOUT_RADIUS_STEP,
    CANVAS_MAX,
    CANVAS_MIN,
    GRID_OFFSET,
    GRID_SPACING_X,
    GRID_SPACING_Y,
)
from ..models import Position


def grid_position(index: int, total: int) -> tuple[float, float]:
    """Seed position for the index-th of ``total`` unplaced notes."""
    cols = max(1, math.ceil(math.sqrt(total)))
    row, col = divmod(index, cols)
    return (float(col * GRID_SPACING_X + GRID_OFFSET), float(row * GRID_SPACING_Y + GRID_OFFSET))


def circle_radius(count: int) -> float:
    """Auto-layout radius, growing with node count up to a cap."""
    return float(min(AUTO_LAYOUT_MAX_RADIUS, AUTO_LAYOUT_BASE_RADIUS + count * AUTO_LAYOUT_RADIUS_STEP))


def circle_positions(
    note_ids: Sequence[str],
    center: tuple[float, float] = AUTO_LAYOUT_CENTER,
) -> dict[str, tuple[float, float]]:
    """Place notes evenly on a circle, first note at angle zero."""
    count = len(note_ids)
    if count == 0:
        return {}

    radius = circle_radius(count)
    cx, cy = center
    placements = {}
    for index, note_id in enumerate(note_ids):
        angle = 2 * math.pi * index / count
        placements[note_id] = (cx + radius * math.cos(angle), cy + radius * math.sin(angle))
    return placements


def seed_positions(
    note_ids: Sequence[str], positions: Mapping[str, Position]
) -> dict[str, tuple[float, float]]:
    """Stored coordinates where they exist, grid seed for the rest."""
    placements = {}
    for index, note_id in enumerate(note_ids):
        stored = positions.get(note_id)
        if stored is not None:
            placements[note_id] = (stored.x, stored.y)
        else:
            placements[note_id] = grid_position(index, len(note_ids))
    return placements


def clamp_to_canvas(x: float, y: float) -> tuple[float, float]:
    """Keep coordinates inside the draggable canvas extent."""
    return (
        min(max(x, CANVAS_MIN), CANVAS_MAX),
        min(max(y, CANVAS_MIN), CANVAS_MAX),
    )
