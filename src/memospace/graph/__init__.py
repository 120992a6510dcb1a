"""Edge construction, node placement and position persistence for the graph view."""

from .edges import CurveStyle, EdgeDescriptor, build_edges
from .layout import circle_positions, seed_positions
from .position_sync import AutoLayoutResult, PositionSync

__all__ = [
    "build_edges",
    "EdgeDescriptor",
    "CurveStyle",
    "circle_positions",
    "seed_positions",
    "PositionSync",
    "AutoLayoutResult",
]
