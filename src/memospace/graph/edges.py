"""Turns stored links into renderable edge descriptors."""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from ..models import Link, LinkColor, LinkType

PURPLE = "#8b5cf6"
YELLOW = "#eab308"

# Explicit user-selected colors
COLOR_PALETTE = {
    LinkColor.PURPLE: PURPLE,
    LinkColor.YELLOW: YELLOW,
}

# Fallback colors keyed by link type; custom types use CUSTOM_TYPE_COLOR
TYPE_COLORS = {
    LinkType.RELATED.value: "#6b7280",  # gray
    LinkType.REFERENCE.value: "#3b82f6",  # blue
    LinkType.FOLLOW_UP.value: "#10b981",  # green
    LinkType.CONTRADICTS.value: "#ef4444",  # red
    LinkType.SUPPORTS.value: "#f59e0b",  # amber
}
CUSTOM_TYPE_COLOR = PURPLE

# Link types drawn with an arrowhead unless the link says otherwise
DIRECTIONAL_TYPES = frozenset(
    {LinkType.REFERENCE.value, LinkType.FOLLOW_UP.value, LinkType.SUPPORTS.value}
)


class CurveStyle(str, Enum):
    """How an edge is drawn, ordered by its slot among parallel edges."""

    STRAIGHT = "straight"
    BEZIER = "bezier"
    BEZIER_OPPOSITE = "bezier_opposite"
    OFFSET = "offset"


CURVE_ORDER = (
    CurveStyle.STRAIGHT,
    CurveStyle.BEZIER,
    CurveStyle.BEZIER_OPPOSITE,
    CurveStyle.OFFSET,
)


@dataclass(frozen=True)
class EdgeDescriptor:
    """A link resolved into what the renderer needs to draw it."""

    id: str
    source: str
    target: str
    curve: CurveStyle
    group_index: int  # position among links between the same two notes
    group_size: int
    color: str
    directional: bool
    label: str
    link: Link

    @property
    def curve_rank(self) -> int:
        return CURVE_ORDER.index(self.curve)

    @property
    def has_arrowhead(self) -> bool:
        return self.directional


def pair_key(source_id: str, target_id: str) -> tuple[str, str]:
    """Order-independent key for the two notes a link connects."""
    if source_id <= target_id:
        return (source_id, target_id)
    return (target_id, source_id)


def curve_for_index(index: int) -> CurveStyle:
    """Curve for the index-th link between a pair (0 = straight)."""
    return CURVE_ORDER[min(index, len(CURVE_ORDER) - 1)]


def resolve_color(link: Link) -> str:
    """Explicit color first, then the link type's color, then purple."""
    if link.color is not None:
        return COLOR_PALETTE[link.color]
    return TYPE_COLORS.get(link.link_type, CUSTOM_TYPE_COLOR)


def resolve_directional(link: Link) -> bool:
    """Explicit ``directional`` first, then the link type's default."""
    if link.directional is not None:
        return link.directional
    return link.link_type in DIRECTIONAL_TYPES


def resolve_label(link: Link) -> str:
    """Explicit label when non-empty, otherwise the link type's display name."""
    if link.label:
        return link.label
    return link.display_name


def build_edges(links: Iterable[Link], visible_note_ids: Iterable[str]) -> list[EdgeDescriptor]:
    """Build edge descriptors for links whose endpoints are both visible.

    Links between the same two notes (in either direction) form a group; the
    n-th link of a group in collection order gets the n-th curve style so
    parallel edges do not overlap. Each link keeps its stored direction.

    Args:
        links: Links in collection order
        visible_note_ids: Ids of notes currently shown

    Returns:
        Edge descriptors, grouped by note pair in order of first appearance
    """
    visible = set(visible_note_ids)

    groups: dict[tuple[str, str], list[Link]] = {}
    for link in links:
        if link.source_id not in visible or link.target_id not in visible:
            continue
        groups.setdefault(pair_key(link.source_id, link.target_id), []).append(link)

    edges = []
    for group in groups.values():
        for index, link in enumerate(group):
            edges.append(
                EdgeDescriptor(
                    id=link.id,
                    source=link.source_id,
                    target=link.target_id,
                    curve=curve_for_index(index),
                    group_index=index,
                    group_size=len(group),
                    color=resolve_color(link),
                    directional=resolve_directional(link),
                    label=resolve_label(link),
                    link=link,
                )
            )

    return edges
