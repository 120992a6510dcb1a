"""Pydantic models for notes, categories, links and graph positions."""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .config import CATEGORY_PATH_SEPARATOR, DEFAULT_VIEWPORT_ZOOM


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


class EntityKind(str, Enum):
    """The four collections owned by the entity store."""

    NOTES = "notes"
    CATEGORIES = "categories"
    LINKS = "links"
    POSITIONS = "positions"


class NoteSource(str, Enum):
    """Where a note came from."""

    MANUAL = "manual"
    CHAT = "chat"
    GENERATED = "generated"


class LinkType(str, Enum):
    """Built-in link types. Any other string is a custom link type."""

    RELATED = "Related"
    REFERENCE = "Reference"
    FOLLOW_UP = "FollowUp"
    CONTRADICTS = "Contradicts"
    SUPPORTS = "Supports"


class LinkColor(str, Enum):
    """Explicit link colors selectable by the user."""

    PURPLE = "purple"
    YELLOW = "yellow"


BUILTIN_LINK_TYPES = frozenset(t.value for t in LinkType)


def link_type_label(link_type: str) -> str:
    """Display name for a link type; custom types display their own label."""
    if link_type in BUILTIN_LINK_TYPES:
        return link_type
    return link_type.strip() or "Custom"


def parse_link_color(value: str | LinkColor | None) -> LinkColor | None:
    """Parse a color name case-insensitively. Unknown names are treated as absent."""
    if value is None or isinstance(value, LinkColor):
        return value
    try:
        return LinkColor(value.strip().lower())
    except ValueError:
        return None


class ChatContext(BaseModel):
    """The question and answer a chat-sourced note was saved from."""

    model_config = ConfigDict(frozen=True)

    question: str
    response: str
    timestamp: datetime = Field(default_factory=_utcnow)


class Note(BaseModel):
    """A free-text note filed under a category path."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    title: str = ""
    content: str
    category_path: list[str] = Field(default_factory=list)  # root -> leaf, empty = uncategorized
    timestamp: datetime = Field(default_factory=_utcnow)
    tags: list[str] = Field(default_factory=list)
    ai_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    source: NoteSource | None = None
    chat_context: ChatContext | None = None


class Category(BaseModel):
    """A node in the category hierarchy.

    ``path`` includes the category's own name as its last element. ``parent_id``
    is a back-reference only; notes refer to categories by path value.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str
    path: list[str]
    parent_id: str | None = None
    note_count: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    color: str | None = None

    @computed_field
    @property
    def level(self) -> int:
        return len(self.path) - 1

    @computed_field
    @property
    def full_path(self) -> str:
        return CATEGORY_PATH_SEPARATOR.join(self.path)


class Link(BaseModel):
    """A typed relationship between two notes."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    source_id: str
    target_id: str
    link_type: str
    label: str | None = None
    color: LinkColor | None = None
    directional: bool | None = None  # None = use the link type's default
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("link_type", mode="before")
    @classmethod
    def _unwrap_custom(cls, value):
        if isinstance(value, LinkType):
            return value.value
        # Older documents store custom types as {"Custom": "label"}
        if isinstance(value, dict) and "Custom" in value:
            return value["Custom"]
        return value

    @field_validator("color", mode="before")
    @classmethod
    def _normalize_color(cls, value):
        # Stored colors outside the palette render purple
        if isinstance(value, str):
            return parse_link_color(value) or (LinkColor.PURPLE if value.strip() else None)
        return value

    @property
    def is_custom(self) -> bool:
        return self.link_type not in BUILTIN_LINK_TYPES

    @property
    def display_name(self) -> str:
        return link_type_label(self.link_type)


class Position(BaseModel):
    """Canvas coordinates of a note in the graph view."""

    model_config = ConfigDict(frozen=True)

    note_id: str
    x: float
    y: float
    z_index: int | None = None


class Viewport(BaseModel):
    """Last-seen pan and zoom of the graph view."""

    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0
    zoom: float = DEFAULT_VIEWPORT_ZOOM
