"""Memospace - notes, categories and a typed link graph."""

from .app import MemospaceApp
from .channels import EditorChannel, OpenNoteRequest
from .exceptions import (
    NotFoundError,
    PersistenceError,
    ReferentialIntegrityViolation,
    StoreError,
    ValidationError,
)
from .graph import EdgeDescriptor, PositionSync, build_edges
from .models import Category, EntityKind, Link, LinkColor, LinkType, Note, Position, Viewport
from .persistence import JsonKnowledgeBase, KnowledgeBaseService
from .store import EntityStore, MutationCoordinator, MutationResult, MutationStatus
from .view_state import ViewState

__all__ = [
    "MemospaceApp",
    "EditorChannel",
    "OpenNoteRequest",
    "EntityStore",
    "MutationCoordinator",
    "MutationResult",
    "MutationStatus",
    "ViewState",
    "build_edges",
    "EdgeDescriptor",
    "PositionSync",
    "KnowledgeBaseService",
    "JsonKnowledgeBase",
    "Note",
    "Category",
    "Link",
    "LinkType",
    "LinkColor",
    "Position",
    "Viewport",
    "EntityKind",
    "StoreError",
    "ValidationError",
    "NotFoundError",
    "PersistenceError",
    "ReferentialIntegrityViolation",
]
