"""Custom exceptions for the knowledge-base store."""

from .models import EntityKind

_SINGULAR = {
    EntityKind.NOTES: "Note",
    EntityKind.CATEGORIES: "Category",
    EntityKind.LINKS: "Link",
    EntityKind.POSITIONS: "Position",
}


class StoreError(Exception):
    """Base exception for store and persistence operations."""

    def __init__(self, kind: EntityKind, message: str):
        """Initialize the error."""
        self.kind = kind
        super().__init__(message)


class ValidationError(StoreError):
    """Raised when a command's input is malformed. No state has changed."""

    def __init__(self, kind: EntityKind, message: str, field: str | None = None):
        """Initialize the error."""
        self.field = field
        super().__init__(kind, message)


class NotFoundError(StoreError):
    """Raised when a command references an id that is not in the collection."""

    def __init__(self, kind: EntityKind, entity_id: str):
        """Initialize the error."""
        self.entity_id = entity_id
        super().__init__(kind, f"{_SINGULAR[kind]} '{entity_id}' not found")


class ReferentialIntegrityViolation(StoreError):
    """Raised when a link endpoint does not reference a known note."""

    def __init__(self, note_id: str, role: str):
        """Initialize the error."""
        self.note_id = note_id
        self.role = role
        super().__init__(EntityKind.LINKS, f"{role.capitalize()} note '{note_id}' does not exist")


class PersistenceError(StoreError):
    """Raised when a call to the persistence service fails.

    When raised by the coordinator, ``result`` is the ``MutationResult`` of
    the command, whose status tells a plain failure from a reconciled one.
    """

    def __init__(self, kind: EntityKind, operation: str, message: str):
        """Initialize the error."""
        self.operation = operation
        self.result = None
        super().__init__(kind, f"{operation} failed: {message}")
