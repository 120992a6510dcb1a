"""Entity store, reducer and mutation coordinator."""

from .actions import (
    Action,
    Remove,
    RemoveCategoryTree,
    RenameCategory,
    Replace,
    SetAll,
    SetError,
    SetLoading,
    Upsert,
)
from .coordinator import MutationCoordinator, MutationResult, MutationStatus
from .entity_store import EntityStore
from .reducer import reduce
from .state import KindStatus, StoreState

__all__ = [
    "Action",
    "SetAll",
    "Upsert",
    "Replace",
    "Remove",
    "RenameCategory",
    "RemoveCategoryTree",
    "SetLoading",
    "SetError",
    "reduce",
    "StoreState",
    "KindStatus",
    "EntityStore",
    "MutationCoordinator",
    "MutationResult",
    "MutationStatus",
]
