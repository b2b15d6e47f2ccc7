"""Interaction core for map annotations: create, edit, move, connect, delete."""

from mapnotes.annotation._controller import ModeController
from mapnotes.annotation._gestures import (
    GestureDisambiguator,
    PressResolution,
    nearest_marker,
)
from mapnotes.annotation._linker import IdentityLinker
from mapnotes.annotation._protocols import (
    AnnotationDialogs,
    AnnotationRepository,
    IconLoader,
    MapAnnotations,
)
from mapnotes.annotation._state import (
    Connect,
    DragToDelete,
    Idle,
    InteractionMode,
    ModeState,
    Move,
    PendingPlacement,
    SelectionMenu,
    active_marker,
)
from mapnotes.annotation._timer import CancelableDelay
from mapnotes.annotation._trash_zone import TrashZone, is_over_trash_zone
from mapnotes.annotation._types import (
    AnnotationRecord,
    Coordinate,
    DialogResult,
    InteractionConfig,
    MapHandle,
    ModeName,
    PresentationCallbacks,
    ScreenPoint,
    new_storage_id,
)
from mapnotes.annotation.connections import ConnectionGraph
from mapnotes.annotation.errors import (
    AnnotationError,
    AssetLoadError,
    CoordinateConversionFailed,
    LinkNotFound,
    ModeTransitionError,
    RecordNotFound,
    StorageIOError,
)
from mapnotes.annotation.facade import InteractionFacade

__all__ = [
    "AnnotationDialogs",
    "AnnotationError",
    "AnnotationRecord",
    "AnnotationRepository",
    "AssetLoadError",
    "CancelableDelay",
    "Connect",
    "ConnectionGraph",
    "Coordinate",
    "CoordinateConversionFailed",
    "DialogResult",
    "DragToDelete",
    "GestureDisambiguator",
    "IconLoader",
    "IdentityLinker",
    "Idle",
    "InteractionConfig",
    "InteractionFacade",
    "InteractionMode",
    "LinkNotFound",
    "MapAnnotations",
    "MapHandle",
    "ModeController",
    "ModeName",
    "ModeState",
    "ModeTransitionError",
    "Move",
    "PendingPlacement",
    "PresentationCallbacks",
    "PressResolution",
    "RecordNotFound",
    "ScreenPoint",
    "SelectionMenu",
    "StorageIOError",
    "TrashZone",
    "active_marker",
    "is_over_trash_zone",
    "nearest_marker",
    "new_storage_id",
]
