"""Pure state objects for the interaction mode.

The controller holds exactly one mode value at a time. Each mode is its own
small dataclass carrying only the data that is meaningful in that mode, which
rules out combinations such as "dragging and connecting" that independent
boolean flags would allow.

This module has no map, storage or UI dependencies, so transitions can be
tested in isolation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Union

from mapnotes.annotation.errors import ModeTransitionError

if TYPE_CHECKING:
    from mapnotes.annotation._timer import CancelableDelay
    from mapnotes.annotation._types import Coordinate, MapHandle, ModeName, ScreenPoint

logger = logging.getLogger(__name__)


@dataclass
class Idle:
    """Nothing selected."""

    name: ClassVar[ModeName] = "idle"


@dataclass
class PendingPlacement:
    """Long press on empty map; placement dialog pending or open."""

    pending_point: Coordinate
    timer: CancelableDelay | None = None

    name: ClassVar[ModeName] = "pending_placement"


@dataclass
class SelectionMenu:
    """Menu shown for a long-pressed marker."""

    selected: MapHandle
    original_geometry: Coordinate

    name: ClassVar[ModeName] = "selection_menu"


@dataclass
class Move:
    """Marker follows drag updates until locked or cancelled.

    ``current_geometry`` is the last position applied by a drag update, None
    while the marker has not moved.
    """

    selected: MapHandle
    original_geometry: Coordinate
    current_geometry: Coordinate | None = None
    last_screen_point: ScreenPoint | None = None

    name: ClassVar[ModeName] = "move"

    @property
    def has_moved(self) -> bool:
        return (
            self.current_geometry is not None
            and self.current_geometry != self.original_geometry
        )


@dataclass
class Connect:
    """First marker chosen, waiting for the second."""

    first: MapHandle

    name: ClassVar[ModeName] = "connect"


@dataclass
class DragToDelete:
    """Selected marker dragged directly from the menu, toward the trash zone."""

    selected: MapHandle
    original_geometry: Coordinate
    last_screen_point: ScreenPoint | None = None

    name: ClassVar[ModeName] = "drag_to_delete"


InteractionMode = Union[Idle, PendingPlacement, SelectionMenu, Move, Connect, DragToDelete]

# Modes that may only be entered from Idle or SelectionMenu
_GUARDED_MODES = (Move, Connect, DragToDelete)
_GUARDED_SOURCES = (Idle, SelectionMenu)


def active_marker(mode: InteractionMode) -> MapHandle | None:
    """Marker the mode is working on, if any."""
    if isinstance(mode, (SelectionMenu, Move, DragToDelete)):
        return mode.selected
    if isinstance(mode, Connect):
        return mode.first
    return None


class ModeState:
    """Holder of the single active interaction mode.

    Every transition is logged and bumps ``generation``. Asynchronous
    workflows capture the generation before a suspension point and check
    ``is_current`` afterwards; a mismatch means another event changed the
    mode meanwhile and the workflow must not commit.

    Examples
    --------
    >>> state = ModeState()
    >>> state.name
    'idle'
    >>> token = state.generation
    >>> _ = state.transition(Connect(first=None), "connect pressed")
    >>> state.name, state.is_current(token)
    ('connect', False)
    >>> state.reset("cancel pressed").name
    'idle'

    """

    def __init__(self) -> None:
        self._mode: InteractionMode = Idle()
        self._generation = 0

    @property
    def mode(self) -> InteractionMode:
        return self._mode

    @property
    def name(self) -> ModeName:
        return self._mode.name

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def transition(self, new_mode: InteractionMode, reason: str) -> InteractionMode:
        """Leave the current mode and enter ``new_mode``.

        Parameters
        ----------
        new_mode : InteractionMode
            Mode to enter.
        reason : str
            Event that caused the transition, for the log.

        Returns
        -------
        InteractionMode
            The mode that was left.

        Raises
        ------
        ModeTransitionError
            If ``new_mode`` is Move, Connect or DragToDelete and the current
            mode is neither Idle nor SelectionMenu.

        """
        old = self._mode
        if isinstance(new_mode, _GUARDED_MODES) and not isinstance(old, _GUARDED_SOURCES):
            raise ModeTransitionError(
                f"Cannot enter {new_mode.name} from {old.name} ({reason})"
            )
        if isinstance(old, PendingPlacement) and old.timer is not None:
            if old.timer.cancel():
                logger.info("Placement timer cancelled on leaving pending_placement")

        self._mode = new_mode
        self._generation += 1
        logger.info("Mode %s -> %s (%s)", old.name, new_mode.name, reason)
        return old

    def reset(self, reason: str) -> InteractionMode:
        """Return to Idle. Returns the new (Idle) mode."""
        if not isinstance(self._mode, Idle):
            self.transition(Idle(), reason)
        return self._mode
