"""UI-facing entry point for annotation interactions.

``InteractionFacade`` wires the identity linker, gesture disambiguator,
connection graph, mode state and controller together and exposes one method
per user action of the map page. Presentation code forwards raw gestures and
button presses here and renders whatever the mode properties report.

Examples
--------
>>> facade = InteractionFacade(map_view, repository, dialogs, icons)  # doctest: +SKIP
>>> await facade.load()  # doctest: +SKIP
>>> await facade.on_long_press_start(ScreenPoint(120.0, 340.0))  # doctest: +SKIP
>>> facade.mode_name  # doctest: +SKIP
'pending_placement'
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from mapnotes.annotation._controller import ModeController
from mapnotes.annotation._gestures import GestureDisambiguator
from mapnotes.annotation._linker import IdentityLinker
from mapnotes.annotation._state import (
    Connect,
    DragToDelete,
    InteractionMode,
    ModeState,
    Move,
    SelectionMenu,
    active_marker,
)
from mapnotes.annotation._types import (
    InteractionConfig,
    PresentationCallbacks,
    ScreenPoint,
    new_storage_id,
)
from mapnotes.annotation.connections import ConnectionGraph
from mapnotes.annotation.errors import CoordinateConversionFailed

if TYPE_CHECKING:
    from mapnotes.annotation._protocols import (
        AnnotationDialogs,
        AnnotationRepository,
        IconLoader,
        MapAnnotations,
    )
    from mapnotes.annotation._types import MapHandle, ModeName

logger = logging.getLogger(__name__)

# Horizontal distance between a selected marker and its menu, in pixels
MENU_OFFSET_X = 30.0


class InteractionFacade:
    """Single object the presentation layer talks to.

    Parameters
    ----------
    map_annotations : MapAnnotations
        Map engine binding.
    repository : AnnotationRepository
        Persistent annotation storage.
    dialogs : AnnotationDialogs
        Dialog presenter.
    icons : IconLoader
        Icon assets.
    config : InteractionConfig, optional
        Placement delay, trash zone and icon defaults.
    callbacks : PresentationCallbacks, optional
        Presentation outputs (drag feedback, menu, connect banner).
    id_factory : callable, optional
        Storage id generator for new annotations.

    """

    def __init__(
        self,
        map_annotations: MapAnnotations,
        repository: AnnotationRepository,
        dialogs: AnnotationDialogs,
        icons: IconLoader,
        *,
        config: InteractionConfig | None = None,
        callbacks: PresentationCallbacks | None = None,
        id_factory: Callable[[], str] = new_storage_id,
    ) -> None:
        self.config = config if config is not None else InteractionConfig()
        self._map = map_annotations
        self._state = ModeState()
        self._linker = IdentityLinker()
        self._connections = ConnectionGraph()
        self._gestures = GestureDisambiguator(
            map_annotations, delay=self.config.placement_delay
        )
        self.controller = ModeController(
            map_annotations,
            repository,
            dialogs,
            icons,
            linker=self._linker,
            gestures=self._gestures,
            connections=self._connections,
            state=self._state,
            config=self.config,
            callbacks=callbacks,
            id_factory=id_factory,
        )

    # ------------------------------------------------------------------ state
    @property
    def mode(self) -> InteractionMode:
        return self._state.mode

    @property
    def mode_name(self) -> ModeName:
        return self._state.name

    @property
    def selected_handle(self) -> MapHandle | None:
        """Marker the current mode works on (menu, move, drag or connect)."""
        return active_marker(self._state.mode)

    @property
    def is_dragging(self) -> bool:
        return isinstance(self._state.mode, (Move, DragToDelete))

    @property
    def is_connect_mode(self) -> bool:
        return isinstance(self._state.mode, Connect)

    @property
    def annotation_button_text(self) -> str:
        """Label of the move button: "Lock" while moving, "Move" otherwise."""
        return "Lock" if isinstance(self._state.mode, Move) else "Move"

    @property
    def linker(self) -> IdentityLinker:
        return self._linker

    @property
    def connections(self) -> ConnectionGraph:
        return self._connections

    def linked_storage_ids(self) -> list[str]:
        """Storage ids of all annotations currently shown on the map."""
        return self._linker.storage_ids()

    # ------------------------------------------------------------------ gestures
    async def on_long_press_start(self, screen_point: ScreenPoint) -> None:
        await self.controller.on_long_press(ScreenPoint(*screen_point))

    async def on_long_press_move_update(self, screen_point: ScreenPoint) -> None:
        if not isinstance(self._state.mode, (SelectionMenu, Move, DragToDelete)):
            logger.debug("Long press move ignored in mode %s", self._state.name)
            return
        await self.controller.on_drag_update(ScreenPoint(*screen_point))

    async def on_long_press_end(self) -> None:
        if self.is_dragging:
            await self.controller.on_drag_end()

    async def on_long_press_cancel(self) -> None:
        """The long-press gesture was aborted by the platform.

        A pending placement is dropped; a drag in progress ends as if the
        finger had been lifted.
        """
        if self.controller.cancel_pending_placement():
            return
        if self.is_dragging:
            await self.controller.on_drag_end()

    async def on_marker_tapped(self, handle: MapHandle) -> None:
        await self.controller.on_marker_tapped(handle)

    # ------------------------------------------------------------------ buttons
    async def on_move_or_lock_pressed(self) -> bool:
        """Toggle: start moving the selected marker, or lock it in place."""
        if isinstance(self._state.mode, Move):
            return await self.controller.press_lock()
        return self.controller.press_move()

    async def on_edit_pressed(self) -> MapHandle | None:
        return await self.controller.press_edit()

    def on_connect_pressed(self) -> bool:
        return self.controller.press_connect()

    async def on_cancel_pressed(self) -> None:
        await self.controller.press_cancel()

    def on_connect_banner_cancel(self) -> bool:
        return self.controller.cancel_connect()

    async def menu_anchor(self, offset_x: float = MENU_OFFSET_X) -> ScreenPoint | None:
        """Screen position for the selection menu, next to the selected marker.

        Returns None outside the selection menu or if the engine cannot
        project the marker position.
        """
        mode = self._state.mode
        if not isinstance(mode, SelectionMenu):
            return None
        try:
            pixel = await self._map.pixel_for_coordinate(mode.selected.geometry)
        except CoordinateConversionFailed as exc:
            logger.warning("Cannot place menu for marker %s: %s", mode.selected.id, exc)
            return None
        return ScreenPoint(pixel[0] + offset_x, pixel[1])

    # ------------------------------------------------------------------ startup
    async def load(self) -> list[MapHandle]:
        """Show all stored annotations on the map."""
        return await self.controller.load_annotations()
