"""Interaction-mode controller: create, edit, move, connect and delete workflows.

The controller sits between raw gestures, the map engine, the annotation
repository and the dialogs. It owns the single interaction mode (through
``ModeState``) and keeps markers and stored records in sync through the
``IdentityLinker``.

Everything runs on one event loop. Awaiting a collaborator is the only way
another event can interleave, so every workflow captures the mode generation
before it suspends and re-checks it before committing a write. A workflow
that finds the mode changed under it stops without writing.

Error policy
------------
- ``LinkNotFound`` / ``RecordNotFound``: warning, workflow aborted, no dialog.
  A delete whose record is already gone still removes the marker.
- ``CoordinateConversionFailed``: that single gesture event is ignored.
- ``StorageIOError``: error, workflow aborted, dragged markers reverted to
  their snapshot.
- ``AssetLoadError``: error, nothing is created or replaced.

No error is retried, and the mode always ends in a well-defined state.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from dataclasses import fields
from typing import TYPE_CHECKING

from mapnotes.annotation._state import (
    Connect,
    DragToDelete,
    Idle,
    ModeState,
    Move,
    PendingPlacement,
    SelectionMenu,
)
from mapnotes.annotation._trash_zone import is_over_trash_zone
from mapnotes.annotation._types import (
    AnnotationRecord,
    Coordinate,
    DialogResult,
    InteractionConfig,
    PresentationCallbacks,
    ScreenPoint,
    new_storage_id,
)
from mapnotes.annotation.errors import (
    AnnotationError,
    AssetLoadError,
    CoordinateConversionFailed,
    LinkNotFound,
    RecordNotFound,
    StorageIOError,
)

if TYPE_CHECKING:
    from mapnotes.annotation._gestures import GestureDisambiguator
    from mapnotes.annotation._linker import IdentityLinker
    from mapnotes.annotation._protocols import (
        AnnotationDialogs,
        AnnotationRepository,
        IconLoader,
        MapAnnotations,
    )
    from mapnotes.annotation._types import MapHandle
    from mapnotes.annotation.connections import ConnectionGraph

# Enable with: logging.getLogger("mapnotes.annotation._controller").setLevel(logging.DEBUG)
logger = logging.getLogger(__name__)


def _merge_results(base: DialogResult, override: DialogResult) -> DialogResult:
    """Fields returned by ``override`` win; missing ones fall back to ``base``."""
    values = {}
    for f in fields(DialogResult):
        value = getattr(override, f.name)
        values[f.name] = value if value is not None else getattr(base, f.name)
    values["quick_save"] = base.quick_save or override.quick_save
    return DialogResult(**values)


class ModeController:
    """State machine driving every annotation workflow.

    Parameters
    ----------
    map_annotations : MapAnnotations
        Marker drawing and hit testing.
    repository : AnnotationRepository
        Persistent annotation records.
    dialogs : AnnotationDialogs
        Placement, form, confirmation and details dialogs.
    icons : IconLoader
        Icon image bytes by name.
    linker : IdentityLinker
        Marker id <-> storage id table shared with the facade.
    gestures : GestureDisambiguator
        Long-press resolution and placement timer.
    connections : ConnectionGraph
        Where completed connections are recorded.
    state : ModeState, optional
        Mode holder; a fresh Idle state by default.
    config : InteractionConfig, optional
        Trash zone and icon defaults.
    callbacks : PresentationCallbacks, optional
        Outputs for the presentation layer.
    id_factory : callable, optional
        Generates storage ids for new records (UUID4 strings by default).

    """

    def __init__(
        self,
        map_annotations: MapAnnotations,
        repository: AnnotationRepository,
        dialogs: AnnotationDialogs,
        icons: IconLoader,
        *,
        linker: IdentityLinker,
        gestures: GestureDisambiguator,
        connections: ConnectionGraph,
        state: ModeState | None = None,
        config: InteractionConfig | None = None,
        callbacks: PresentationCallbacks | None = None,
        id_factory: Callable[[], str] = new_storage_id,
    ) -> None:
        self.map = map_annotations
        self.repository = repository
        self.dialogs = dialogs
        self.icons = icons
        self.linker = linker
        self.gestures = gestures
        self.connections = connections
        self.state = state if state is not None else ModeState()
        self.config = config if config is not None else InteractionConfig()
        self.callbacks = callbacks if callbacks is not None else PresentationCallbacks()
        self._id_factory = id_factory
        self._drag_in_flight = False
        self._lock_in_flight = False

    # ------------------------------------------------------------------ helpers
    def _still_current(self, generation: int, stage: str) -> bool:
        if self.state.is_current(generation):
            return True
        logger.warning(
            "Mode changed to %s during %s; abandoning workflow without writing",
            self.state.name,
            stage,
        )
        return False

    def _ignore(self, event: str) -> None:
        logger.warning("%s ignored in mode %s", event, self.state.name)

    def _require_link(self, handle: MapHandle, stage: str) -> str:
        storage_id = self.linker.lookup_storage_id(handle.id)
        if storage_id is None:
            raise LinkNotFound(f"No storage id linked to marker {handle.id} ({stage})")
        return storage_id

    async def _load_record(self, storage_id: str, stage: str) -> AnnotationRecord:
        records = await self.repository.get_all()
        logger.debug("Loaded %d annotations from storage (%s)", len(records), stage)
        for record in records:
            if record.storage_id == storage_id:
                return record
        raise RecordNotFound(f"Annotation {storage_id} not found in storage ({stage})")

    async def _revert(self, handle: MapHandle, original: Coordinate) -> None:
        logger.info("Reverting marker %s to %s", handle.id, tuple(original))
        await self.map.update_visual_position(handle, original)

    async def _revert_after_failure(
        self, generation: int, handle: MapHandle, original: Coordinate, reason: str
    ) -> None:
        # If another event already left the mode, it owns the marker position now
        if not self.state.is_current(generation):
            return
        self.state.reset(reason)
        await self._revert(handle, original)

    # ------------------------------------------------------------------ long press
    async def on_long_press(self, screen_point: ScreenPoint) -> None:
        """Start creating (empty map) or open the menu for a marker."""
        if not isinstance(self.state.mode, Idle):
            self._ignore("Long press")
            return
        generation = self.state.generation
        resolution = await self.gestures.resolve(ScreenPoint(*screen_point))
        if resolution is None:
            return
        if not self._still_current(generation, "long press resolution"):
            return

        if resolution.kind == "empty":
            pending = PendingPlacement(resolution.coordinate)
            self.state.transition(pending, "long press on empty map")
            pending.timer = self.gestures.arm(
                resolution.coordinate,
                functools.partial(self._run_placement, self.state.generation),
            )
            return

        handle = resolution.handle
        original = Coordinate(*handle.geometry)
        self.state.transition(
            SelectionMenu(handle, original), f"long press on marker {handle.id}"
        )
        logger.info("Original point stored: %s for %s", tuple(original), handle.id)
        self.callbacks.marker_long_pressed(handle, original)

    def cancel_pending_placement(self) -> bool:
        """Abort a press on empty map before its placement dialog appears."""
        if not isinstance(self.state.mode, PendingPlacement):
            return False
        self.state.reset("long press cancelled")
        return True

    # ------------------------------------------------------------------ create
    async def _run_placement(self, generation: int) -> None:
        mode = self.state.mode
        if not self.state.is_current(generation) or not isinstance(mode, PendingPlacement):
            logger.warning("Placement timer fired after the mode changed; no dialog shown")
            return

        try:
            await self._place(mode, generation)
        except AnnotationError as exc:
            logger.error(
                "Creating annotation at %s failed: %s", tuple(mode.pending_point), exc
            )
        finally:
            # Dialog failures propagate, but never leave the mode pending
            if self.state.is_current(generation):
                self.state.reset("placement finished")

    async def _place(self, mode: PendingPlacement, generation: int) -> None:
        logger.info("Showing placement dialog for %s", tuple(mode.pending_point))
        result = await self.dialogs.show_placement_dialog()
        if not self._still_current(generation, "placement dialog"):
            return
        if result is None:
            logger.info("User closed the placement dialog - no annotation added")
            return

        logger.info(
            "Placement dialog returned title=%r icon=%r date=%r end_date=%r quick_save=%s",
            result.title,
            result.icon,
            result.date,
            result.end_date,
            result.quick_save,
        )
        if not result.quick_save:
            form = await self.dialogs.show_annotation_form(
                title=result.title or "",
                icon_name=result.icon or self.config.default_icon,
                date=result.date or "",
                note=result.note or "",
            )
            if not self._still_current(generation, "annotation form"):
                return
            if form is None:
                logger.info("User closed the annotation form - no annotation added")
                return
            result = _merge_results(result, form)

        await self._create_annotation(mode.pending_point, result, generation)

    async def _create_annotation(
        self, point: Coordinate, result: DialogResult, generation: int
    ) -> MapHandle | None:
        icon_name = result.icon or self.config.default_icon
        # Load assets first: a missing icon must not leave a half-created annotation
        icon = await self.icons.load_icon(icon_name)
        if not self._still_current(generation, "create: icon load"):
            return None

        record = AnnotationRecord(
            storage_id=self._id_factory(),
            latitude=float(point.latitude),
            longitude=float(point.longitude),
            title=result.title or None,
            icon_name=icon_name,
            start_date=result.date or None,
            end_date=result.end_date or None,
            note=result.note or None,
            image_path=result.image_path or None,
        )
        handle = await self.map.add_marker(point, icon, record.label())
        logger.info("Marker %s added at %s", handle.id, tuple(point))
        if not self._still_current(generation, "create: add marker"):
            await self.map.remove_marker(handle)
            return None

        try:
            await self.repository.add(record)
        except StorageIOError:
            logger.error(
                "Saving annotation %s failed; removing marker %s",
                record.storage_id,
                handle.id,
            )
            await self.map.remove_marker(handle)
            raise
        self.linker.register(handle.id, record.storage_id)
        logger.info(
            "Annotation %s saved and linked to marker %s", record.storage_id, handle.id
        )
        return handle

    # ------------------------------------------------------------------ edit
    async def press_edit(self) -> MapHandle | None:
        """Run the edit workflow for the selected marker.

        Returns
        -------
        MapHandle or None
            Handle of the recreated marker, or None if nothing changed.

        """
        mode = self.state.mode
        if not isinstance(mode, SelectionMenu):
            self._ignore("Edit")
            return None
        generation = self.state.generation
        handle = mode.selected
        logger.info("Attempting to edit annotation with marker id %s", handle.id)
        try:
            return await self._run_edit(handle, generation)
        except (LinkNotFound, RecordNotFound) as exc:
            logger.warning("Edit of marker %s aborted: %s", handle.id, exc)
        except (StorageIOError, AssetLoadError) as exc:
            logger.error("Edit of marker %s failed: %s", handle.id, exc)
        finally:
            if self.state.is_current(generation):
                self.state.reset("edit finished")
        return None

    async def _run_edit(self, handle: MapHandle, generation: int) -> MapHandle | None:
        storage_id = self._require_link(handle, "edit")
        record = await self._load_record(storage_id, "edit")
        if not self._still_current(generation, "edit: load record"):
            return None

        result = await self.dialogs.show_annotation_form(
            title=record.title or "",
            icon_name=record.icon_name or self.config.fallback_icon,
            date=record.start_date or "",
            note=record.note or "",
        )
        if not self._still_current(generation, "edit: form"):
            return None
        if result is None:
            logger.info("User cancelled edit of annotation %s", storage_id)
            return None

        updated = record.with_form_result(result)
        icon = await self.icons.load_icon(updated.icon_name or self.config.fallback_icon)
        if not self._still_current(generation, "edit: icon load"):
            return None

        await self.repository.update(updated)
        logger.info("Annotation %s updated in storage", storage_id)

        # Swap the marker: old marker and link go before the new ones exist
        await self.map.remove_marker(handle)
        self.linker.remove(handle.id)
        new_handle = await self.map.add_marker(updated.coordinate, icon, updated.label())
        self.linker.register(new_handle.id, storage_id)
        logger.info(
            "Annotation %s visually updated: marker %s replaced by %s",
            storage_id,
            handle.id,
            new_handle.id,
        )
        return new_handle

    # ------------------------------------------------------------------ move
    def press_move(self) -> bool:
        """Enter Move mode for the selected marker."""
        mode = self.state.mode
        if not isinstance(mode, SelectionMenu):
            self._ignore("Move")
            return False
        self.state.transition(
            Move(mode.selected, mode.original_geometry),
            f"move pressed for marker {mode.selected.id}",
        )
        return True

    async def press_lock(self) -> bool:
        """Persist the dragged position and leave Move mode.

        A marker that never moved is not written (no-op short circuit).

        Returns
        -------
        bool
            True if Move mode ended normally (saved or nothing to save).

        """
        mode = self.state.mode
        if not isinstance(mode, Move):
            self._ignore("Lock")
            return False
        if self._lock_in_flight:
            self._ignore("Lock while saving")
            return False
        generation = self.state.generation
        handle = mode.selected

        if not mode.has_moved or mode.current_geometry is None:
            logger.info("Marker %s was not moved; nothing to save", handle.id)
            self.state.reset("lock pressed without movement")
            return True

        self._lock_in_flight = True
        try:
            return await self._commit_move(mode, generation)
        finally:
            self._lock_in_flight = False

    async def _commit_move(self, mode: Move, generation: int) -> bool:
        handle = mode.selected
        new_location = mode.current_geometry
        logger.info("Finishing move of marker %s to %s", handle.id, tuple(new_location))
        try:
            storage_id = self._require_link(handle, "move")
            record = await self._load_record(storage_id, "move")
            if not self._still_current(generation, "move: load record"):
                return False
            await self.repository.update(record.moved_to(new_location))
        except (LinkNotFound, RecordNotFound) as exc:
            logger.warning("Move of marker %s aborted: %s", handle.id, exc)
            await self._revert_after_failure(
                generation, handle, mode.original_geometry, "move aborted"
            )
            return False
        except StorageIOError as exc:
            logger.error("Saving moved marker %s failed: %s", handle.id, exc)
            await self._revert_after_failure(
                generation, handle, mode.original_geometry, "move failed"
            )
            return False

        logger.info("Updated lat/lng of annotation %s in storage", storage_id)
        if not self.state.is_current(generation):
            return True
        self.state.reset("move locked")
        if mode.current_geometry != new_location:
            # A drag that was already running landed during the save
            logger.warning(
                "Marker %s moved while saving; restoring saved position %s",
                handle.id,
                tuple(new_location),
            )
            await self.map.update_visual_position(handle, new_location)
        return True

    # ------------------------------------------------------------------ drag
    async def on_drag_update(self, screen_point: ScreenPoint) -> None:
        """Follow the pointer with the active marker (visual only)."""
        mode = self.state.mode
        if not isinstance(mode, (Move, SelectionMenu, DragToDelete)):
            self._ignore("Drag update")
            return
        point = ScreenPoint(*screen_point)
        if isinstance(mode, Move) and self._lock_in_flight:
            logger.debug("Dropping drag update at %s: position is being saved", point)
            return
        if isinstance(mode, (Move, DragToDelete)):
            mode.last_screen_point = point
        if self._drag_in_flight:
            logger.debug("Dropping drag update at %s: previous one still running", point)
            return

        self._drag_in_flight = True
        try:
            if isinstance(mode, SelectionMenu):
                mode = DragToDelete(mode.selected, mode.original_geometry, point)
                self.state.transition(mode, f"drag started on marker {mode.selected.id}")
            generation = self.state.generation

            try:
                coordinate = await self.map.coordinate_for_pixel(point)
            except CoordinateConversionFailed as exc:
                logger.warning("Drag update at %s ignored: %s", tuple(point), exc)
                return
            if coordinate is None:
                logger.warning("Drag update at %s ignored: no map coordinate", tuple(point))
                return
            if not self._still_current(generation, "drag update"):
                return

            coordinate = Coordinate(*coordinate)
            await self.map.update_visual_position(mode.selected, coordinate)
            if isinstance(mode, Move) and self.state.is_current(generation):
                mode.current_geometry = coordinate
            self.callbacks.marker_dragged(mode.selected)
        finally:
            self._drag_in_flight = False

    async def on_drag_end(self) -> None:
        """Finish a drag: delete if dropped on the trash zone."""
        mode = self.state.mode
        if not isinstance(mode, (Move, DragToDelete)):
            self._ignore("Drag end")
            return
        if isinstance(mode, Move) and self._lock_in_flight:
            self._ignore("Drag end while saving")
            return
        logger.info("Ending drag of marker %s", mode.selected.id)

        if is_over_trash_zone(mode.last_screen_point, self.config.trash_zone):
            await self._run_delete(mode)
        elif isinstance(mode, DragToDelete):
            self.state.transition(
                SelectionMenu(mode.selected, mode.original_geometry),
                "drag ended outside trash zone",
            )
            await self._revert(mode.selected, mode.original_geometry)
        else:
            logger.info("Drag ended; staying in move mode until locked or cancelled")
        self.callbacks.drag_ended()

    # ------------------------------------------------------------------ delete
    async def _run_delete(self, mode: Move | DragToDelete) -> bool:
        generation = self.state.generation
        handle = mode.selected
        logger.info("Marker %s dropped over trash zone; asking for confirmation", handle.id)

        confirmed = await self.dialogs.confirm_removal()
        if not self._still_current(generation, "delete: confirmation"):
            return False
        if confirmed is not True:
            logger.info("Removal of marker %s declined", handle.id)
            self.state.reset("removal declined")
            await self._revert(handle, mode.original_geometry)
            return False

        storage_id = self.linker.lookup_storage_id(handle.id)
        if storage_id is None:
            logger.warning(
                "Marker %s has no storage link; removing the marker only", handle.id
            )
        else:
            try:
                await self.repository.delete(storage_id)
            except RecordNotFound as exc:
                logger.warning(
                    "Annotation %s (marker %s) was already gone from storage: %s",
                    storage_id,
                    handle.id,
                    exc,
                )
            except StorageIOError as exc:
                logger.error(
                    "Deleting annotation %s (marker %s) failed: %s",
                    storage_id,
                    handle.id,
                    exc,
                )
                await self._revert_after_failure(
                    generation, handle, mode.original_geometry, "delete failed"
                )
                return False

        # Storage is committed; finish the removal even if the mode moved on
        await self.map.remove_marker(handle)
        self.linker.remove(handle.id)
        if storage_id is not None:
            self.connections.remove_annotation(storage_id)
        logger.info("Removed marker %s (storage id %s)", handle.id, storage_id)
        if self.state.is_current(generation):
            self.state.reset("annotation removed")
        self.callbacks.marker_removed()
        return True

    # ------------------------------------------------------------------ connect
    def press_connect(self) -> bool:
        mode = self.state.mode
        if not isinstance(mode, SelectionMenu):
            self._ignore("Connect")
            return False
        return self.start_connect(mode.selected)

    def start_connect(self, first: MapHandle) -> bool:
        """Remember the first marker and wait for the second one."""
        if not isinstance(self.state.mode, (Idle, SelectionMenu)):
            self._ignore("Start connect")
            return False
        self.state.transition(Connect(first), f"connect started on marker {first.id}")
        return True

    def finish_connect(self, second: MapHandle) -> bool:
        """Connect the remembered marker with ``second`` and return to Idle.

        Returns
        -------
        bool
            True if a new relationship was recorded.

        """
        mode = self.state.mode
        if not isinstance(mode, Connect):
            logger.warning(
                "finish_connect called for marker %s but not in connect mode", second.id
            )
            return False
        if second.id == mode.first.id:
            logger.warning(
                "Marker %s is the first marker of this connection; tap another one",
                second.id,
            )
            return False

        logger.info("Connecting marker %s with %s", mode.first.id, second.id)
        first_id = self.linker.lookup_storage_id(mode.first.id)
        second_id = self.linker.lookup_storage_id(second.id)
        self.state.reset("connect finished")
        self.callbacks.connect_mode_disabled()
        if first_id is None or second_id is None:
            logger.warning(
                "Connect aborted: no storage link for marker %s",
                mode.first.id if first_id is None else second.id,
            )
            return False
        return self.connections.connect(first_id, second_id)

    def cancel_connect(self) -> bool:
        if not isinstance(self.state.mode, Connect):
            self._ignore("Cancel connect")
            return False
        self.state.reset("connect cancelled")
        self.callbacks.connect_mode_disabled()
        return True

    # ------------------------------------------------------------------ taps / cancel
    async def on_marker_tapped(self, handle: MapHandle) -> None:
        """Marker tap: completes a connection, or shows the details in Idle."""
        mode = self.state.mode
        if isinstance(mode, Connect):
            self.finish_connect(handle)
            return
        if not isinstance(mode, Idle):
            self._ignore(f"Tap on marker {handle.id}")
            return

        logger.info("Annotation tapped: %s", handle.id)
        try:
            storage_id = self._require_link(handle, "details")
            record = await self._load_record(storage_id, "details")
        except (LinkNotFound, RecordNotFound) as exc:
            logger.warning("Cannot show details for marker %s: %s", handle.id, exc)
            return
        await self.dialogs.show_details(record)

    async def press_cancel(self) -> None:
        """Leave the current mode without side effects, reverting drags."""
        mode = self.state.mode
        if isinstance(mode, Idle):
            logger.debug("Cancel pressed while idle")
        elif isinstance(mode, Connect):
            self.cancel_connect()
        elif isinstance(mode, (Move, DragToDelete)):
            self.state.reset(f"{mode.name} cancelled")
            await self._revert(mode.selected, mode.original_geometry)
        else:
            self.state.reset(f"{mode.name} cancelled")

    # ------------------------------------------------------------------ startup
    async def load_annotations(self) -> list[MapHandle]:
        """Create markers for all stored annotations and link them.

        Records that are already linked are skipped. A record whose icon
        cannot be loaded is skipped with an error; the others still load.

        Raises
        ------
        StorageIOError
            If the repository cannot be read.

        """
        try:
            records = await self.repository.get_all()
        except StorageIOError as exc:
            logger.error("Loading annotations from storage failed: %s", exc)
            raise

        handles: list[MapHandle] = []
        for record in records:
            if self.linker.lookup_map_handle_id(record.storage_id) is not None:
                continue
            try:
                icon = await self.icons.load_icon(
                    record.icon_name or self.config.fallback_icon
                )
            except AssetLoadError as exc:
                logger.error("Skipping annotation %s: %s", record.storage_id, exc)
                continue
            handle = await self.map.add_marker(record.coordinate, icon, record.label())
            self.linker.register(handle.id, record.storage_id)
            handles.append(handle)
        logger.info("Loaded %d of %d stored annotations", len(handles), len(records))
        return handles
