"""Protocol definitions for the collaborators of the interaction core.

The controller only talks to the map engine, the repository, the dialogs and
the icon assets through these narrow interfaces. It never inspects
collaborator-internal types, so any object with matching coroutine methods
can be plugged in (a real map SDK binding, a headless fake in tests, ...).

All methods are coroutines: each call is a suspension point at which other
UI events may interleave.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from mapnotes.annotation._types import (
        AnnotationRecord,
        Coordinate,
        DialogResult,
        MapHandle,
        ScreenPoint,
    )


class MapAnnotations(Protocol):
    """Marker drawing and hit testing provided by the map-rendering engine."""

    async def add_marker(
        self, coordinate: Coordinate, icon: bytes, label: str
    ) -> MapHandle:
        """Draw a new marker and return its (fresh) handle."""
        ...

    async def remove_marker(self, handle: MapHandle) -> None:
        """Remove a marker from the map; its handle becomes invalid."""
        ...

    async def update_visual_position(
        self, handle: MapHandle, coordinate: Coordinate
    ) -> None:
        """Reposition a marker on screen only. Nothing is persisted."""
        ...

    async def find_nearest_marker(self, coordinate: Coordinate) -> MapHandle | None:
        """Marker closest to a map coordinate, or None if there are none."""
        ...

    async def query_markers_near(self, screen_point: ScreenPoint) -> list[MapHandle]:
        """Markers rendered under a screen pixel (engine hit test)."""
        ...

    async def pixel_for_coordinate(self, coordinate: Coordinate) -> ScreenPoint:
        """Project a map coordinate to screen pixels.

        Raises
        ------
        CoordinateConversionFailed
            If the engine cannot project the coordinate.

        """
        ...

    async def coordinate_for_pixel(self, screen_point: ScreenPoint) -> Coordinate | None:
        """Unproject a screen pixel; None (or CoordinateConversionFailed) on failure."""
        ...


class AnnotationRepository(Protocol):
    """CRUD access to persisted annotation records.

    Implementations raise ``StorageIOError`` for read/write failures.
    """

    async def get_all(self) -> list[AnnotationRecord]: ...

    async def add(self, record: AnnotationRecord) -> None: ...

    async def update(self, record: AnnotationRecord) -> None:
        """Replace the record with the same ``storage_id``."""
        ...

    async def delete(self, storage_id: str) -> None: ...


class AnnotationDialogs(Protocol):
    """Modal dialogs. A ``None`` result always means the user cancelled."""

    async def show_placement_dialog(self) -> DialogResult | None:
        """Initial dialog for a new annotation (title, icon, dates, quick save)."""
        ...

    async def show_annotation_form(
        self,
        *,
        title: str,
        icon_name: str,
        date: str,
        note: str,
    ) -> DialogResult | None:
        """Full annotation form, pre-filled with the given values."""
        ...

    async def confirm_removal(self) -> bool | None:
        """Yes/no question before deleting; None when dismissed."""
        ...

    async def show_details(self, record: AnnotationRecord) -> None:
        """Read-only details view for a tapped annotation."""
        ...


class IconLoader(Protocol):
    """Source of icon image bytes by icon name."""

    async def load_icon(self, icon_name: str) -> bytes:
        """Return icon bytes.

        Raises
        ------
        AssetLoadError
            If the icon does not exist or cannot be read.

        """
        ...
