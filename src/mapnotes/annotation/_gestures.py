"""Long-press disambiguation: create a new annotation or select an existing one.

A long press is resolved against the markers the map engine reports under the
pressed pixel. Presses on empty map go through a short cancelable delay before
the placement dialog opens; the engine's feature query and the dialog flow are
both asynchronous and a quick tap meant for selection must not race into a
creation dialog. Presses on a marker resolve immediately.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Literal, NamedTuple

import numpy as np

from mapnotes.annotation._timer import CancelableDelay
from mapnotes.annotation._types import Coordinate
from mapnotes.annotation.errors import CoordinateConversionFailed

if TYPE_CHECKING:
    from mapnotes.annotation._protocols import MapAnnotations
    from mapnotes.annotation._types import MapHandle, ScreenPoint

logger = logging.getLogger(__name__)

PressKind = Literal["empty", "marker"]


class PressResolution(NamedTuple):
    """Outcome of a resolved long press.

    Attributes
    ----------
    kind : {"empty", "marker"}
        Whether the press landed on empty map or on a marker.
    coordinate : Coordinate
        Map coordinate of the press.
    handle : MapHandle or None
        Nearest marker under the press when ``kind == "marker"``.

    """

    kind: PressKind
    coordinate: Coordinate
    handle: MapHandle | None = None


def nearest_marker(
    candidates: Sequence[MapHandle], coordinate: Coordinate
) -> MapHandle | None:
    """Pick the candidate closest to a coordinate.

    Distance is euclidean in (longitude, latitude). Exact ties go to the
    candidate listed first.

    Parameters
    ----------
    candidates : sequence of MapHandle
        Markers reported under the press.
    coordinate : Coordinate
        Press position.

    Returns
    -------
    MapHandle or None
        The nearest candidate, or None if there are no candidates.

    """
    if not candidates:
        return None
    positions = np.asarray([handle.geometry for handle in candidates], dtype=np.float64)
    deltas = positions - np.asarray(coordinate, dtype=np.float64)
    distances = np.hypot(deltas[:, 0], deltas[:, 1])
    return candidates[int(np.argmin(distances))]


class GestureDisambiguator:
    """Turn raw long presses into "create" or "select" decisions.

    Parameters
    ----------
    map_annotations : MapAnnotations
        Engine used for the feature query and pixel conversion.
    delay : float
        Seconds between a press on empty map and the placement callback.

    Attributes
    ----------
    last_press_point : Coordinate or None
        Map coordinate of the most recent resolved press.
    on_existing_marker : bool
        Whether the most recent resolved press landed on a marker.

    """

    def __init__(self, map_annotations: MapAnnotations, *, delay: float) -> None:
        self._map = map_annotations
        self.delay = delay
        self.last_press_point: Coordinate | None = None
        self.on_existing_marker = False
        self._timer: CancelableDelay | None = None

    @property
    def timer(self) -> CancelableDelay | None:
        return self._timer

    async def resolve(self, screen_point: ScreenPoint) -> PressResolution | None:
        """Resolve a long press at a screen pixel.

        Returns
        -------
        PressResolution or None
            None if the pixel could not be converted to a map coordinate;
            the press is then ignored.

        """
        candidates = await self._map.query_markers_near(screen_point)
        logger.debug("Markers under %s: %d", tuple(screen_point), len(candidates))
        try:
            press_point = await self._map.coordinate_for_pixel(screen_point)
        except CoordinateConversionFailed as exc:
            logger.warning("Long press at %s ignored: %s", tuple(screen_point), exc)
            return None
        if press_point is None:
            logger.warning(
                "Long press at %s ignored: could not convert screen coordinate "
                "to map coordinate",
                tuple(screen_point),
            )
            return None

        press_point = Coordinate(*press_point)
        self.last_press_point = press_point
        self.on_existing_marker = bool(candidates)

        if not candidates:
            logger.info("Long press on empty map at %s", tuple(press_point))
            return PressResolution("empty", press_point)

        handle = nearest_marker(candidates, press_point)
        logger.info("Long press on existing marker %s", handle.id)
        return PressResolution("marker", press_point, handle)

    def arm(
        self,
        coordinate: Coordinate,
        callback: Callable[[], Awaitable[None]],
    ) -> CancelableDelay:
        """Start the placement delay for a press on empty map.

        Any previously armed, still pending delay is cancelled first so at
        most one placement callback can follow a press.
        """
        self.cancel_pending()
        logger.info(
            "Starting placement timer (%.3f s) for annotation at %s",
            self.delay,
            tuple(coordinate),
        )
        self._timer = CancelableDelay(self.delay, callback, name="placement-timer").start()
        return self._timer

    def cancel_pending(self) -> bool:
        """Cancel the placement delay if it has not fired yet."""
        if self._timer is None:
            return False
        return self._timer.cancel()

    def reset(self) -> None:
        """Cancel any pending delay and forget the last press."""
        self.cancel_pending()
        self._timer = None
        self.last_press_point = None
        self.on_existing_marker = False
