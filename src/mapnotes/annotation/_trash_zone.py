"""Screen-space deletion zone hit testing.

The trash zone is a fixed region of the screen; dropping a dragged marker
onto it starts the delete-confirmation workflow. The hit test is a pure
function of the zone and one screen point and is evaluated only when a drag
ends, never on every drag update.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from shapely.geometry import Point, box

if TYPE_CHECKING:
    from shapely.geometry.base import BaseGeometry

    from mapnotes.annotation._types import ScreenPoint

ZoneShape = Literal["rectangle", "circle"]


@dataclass(frozen=True)
class TrashZone:
    """Rectangular or circular deletion zone in screen pixels.

    Prefer the ``rectangle``, ``circle`` and ``bottom_center`` constructors
    over calling the class directly.

    Parameters
    ----------
    shape : {"rectangle", "circle"}
        Zone geometry.
    bounds : tuple of float
        ``(min_x, min_y, max_x, max_y)`` for rectangles,
        ``(center_x, center_y, radius)`` for circles.

    Examples
    --------
    >>> zone = TrashZone.rectangle(0.0, 0.0, 50.0, 50.0)
    >>> zone.contains((10.0, 10.0))
    True
    >>> zone.contains((60.0, 10.0))
    False
    >>> TrashZone.circle(100.0, 100.0, 10.0).contains((105.0, 100.0))
    True

    """

    shape: ZoneShape
    bounds: tuple[float, ...]
    _geometry: BaseGeometry = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.shape == "rectangle":
            if len(self.bounds) != 4:
                raise ValueError(
                    f"[E3101] Rectangle trash zone needs 4 bounds, got {self.bounds}"
                )
            min_x, min_y, max_x, max_y = self.bounds
            if max_x <= min_x or max_y <= min_y:
                raise ValueError(
                    f"[E3101] Rectangle trash zone must have positive size, "
                    f"got bounds {self.bounds}"
                )
            geometry = box(min_x, min_y, max_x, max_y)
        elif self.shape == "circle":
            if len(self.bounds) != 3:
                raise ValueError(
                    f"[E3101] Circular trash zone needs (cx, cy, radius), "
                    f"got {self.bounds}"
                )
            if self.bounds[2] <= 0:
                raise ValueError(
                    f"[E3101] Trash zone radius must be positive, got {self.bounds[2]}"
                )
            geometry = Point(self.bounds[0], self.bounds[1])
        else:
            raise ValueError(f"[E3101] Unknown trash zone shape: {self.shape!r}")
        # Frozen dataclass: bypass __setattr__ for the derived geometry
        object.__setattr__(self, "_geometry", geometry)

    @classmethod
    def rectangle(cls, x: float, y: float, width: float, height: float) -> TrashZone:
        """Zone covering ``[x, x + width] x [y, y + height]``."""
        return cls("rectangle", (float(x), float(y), float(x + width), float(y + height)))

    @classmethod
    def circle(cls, center_x: float, center_y: float, radius: float) -> TrashZone:
        """Zone covering every point within ``radius`` of the center."""
        return cls("circle", (float(center_x), float(center_y), float(radius)))

    @classmethod
    def bottom_center(
        cls,
        screen_width: float,
        screen_height: float,
        size: float = 72.0,
        margin: float = 24.0,
    ) -> TrashZone:
        """Square zone centered horizontally, ``margin`` pixels above the bottom.

        Parameters
        ----------
        screen_width, screen_height : float
            Size of the map view in pixels.
        size : float, default=72.0
            Side length of the square zone.
        margin : float, default=24.0
            Gap between the zone and the bottom edge of the screen.

        """
        x = (screen_width - size) / 2.0
        y = screen_height - margin - size
        return cls.rectangle(x, y, size, size)

    def contains(self, point: ScreenPoint | tuple[float, float]) -> bool:
        """Whether a screen point falls inside the zone (boundary inclusive)."""
        candidate = Point(float(point[0]), float(point[1]))
        if self.shape == "circle":
            return bool(self._geometry.distance(candidate) <= self.bounds[2])
        return bool(self._geometry.covers(candidate))


def is_over_trash_zone(
    point: ScreenPoint | tuple[float, float] | None, zone: TrashZone
) -> bool:
    """Hit test that treats a missing point as outside the zone.

    Parameters
    ----------
    point : ScreenPoint or None
        Last screen position of a drag, or None if the drag never moved.
    zone : TrashZone
        The deletion zone.

    Returns
    -------
    bool
        True if ``point`` is set and inside ``zone``.

    """
    if point is None:
        return False
    return zone.contains(point)
