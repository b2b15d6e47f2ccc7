"""Type definitions for the annotation interaction core."""

from __future__ import annotations

import math
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Any, Literal, NamedTuple

from mapnotes.annotation._trash_zone import TrashZone

# ModeName: Which interaction mode the controller is in
# - "idle": Nothing selected, gestures start new workflows
# - "pending_placement": Long press on empty map, waiting for the placement dialog
# - "selection_menu": Menu shown for a long-pressed marker
# - "move": Marker follows drag updates until locked or cancelled
# - "connect": Waiting for a second marker tap
# - "drag_to_delete": Selected marker is being dragged toward the trash zone
ModeName = Literal[
    "idle",
    "pending_placement",
    "selection_menu",
    "move",
    "connect",
    "drag_to_delete",
]


class Coordinate(NamedTuple):
    """Map coordinate in degrees, longitude first like GeoJSON."""

    longitude: float
    latitude: float


class ScreenPoint(NamedTuple):
    """Position on screen in pixels."""

    x: float
    y: float


def new_storage_id() -> str:
    """Generate a fresh storage id (random UUID4 string)."""
    return str(uuid.uuid4())


@dataclass
class MapHandle:
    """Ephemeral reference to a visual marker, owned by the map engine.

    The id is only valid until the marker is removed or recreated. Editing an
    annotation recreates its marker, so callers must never keep a handle id
    beyond one marker lifetime; resolve the durable storage id through the
    identity linker instead.

    Attributes
    ----------
    id : str
        Engine-assigned marker id.
    geometry : Coordinate
        Current map position of the marker.
    label : str
        Text drawn next to the icon.
    icon : bytes
        Icon image bytes.

    """

    id: str
    geometry: Coordinate
    label: str = ""
    icon: bytes = field(default=b"", repr=False)


@dataclass(frozen=True)
class AnnotationRecord:
    """Durable annotation as persisted by the repository.

    ``storage_id`` identifies the logical annotation for its whole lifetime,
    no matter how often its marker is recreated.

    Examples
    --------
    >>> record = AnnotationRecord("a1", latitude=20.0, longitude=10.0, title="Camp")
    >>> record.coordinate
    Coordinate(longitude=10.0, latitude=20.0)
    >>> record.moved_to(Coordinate(11.0, 21.0)).latitude
    21.0

    """

    storage_id: str
    latitude: float
    longitude: float
    title: str | None = None
    icon_name: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    note: str | None = None
    image_path: str | None = None

    def __post_init__(self) -> None:
        if not self.storage_id:
            raise ValueError("[E3102] AnnotationRecord requires a non-empty storage_id")
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            raise ValueError(
                f"[E3102] Non-finite coordinates for {self.storage_id}: "
                f"lat={self.latitude}, lng={self.longitude}"
            )

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(float(self.longitude), float(self.latitude))

    def label(self) -> str:
        """Marker label: title, plus the start date on its own line."""
        title = self.title or ""
        if self.start_date:
            return f"{title}\n{self.start_date}" if title else self.start_date
        return title

    def moved_to(self, coordinate: Coordinate) -> AnnotationRecord:
        """Copy with a new position and every other field preserved."""
        return replace(
            self,
            latitude=float(coordinate.latitude),
            longitude=float(coordinate.longitude),
        )

    def with_form_result(self, result: DialogResult) -> AnnotationRecord:
        """Copy updated from an edit form result.

        Fields the form did not return (``None``) keep their stored value.
        Returned empty strings clear the text fields, except ``image_path``
        where an empty value keeps the existing image.
        """
        updates: dict[str, Any] = {}
        for attr, value in (
            ("title", result.title),
            ("icon_name", result.icon),
            ("start_date", result.date),
            ("end_date", result.end_date),
            ("note", result.note),
        ):
            if value is not None:
                updates[attr] = value or None
        if result.image_path:
            updates["image_path"] = result.image_path
        return replace(self, **updates)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AnnotationRecord:
        """Build a record from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {key: value for key, value in data.items() if key in known}
        kwargs["latitude"] = float(kwargs["latitude"])
        kwargs["longitude"] = float(kwargs["longitude"])
        return cls(**kwargs)


# Dialog keys as produced by the form widgets (camelCase) mapped to fields
_DIALOG_KEYS: dict[str, str] = {
    "title": "title",
    "icon": "icon",
    "date": "date",
    "endDate": "end_date",
    "end_date": "end_date",
    "note": "note",
    "imagePath": "image_path",
    "image_path": "image_path",
    "quickSave": "quick_save",
    "quick_save": "quick_save",
}


@dataclass(frozen=True)
class DialogResult:
    """Values returned by a placement or annotation form dialog.

    ``None`` means the dialog did not return that field. A cancelled dialog
    is represented by the dialog returning ``None`` instead of a result.
    """

    title: str | None = None
    icon: str | None = None
    date: str | None = None
    end_date: str | None = None
    note: str | None = None
    image_path: str | None = None
    quick_save: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> DialogResult:
        """Parse the plain mapping returned by a dialog widget.

        Examples
        --------
        >>> DialogResult.from_mapping({"title": "Camp", "quickSave": True})
        DialogResult(title='Camp', icon=None, date=None, end_date=None, note=None, image_path=None, quick_save=True)

        """
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _DIALOG_KEYS.get(key)
            if name is None:
                continue
            kwargs[name] = bool(value) if name == "quick_save" else value
        return cls(**kwargs)


def _noop(*_args: Any) -> None:
    return None


@dataclass
class PresentationCallbacks:
    """Outputs of the core that the UI layer subscribes to.

    Every callback defaults to a no-op so a presentation layer only wires the
    ones it renders.
    """

    marker_long_pressed: Callable[[MapHandle, Coordinate], None] = _noop
    marker_dragged: Callable[[MapHandle], None] = _noop
    drag_ended: Callable[[], None] = _noop
    marker_removed: Callable[[], None] = _noop
    connect_mode_disabled: Callable[[], None] = _noop


def _default_trash_zone() -> TrashZone:
    return TrashZone.rectangle(0.0, 0.0, 72.0, 72.0)


@dataclass(frozen=True)
class InteractionConfig:
    """
    Configuration for the interaction controller.

    All fields have defaults, so ``InteractionConfig()`` is a working setup
    apart from the trash zone, which usually depends on the screen size
    (see ``TrashZone.bottom_center``).

    Parameters
    ----------
    placement_delay : float
        Seconds between a long press on empty map and the placement dialog.
        Gives the engine's feature query time to settle so quick taps meant
        for selection do not open a creation dialog. Default is 0.4.
    trash_zone : TrashZone
        Screen region that triggers deletion when a drag ends inside it.
        Default is a 72x72 px square at the screen origin.
    default_icon : str
        Icon used when the placement dialog does not return one.
        Default is "mapbox-check".
    fallback_icon : str
        Icon used for stored records without an icon name. Default is "cross".

    Examples
    --------
    >>> config = InteractionConfig(placement_delay=0.25)
    >>> config.placement_delay
    0.25

    """

    placement_delay: float = 0.4
    trash_zone: TrashZone = field(default_factory=_default_trash_zone)
    default_icon: str = "mapbox-check"
    fallback_icon: str = "cross"

    def __post_init__(self) -> None:
        if not (math.isfinite(self.placement_delay) and self.placement_delay >= 0):
            raise ValueError(
                f"[E3103] placement_delay must be a finite number >= 0, "
                f"got {self.placement_delay}"
            )
        if not self.default_icon or not self.fallback_icon:
            raise ValueError("[E3103] default_icon and fallback_icon must be non-empty")
