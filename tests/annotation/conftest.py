"""Headless collaborators for the annotation interaction tests.

Every fake records the calls it receives in ``calls`` as ``(name, *args)``
tuples so tests can assert on ordering. Suspension points can be held open
with an ``asyncio.Event`` gate to interleave events deterministically.
"""

from __future__ import annotations

import asyncio
import itertools
from types import SimpleNamespace

import pytest

from mapnotes.annotation import (
    AnnotationRecord,
    AssetLoadError,
    Coordinate,
    CoordinateConversionFailed,
    InteractionConfig,
    InteractionFacade,
    MapHandle,
    PresentationCallbacks,
    RecordNotFound,
    ScreenPoint,
    StorageIOError,
    TrashZone,
    nearest_marker,
)


class FakeMap:
    """Map engine where screen pixels and map coordinates are identical."""

    def __init__(self) -> None:
        self.markers: dict[str, MapHandle] = {}
        self.hits: dict[tuple[float, float], list[str]] = {}
        self.calls: list[tuple] = []
        self.unconvertible: set[tuple[float, float]] = set()
        self.broken_pixels: set[tuple[float, float]] = set()
        self.conversion_gate: asyncio.Event | None = None
        self._ids = itertools.count(1)

    def hit(self, screen_point, *handles: MapHandle) -> None:
        """Make the engine report ``handles`` under ``screen_point``."""
        self.hits[tuple(screen_point)] = [handle.id for handle in handles]

    def calls_named(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    async def add_marker(self, coordinate, icon, label):
        handle = MapHandle(f"H{next(self._ids)}", Coordinate(*coordinate), label, icon)
        self.markers[handle.id] = handle
        self.calls.append(("add_marker", Coordinate(*coordinate), icon, label))
        return handle

    async def remove_marker(self, handle):
        self.markers.pop(handle.id, None)
        self.calls.append(("remove_marker", handle.id))

    async def update_visual_position(self, handle, coordinate):
        handle.geometry = Coordinate(*coordinate)
        self.calls.append(("update_visual_position", handle.id, Coordinate(*coordinate)))

    async def find_nearest_marker(self, coordinate):
        return nearest_marker(list(self.markers.values()), coordinate)

    async def query_markers_near(self, screen_point):
        ids = self.hits.get(tuple(screen_point), [])
        return [self.markers[i] for i in ids if i in self.markers]

    async def pixel_for_coordinate(self, coordinate):
        return ScreenPoint(coordinate[0], coordinate[1])

    async def coordinate_for_pixel(self, screen_point):
        self.calls.append(("coordinate_for_pixel", tuple(screen_point)))
        if self.conversion_gate is not None:
            await self.conversion_gate.wait()
        key = tuple(screen_point)
        if key in self.broken_pixels:
            raise CoordinateConversionFailed(f"cannot unproject {key}")
        if key in self.unconvertible:
            return None
        return Coordinate(float(screen_point[0]), float(screen_point[1]))


class FakeRepository:
    """In-memory repository; ``fail_on`` names methods that raise StorageIOError.

    ``waiting`` lists the calls that reached the repository, including those
    still held at the gate. Deleting an unknown id raises RecordNotFound.
    """

    def __init__(self, records=()) -> None:
        self.records: dict[str, AnnotationRecord] = {r.storage_id: r for r in records}
        self.calls: list[tuple] = []
        self.fail_on: set[str] = set()
        self.gate: asyncio.Event | None = None
        self.waiting: list[str] = []

    def calls_named(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    @property
    def writes(self) -> list[tuple]:
        return [call for call in self.calls if call[0] in ("add", "update", "delete")]

    async def _enter(self, name: str, *args) -> None:
        self.waiting.append(name)
        if self.gate is not None:
            await self.gate.wait()
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise StorageIOError(f"{name} failed")

    async def get_all(self):
        await self._enter("get_all")
        return list(self.records.values())

    async def add(self, record):
        await self._enter("add", record)
        self.records[record.storage_id] = record

    async def update(self, record):
        await self._enter("update", record)
        if record.storage_id not in self.records:
            raise RecordNotFound(record.storage_id)
        self.records[record.storage_id] = record

    async def delete(self, storage_id):
        await self._enter("delete", storage_id)
        if storage_id not in self.records:
            raise RecordNotFound(f"Annotation {storage_id} not found")
        del self.records[storage_id]


class FakeDialogs:
    """Dialogs answering with preset results.

    ``placement``, ``form`` and ``confirm`` hold the next answer of each
    dialog. While ``gate`` is set, every dialog stays open until the gate
    is released. Dialogs named in ``fail_on`` raise RuntimeError, like a
    crashing widget.
    """

    def __init__(self) -> None:
        self.placement = None
        self.form = None
        self.confirm = None
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple] = []
        self.details: list[AnnotationRecord] = []
        self.fail_on: set[str] = set()

    async def _wait(self, name: str) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if name in self.fail_on:
            raise RuntimeError(f"{name} dialog crashed")

    async def show_placement_dialog(self):
        self.calls.append(("placement",))
        await self._wait("placement")
        return self.placement

    async def show_annotation_form(self, *, title, icon_name, date, note):
        self.calls.append(
            ("form", {"title": title, "icon_name": icon_name, "date": date, "note": note})
        )
        await self._wait("form")
        return self.form

    async def confirm_removal(self):
        self.calls.append(("confirm",))
        await self._wait("confirm")
        return self.confirm

    async def show_details(self, record):
        self.calls.append(("details", record.storage_id))
        self.details.append(record)


class FakeIcons:
    def __init__(self) -> None:
        self.missing: set[str] = set()
        self.calls: list[str] = []

    async def load_icon(self, icon_name):
        self.calls.append(icon_name)
        if icon_name in self.missing:
            raise AssetLoadError(f"no icon {icon_name!r}")
        return f"icon:{icon_name}".encode()


@pytest.fixture
def fake_map() -> FakeMap:
    return FakeMap()


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def dialogs() -> FakeDialogs:
    return FakeDialogs()


@pytest.fixture
def icons() -> FakeIcons:
    return FakeIcons()


@pytest.fixture
def events() -> list[tuple]:
    """Presentation callback invocations, in order."""
    return []


@pytest.fixture
def callbacks(events) -> PresentationCallbacks:
    return PresentationCallbacks(
        marker_long_pressed=lambda handle, geometry: events.append(
            ("marker_long_pressed", handle.id, geometry)
        ),
        marker_dragged=lambda handle: events.append(("marker_dragged", handle.id)),
        drag_ended=lambda: events.append(("drag_ended",)),
        marker_removed=lambda: events.append(("marker_removed",)),
        connect_mode_disabled=lambda: events.append(("connect_mode_disabled",)),
    )


@pytest.fixture
def config() -> InteractionConfig:
    """Zero placement delay; 72 px trash zone in the screen origin corner."""
    return InteractionConfig(
        placement_delay=0.0, trash_zone=TrashZone.rectangle(0.0, 0.0, 72.0, 72.0)
    )


@pytest.fixture
def facade(fake_map, repository, dialogs, icons, config, callbacks) -> InteractionFacade:
    ids = itertools.count(1)
    return InteractionFacade(
        fake_map,
        repository,
        dialogs,
        icons,
        config=config,
        callbacks=callbacks,
        id_factory=lambda: f"S{next(ids)}",
    )


@pytest.fixture
def make_record():
    """Factory for records placed well away from the trash zone."""

    def _make(storage_id="S-A", longitude=300.0, latitude=300.0, **fields):
        return AnnotationRecord(storage_id, latitude=latitude, longitude=longitude, **fields)

    return _make


@pytest.fixture
def show_stored(facade, repository):
    """Store records and load them as linked markers; returns their handles."""

    async def _show(*records) -> list[MapHandle]:
        for record in records:
            repository.records[record.storage_id] = record
        return await facade.load()

    return _show


@pytest.fixture
def open_menu(facade, fake_map):
    """Long-press a marker so the selection menu opens for it."""

    async def _open(handle: MapHandle) -> None:
        point = ScreenPoint(*handle.geometry)
        fake_map.hit(point, handle)
        await facade.on_long_press_start(point)

    return _open


@pytest.fixture
def wait_for_placement(facade):
    """Let a fired or cancelled placement timer run to completion."""

    async def _wait() -> None:
        timer = facade.controller.gestures.timer
        if timer is not None:
            await timer.wait()

    return _wait


@pytest.fixture(scope="session")
def build_facade():
    """Factory for a facade wired to fresh fakes.

    Session scoped so property-based tests can build one facade per example.
    Returns ``(facade, fakes)`` with fakes in ``map``, ``repository``,
    ``dialogs`` and ``icons`` attributes.
    """

    def _build(config: InteractionConfig | None = None):
        fakes = SimpleNamespace(
            map=FakeMap(),
            repository=FakeRepository(),
            dialogs=FakeDialogs(),
            icons=FakeIcons(),
        )
        ids = itertools.count(1)
        facade = InteractionFacade(
            fakes.map,
            fakes.repository,
            fakes.dialogs,
            fakes.icons,
            config=config or InteractionConfig(placement_delay=0.0),
            id_factory=lambda: f"S{next(ids)}",
        )
        return facade, fakes

    return _build
