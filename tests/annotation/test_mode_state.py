"""Tests for the interaction modes and ModeState transitions (no collaborators)."""

from __future__ import annotations

import pytest

from mapnotes.annotation import (
    CancelableDelay,
    Connect,
    Coordinate,
    DragToDelete,
    Idle,
    MapHandle,
    ModeState,
    ModeTransitionError,
    Move,
    PendingPlacement,
    SelectionMenu,
    active_marker,
)

HANDLE = MapHandle("H1", Coordinate(1.0, 2.0))
ORIGIN = Coordinate(1.0, 2.0)


class TestModeState:
    """Tests for ModeState."""

    def test_starts_idle(self) -> None:
        state = ModeState()

        assert isinstance(state.mode, Idle)
        assert state.name == "idle"
        assert state.generation == 0

    def test_transition_bumps_generation(self) -> None:
        """Every transition invalidates previously captured generations."""
        state = ModeState()
        token = state.generation

        old = state.transition(SelectionMenu(HANDLE, ORIGIN), "long press")

        assert isinstance(old, Idle)
        assert state.name == "selection_menu"
        assert not state.is_current(token)
        assert state.is_current(state.generation)

    def test_reset_when_idle_keeps_generation(self) -> None:
        state = ModeState()

        state.reset("nothing to do")

        assert state.generation == 0

    def test_reset_returns_idle(self) -> None:
        state = ModeState()
        state.transition(Connect(HANDLE), "connect")

        assert isinstance(state.reset("cancel"), Idle)
        assert state.generation == 2

    @pytest.mark.parametrize(
        "target",
        [Move(HANDLE, ORIGIN), Connect(HANDLE), DragToDelete(HANDLE, ORIGIN)],
        ids=["move", "connect", "drag_to_delete"],
    )
    def test_guarded_modes_from_menu(self, target) -> None:
        """Move, Connect and DragToDelete may be entered from the menu."""
        state = ModeState()
        state.transition(SelectionMenu(HANDLE, ORIGIN), "long press")

        state.transition(target, "button")

        assert state.mode is target

    @pytest.mark.parametrize(
        "target",
        [Move(HANDLE, ORIGIN), Connect(HANDLE), DragToDelete(HANDLE, ORIGIN)],
        ids=["move", "connect", "drag_to_delete"],
    )
    def test_guarded_modes_from_move_rejected(self, target) -> None:
        """Modes can never combine: no guarded mode starts from Move."""
        state = ModeState()
        state.transition(SelectionMenu(HANDLE, ORIGIN), "long press")
        state.transition(Move(HANDLE, ORIGIN), "move")
        generation = state.generation

        with pytest.raises(ModeTransitionError, match=r"\[E3006\] Cannot enter"):
            state.transition(target, "button")

        assert state.name == "move"
        assert state.generation == generation

    def test_connect_from_pending_placement_rejected(self) -> None:
        state = ModeState()
        state.transition(PendingPlacement(ORIGIN), "long press")

        with pytest.raises(ModeTransitionError):
            state.transition(Connect(HANDLE), "button")

    @pytest.mark.asyncio
    async def test_leaving_pending_placement_cancels_timer(self) -> None:
        """The placement timer cannot fire once its mode is left."""
        fired = []

        async def callback():
            fired.append(True)

        state = ModeState()
        pending = PendingPlacement(ORIGIN)
        state.transition(pending, "long press")
        pending.timer = CancelableDelay(60.0, callback).start()

        state.reset("cancel")
        await pending.timer.wait()

        assert pending.timer.cancelled
        assert fired == []


class TestModes:
    """Tests for per-mode data."""

    def test_move_has_moved(self) -> None:
        move = Move(HANDLE, ORIGIN)
        assert not move.has_moved

        move.current_geometry = ORIGIN
        assert not move.has_moved

        move.current_geometry = Coordinate(5.0, 5.0)
        assert move.has_moved

    def test_active_marker(self) -> None:
        assert active_marker(Idle()) is None
        assert active_marker(PendingPlacement(ORIGIN)) is None
        assert active_marker(SelectionMenu(HANDLE, ORIGIN)) is HANDLE
        assert active_marker(Move(HANDLE, ORIGIN)) is HANDLE
        assert active_marker(DragToDelete(HANDLE, ORIGIN)) is HANDLE
        assert active_marker(Connect(HANDLE)) is HANDLE

    def test_mode_names(self) -> None:
        modes = (Idle, PendingPlacement, SelectionMenu, Move, Connect, DragToDelete)

        assert [mode.name for mode in modes] == [
            "idle",
            "pending_placement",
            "selection_menu",
            "move",
            "connect",
            "drag_to_delete",
        ]
