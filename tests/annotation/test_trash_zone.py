"""Tests for TrashZone hit testing."""

from __future__ import annotations

import pytest

from mapnotes.annotation import ScreenPoint, TrashZone, is_over_trash_zone


class TestRectangle:
    """Tests for rectangular zones."""

    def test_inside(self) -> None:
        zone = TrashZone.rectangle(100.0, 200.0, 50.0, 40.0)

        assert zone.contains(ScreenPoint(120.0, 220.0))

    def test_boundary_is_inside(self) -> None:
        """Points on the edge and corners count as inside."""
        zone = TrashZone.rectangle(100.0, 200.0, 50.0, 40.0)

        assert zone.contains((100.0, 200.0))
        assert zone.contains((150.0, 240.0))
        assert zone.contains((150.0, 220.0))

    def test_outside(self) -> None:
        zone = TrashZone.rectangle(100.0, 200.0, 50.0, 40.0)

        assert not zone.contains((99.9, 220.0))
        assert not zone.contains((120.0, 240.1))

    def test_bounds(self) -> None:
        """rectangle stores (min_x, min_y, max_x, max_y)."""
        zone = TrashZone.rectangle(10, 20, 30, 40)

        assert zone.shape == "rectangle"
        assert zone.bounds == (10.0, 20.0, 40.0, 60.0)

    def test_bottom_center(self) -> None:
        """bottom_center centers the square horizontally above the margin."""
        zone = TrashZone.bottom_center(400.0, 800.0, size=80.0, margin=20.0)

        assert zone.bounds == (160.0, 700.0, 240.0, 780.0)
        assert zone.contains((200.0, 740.0))
        assert not zone.contains((200.0, 790.0))

    @pytest.mark.parametrize("width, height", [(0.0, 10.0), (10.0, -1.0)])
    def test_degenerate_rectangle_raises(self, width, height) -> None:
        """Zero or negative sizes are rejected."""
        with pytest.raises(ValueError, match=r"\[E3101\]"):
            TrashZone.rectangle(0.0, 0.0, width, height)


class TestCircle:
    """Tests for circular zones."""

    def test_inside_and_boundary(self) -> None:
        zone = TrashZone.circle(50.0, 50.0, 10.0)

        assert zone.contains((50.0, 50.0))
        assert zone.contains((60.0, 50.0))
        assert zone.contains((56.0, 58.0))

    def test_outside(self) -> None:
        zone = TrashZone.circle(50.0, 50.0, 10.0)

        assert not zone.contains((58.0, 58.0))

    def test_non_positive_radius_raises(self) -> None:
        with pytest.raises(ValueError, match=r"\[E3101\]"):
            TrashZone.circle(0.0, 0.0, 0.0)


class TestIsOverTrashZone:
    """Tests for the optional-point helper."""

    def test_none_is_outside(self) -> None:
        """A drag that never moved has no point and is never over the zone."""
        assert not is_over_trash_zone(None, TrashZone.rectangle(0, 0, 10, 10))

    def test_delegates_to_zone(self) -> None:
        zone = TrashZone.rectangle(0, 0, 10, 10)

        assert is_over_trash_zone(ScreenPoint(5.0, 5.0), zone)
        assert not is_over_trash_zone(ScreenPoint(15.0, 5.0), zone)

    def test_unknown_shape_raises(self) -> None:
        with pytest.raises(ValueError, match=r"\[E3101\]"):
            TrashZone("triangle", (0.0, 0.0, 1.0))
