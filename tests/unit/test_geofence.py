"""Unit tests for proximity-gated task visibility."""

from dataclasses import dataclass, field

from teamtrack.geo.distance import Coordinate
from teamtrack.geo.geofence import GameMode, GamePoint, filter_visible_points, is_task_visible, reveal_radius

ORIGIN = Coordinate(52.0, 4.0)
# ~0.000899 degrees of latitude per 100 m
NEAR = Coordinate(52.0 + 0.00045, 4.0)  # ~50 m
FAR = Coordinate(52.0 + 0.0018, 4.0)  # ~200 m


@dataclass
class Progress:
    completed_point_ids: list[str] = field(default_factory=list)
    discovered_point_ids: list[str] = field(default_factory=list)


def gated(point_id: str = "p1", **kwargs) -> GamePoint:
    return GamePoint(id=point_id, location=ORIGIN, proximity_trigger_enabled=True, **kwargs)


class TestRevealRadius:
    """Test radius resolution."""

    def test_point_radius_wins(self):
        assert reveal_radius(gated(proximity_reveal_radius=30)) == 30

    def test_unset_radius_uses_default(self):
        assert reveal_radius(gated()) == 100.0

    def test_zero_radius_uses_default(self):
        assert reveal_radius(gated(proximity_reveal_radius=0), default_radius=75) == 75


class TestIsTaskVisible:
    """Test the visibility rules in order."""

    def test_authoring_modes_see_everything(self):
        point = gated()
        assert is_task_visible(point, None, mode=GameMode.EDIT)
        assert is_task_visible(point, FAR, mode="INSTRUCTOR")

    def test_unknown_mode_plays_normally(self):
        point = gated()
        assert not is_task_visible(point, None, mode="SPECTATOR")
        assert not is_task_visible(point, FAR, mode="")
        assert is_task_visible(point, NEAR, mode="SPECTATOR")

    def test_trigger_disabled_is_visible(self):
        point = GamePoint(id="p1", location=ORIGIN, proximity_trigger_enabled=False)
        assert is_task_visible(point, None)

    def test_missing_location_is_visible(self):
        point = GamePoint(id="p1", location=None, proximity_trigger_enabled=True)
        assert is_task_visible(point, FAR)

    def test_no_fix_hides_gated_point(self):
        assert not is_task_visible(gated(), None)

    def test_no_fix_hides_even_discovered_point(self):
        assert not is_task_visible(gated(), None, team=Progress(discovered_point_ids=["p1"]))

    def test_inside_radius(self):
        assert is_task_visible(gated(), NEAR)

    def test_outside_radius(self):
        assert not is_task_visible(gated(), FAR)

    def test_point_radius_reveals_further(self):
        point = gated(proximity_reveal_radius=250)
        assert is_task_visible(point, FAR)

    def test_discovered_point_stays_visible(self):
        assert is_task_visible(gated(), FAR, team=Progress(discovered_point_ids=["p1"]))

    def test_completed_point_stays_visible(self):
        assert is_task_visible(gated(), FAR, team=Progress(completed_point_ids=["p1"]))

    def test_unlocked_point_stays_visible(self):
        assert is_task_visible(gated(is_unlocked=True), FAR)

    def test_stays_visible_off_hides_discovered_point(self):
        point = gated(proximity_stays_visible=False)
        assert not is_task_visible(point, FAR, team=Progress(discovered_point_ids=["p1"]))


class TestFilterVisiblePoints:
    """Test batch filtering."""

    def test_preserves_order(self):
        points = [
            GamePoint(id="open"),
            gated("far-away", proximity_reveal_radius=10),
            gated("close"),
        ]
        visible = filter_visible_points(points, NEAR)
        assert [p.id for p in visible] == ["open", "close"]
