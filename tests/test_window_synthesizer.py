"""Tests for seat-track window synthesis."""

import pytest

from shiftengine.domain.models import Employee
from shiftengine.scheduling.window_synthesizer import (
    Window,
    WindowTag,
    seat_tracks,
    synthesize_windows,
)


def curve_with(*ranges, slots=24):
    """Build a curve from (first_slot, last_slot_exclusive, seats) ranges."""
    curve = [0] * slots
    for first, last, seats in ranges:
        for i in range(first, last):
            curve[i] += seats
    return curve


# =============================================================================
# seat_tracks
# =============================================================================


class TestSeatTracks:
    """Tests for the single-curve track sweep."""

    def test_flat_demand_makes_one_track_per_seat(self):
        tracks = list(seat_tracks(curve_with((9, 18, 2)), max_slots=9))
        assert tracks == [(9, 18), (9, 18)]

    def test_peak_closes_most_recent_track_first(self):
        tracks = list(seat_tracks(curve_with((9, 17, 1), (11, 13, 1)), max_slots=9))
        assert tracks == [(11, 13), (9, 17)]

    def test_long_track_is_split_at_cap(self):
        tracks = list(seat_tracks(curve_with((7, 19, 1)), max_slots=9))
        assert tracks == [(7, 16), (16, 19)]

    def test_open_tracks_close_at_curve_end(self):
        tracks = list(seat_tracks(curve_with((20, 24, 1)), max_slots=9))
        assert tracks == [(20, 24)]

    def test_empty_curve(self):
        assert list(seat_tracks([0] * 24, max_slots=9)) == []


# =============================================================================
# synthesize_windows
# =============================================================================


class TestSynthesizeWindows:
    """Tests for window synthesis across skills."""

    def test_nine_hour_demand_is_one_window(self):
        windows = synthesize_windows({"A": curve_with((9, 18, 2))}, 60, 540)
        assert list(windows) == [(540, 1080)]
        assert windows[(540, 1080)].per_skill_seats == {"A": 2}

    def test_twelve_hour_demand_needs_two_windows(self):
        windows = synthesize_windows({"A": curve_with((9, 21, 2))}, 60, 540)
        assert len(windows) >= 2
        for key, window in windows.items():
            assert window.duration_minutes <= 540, f"Window {key} exceeds cap"
        assert sorted(windows) == [(540, 1080), (1080, 1260)]

    @pytest.mark.parametrize("granularity", [120, 7, 45])
    def test_windows_never_exceed_cap_when_slots_do_not_divide_it(self, granularity):
        slots = -(-1440 // granularity)
        windows = synthesize_windows({"A": [1] * slots}, granularity, 540)
        for key, window in windows.items():
            assert window.duration_minutes <= 540, f"Window {key} exceeds 540 min"
        bounds = sorted(windows)
        assert bounds[0][0] == 0 and bounds[-1][1] == 1440
        assert all(a[1] == b[0] for a, b in zip(bounds, bounds[1:])), "Day not covered"

    def test_two_hour_slots(self):
        windows = synthesize_windows({"A": [1] * 12}, 120, 540)
        assert sorted(windows) == [(0, 480), (480, 960), (960, 1440)]

    def test_same_bounds_merge_across_skills(self):
        windows = synthesize_windows(
            {"A": curve_with((9, 17, 1)), "B": curve_with((9, 17, 2))}, 60, 540
        )
        assert list(windows) == [(540, 1020)]
        assert windows[(540, 1020)].per_skill_seats == {"A": 1, "B": 2}
        assert windows[(540, 1020)].total_seats == 3

    def test_window_end_clamped_to_day(self):
        windows = synthesize_windows({"A": curve_with((22, 24, 1))}, 60, 540)
        assert list(windows) == [(1320, 1440)]

    def test_thirty_minute_granularity(self):
        windows = synthesize_windows({"A": curve_with((18, 26, 1), slots=48)}, 30, 540)
        assert list(windows) == [(540, 780)]

    def test_coverage_is_conserved(self):
        curve = curve_with((7, 21, 1), (10, 14, 2), (16, 19, 1))
        windows = synthesize_windows({"A": curve}, 60, 540)
        covered = sum(
            w.per_skill_seats["A"] * (w.end - w.start) // 60 for w in windows.values()
        )
        assert covered == sum(curve)


# =============================================================================
# Window and WindowTag
# =============================================================================


class TestWindow:
    """Tests for window properties and tags."""

    def test_properties(self):
        window = Window(start=540, end=1080, per_skill_seats={"A": 2, "B": 1})
        assert window.key == (540, 1080)
        assert window.duration_minutes == 540
        assert window.midpoint == 810
        assert window.total_seats == 3
        assert str(window).startswith("[09:00-18:00)")

    @pytest.mark.parametrize(
        "tag, flag",
        [
            (WindowTag.FULL, "eligible_full"),
            (WindowTag.MORNING, "eligible_short_morning"),
            (WindowTag.AFTERNOON, "eligible_short_afternoon"),
        ],
    )
    def test_tag_follows_eligibility_flag(self, tag, flag):
        assert tag.admits(Employee(id="E1"))
        assert not tag.admits(Employee(id="E2", **{flag: False}))

    def test_standalone_admits_everyone(self):
        employee = Employee(
            id="E1",
            eligible_full=False,
            eligible_short_morning=False,
            eligible_short_afternoon=False,
        )
        assert WindowTag.STANDALONE.admits(employee)
