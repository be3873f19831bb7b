"""Tests for demand declarations and seat-curve aggregation."""

import logging
from datetime import date

import pytest

from shiftengine.domain.demand import (
    DemandAggregator,
    DemandDeclaration,
    build_slot_labels,
    overlapping_seats,
)
from shiftengine.domain.models import Skill, Weekday, parse_hhmm

MONDAY = date(2024, 1, 15)
TUESDAY = date(2024, 1, 16)


def weekly(skill_id, start, end, seats, weekday=Weekday.MONDAY, **kwargs):
    return DemandDeclaration(
        skill_id=skill_id,
        start=parse_hhmm(start),
        end=parse_hhmm(end),
        required_seats=seats,
        day_of_week=weekday,
        **kwargs,
    )


def dated(skill_id, start, end, seats, day=MONDAY, **kwargs):
    return DemandDeclaration(
        skill_id=skill_id,
        start=parse_hhmm(start),
        end=parse_hhmm(end),
        required_seats=seats,
        work_date=day,
        **kwargs,
    )


# =============================================================================
# DemandDeclaration
# =============================================================================


class TestDemandDeclaration:
    """Tests for declaration applicability and usability."""

    def test_weekly_applies_on_matching_weekday(self):
        declaration = weekly("REG", "09:00", "17:00", 2)
        assert declaration.applies_to(MONDAY)
        assert not declaration.applies_to(TUESDAY)

    def test_dated_applies_only_on_its_date(self):
        declaration = dated("REG", "09:00", "17:00", 2)
        assert declaration.is_date_specific
        assert declaration.applies_to(MONDAY)
        assert not declaration.applies_to(date(2024, 1, 22))

    @pytest.mark.parametrize(
        "declaration",
        [
            weekly("REG", "09:00", "17:00", 2, active=False),
            weekly("REG", "09:00", "17:00", 0),
            weekly("REG", "17:00", "09:00", 2),
            DemandDeclaration("REG", 1440, 1500, 1, day_of_week=Weekday.MONDAY),
            DemandDeclaration("REG", -60, 0, 1, day_of_week=Weekday.MONDAY),
        ],
    )
    def test_unusable_declarations(self, declaration):
        assert not declaration.is_usable()


# =============================================================================
# DemandAggregator.aggregate_day
# =============================================================================


class TestAggregateDay:
    """Tests for per-slot effective seat curves."""

    def test_single_weekly_declaration(self):
        aggregator = DemandAggregator(60)
        day_demand = aggregator.aggregate_day([weekly("REG", "09:00", "17:00", 2)], MONDAY)

        curve = day_demand.curves["REG"]
        assert len(curve) == 24
        assert curve[8] == 0
        assert all(curve[i] == 2 for i in range(9, 17)), f"Curve: {curve}"
        assert curve[17] == 0
        assert day_demand.skills == {"REG"}
        assert day_demand.has_demand

    def test_overlapping_weekly_declarations_add_up(self):
        aggregator = DemandAggregator(60)
        day_demand = aggregator.aggregate_day(
            [weekly("REG", "09:00", "13:00", 1), weekly("REG", "11:00", "15:00", 2)],
            MONDAY,
        )
        curve = day_demand.curves["REG"]
        assert curve[9:15] == [1, 1, 3, 3, 2, 2]

    def test_dated_overrides_weekly_slot_by_slot(self):
        aggregator = DemandAggregator(60)
        day_demand = aggregator.aggregate_day(
            [weekly("REG", "09:00", "17:00", 2), dated("REG", "12:00", "14:00", 5)],
            MONDAY,
        )
        curve = day_demand.curves["REG"]
        assert curve[9:17] == [2, 2, 2, 5, 5, 2, 2, 2]

    def test_dated_override_can_lower_demand(self):
        aggregator = DemandAggregator(60)
        day_demand = aggregator.aggregate_day(
            [weekly("REG", "09:00", "17:00", 4), dated("REG", "09:00", "17:00", 1)],
            MONDAY,
        )
        assert day_demand.curves["REG"][9:17] == [1] * 8

    def test_dated_declaration_for_other_day_ignored(self):
        aggregator = DemandAggregator(60)
        day_demand = aggregator.aggregate_day(
            [weekly("REG", "09:00", "17:00", 2), dated("REG", "09:00", "17:00", 5, day=TUESDAY)],
            MONDAY,
        )
        assert day_demand.curves["REG"][9] == 2

    def test_unusable_declarations_skipped(self):
        aggregator = DemandAggregator(60)
        day_demand = aggregator.aggregate_day(
            [
                weekly("REG", "09:00", "17:00", 2, active=False),
                weekly("REG", "09:00", "17:00", 0),
            ],
            MONDAY,
        )
        assert day_demand.curves == {}
        assert not day_demand.has_demand

    def test_skill_less_demand_ignored_with_warning(self, caplog):
        aggregator = DemandAggregator(60)
        with caplog.at_level(logging.WARNING, logger="shiftengine"):
            day_demand = aggregator.aggregate_day(
                [weekly(None, "09:00", "17:00", 3), weekly("REG", "09:00", "10:00", 1)],
                MONDAY,
            )
        assert set(day_demand.curves) == {"REG"}
        assert any("skill-less" in r.getMessage() for r in caplog.records)

    def test_partial_slots_are_covered(self):
        aggregator = DemandAggregator(30)
        day_demand = aggregator.aggregate_day([weekly("REG", "09:15", "10:00", 1)], MONDAY)
        curve = day_demand.curves["REG"]
        assert len(curve) == 48
        assert [i for i, seats in enumerate(curve) if seats] == [18, 19]

    def test_demand_until_midnight(self):
        aggregator = DemandAggregator(60)
        day_demand = aggregator.aggregate_day([weekly("REG", "22:00", "24:00", 1)], MONDAY)
        assert day_demand.curves["REG"][22:] == [1, 1]

    def test_skill_filter(self):
        aggregator = DemandAggregator(60)
        day_demand = aggregator.aggregate_day(
            [weekly("REG", "09:00", "17:00", 2), weekly("STK", "09:00", "17:00", 1)],
            MONDAY,
            skill_filter={"STK"},
        )
        assert set(day_demand.curves) == {"STK"}

    def test_granularity_clamped_to_one_minute(self):
        aggregator = DemandAggregator(0)
        assert aggregator.granularity_minutes == 1
        assert aggregator.slots == 1440

    def test_total_seat_slots(self):
        aggregator = DemandAggregator(60)
        day_demand = aggregator.aggregate_day(
            [weekly("REG", "09:00", "17:00", 2), weekly("STK", "10:00", "12:00", 1)],
            MONDAY,
        )
        assert day_demand.total_seat_slots() == 18

    def test_aggregation_is_deterministic(self):
        aggregator = DemandAggregator(60)
        declarations = [
            weekly("REG", "09:00", "17:00", 2),
            dated("REG", "12:00", "14:00", 5),
            weekly("STK", "07:00", "11:00", 1),
        ]
        first = aggregator.aggregate_day(declarations, MONDAY)
        second = aggregator.aggregate_day(list(reversed(declarations)), MONDAY)
        assert first.curves == second.curves


# =============================================================================
# Summaries
# =============================================================================


class TestDemandSummary:
    """Tests for demand totals over a date range."""

    def test_summary_over_two_days(self):
        aggregator = DemandAggregator(60)
        declarations = [
            weekly("REG", "09:00", "11:00", 2),
            weekly("REG", "09:00", "10:00", 1, weekday=Weekday.TUESDAY),
        ]
        skills = {"REG": Skill(id="REG", code="R", name="Register")}
        summary = aggregator.summarize(declarations, MONDAY, TUESDAY, skills=skills)

        assert summary.matrix["REG"][9] == 3
        assert summary.matrix["REG"][10] == 2
        assert summary.totals_per_skill == {"REG": 5}
        assert summary.totals_per_slot[9] == 3
        assert [s.code for s in summary.skills] == ["R"]
        assert summary.slot_count == 24

    def test_reversed_bounds_are_swapped(self):
        aggregator = DemandAggregator(60)
        summary = aggregator.summarize([], TUESDAY, MONDAY)
        assert summary.start_date == MONDAY
        assert summary.end_date == TUESDAY

    def test_missing_bound_defaults_to_other(self):
        aggregator = DemandAggregator(60)
        summary = aggregator.summarize([], MONDAY, None)
        assert summary.start_date == summary.end_date == MONDAY

    def test_skill_ids_filter(self):
        aggregator = DemandAggregator(60)
        summary = aggregator.summarize(
            [weekly("REG", "09:00", "10:00", 1), weekly("STK", "09:00", "10:00", 1)],
            MONDAY, MONDAY, skill_ids={"REG"},
        )
        assert list(summary.matrix) == ["REG"]

    def test_slot_labels_end_at_2359(self):
        labels = build_slot_labels(60)
        assert labels[0] == "00:00-01:00"
        assert labels[-1] == "23:00-23:59"


# =============================================================================
# overlapping_seats
# =============================================================================


class TestOverlappingSeats:
    """Tests for seat lookup over a time range."""

    def test_sums_weekly_declarations(self):
        declarations = [weekly("REG", "09:00", "12:00", 1), weekly("REG", "10:00", "13:00", 2)]
        assert overlapping_seats(declarations, MONDAY, "REG", 600, 660) == 3

    def test_dated_declarations_win(self):
        declarations = [weekly("REG", "09:00", "12:00", 4), dated("REG", "10:00", "11:00", 1)]
        assert overlapping_seats(declarations, MONDAY, "REG", 600, 660) == 1
        assert overlapping_seats(declarations, MONDAY, "REG", 540, 600) == 4

    def test_touching_ranges_do_not_overlap(self):
        declarations = [weekly("REG", "09:00", "10:00", 1)]
        assert overlapping_seats(declarations, MONDAY, "REG", 600, 660) == 0
