"""Demand models and aggregation into per-slot seat curves.

A demand declaration states how many seats of a skill are needed over a
time range, either every given weekday or on one specific date. For a
day, date-specific declarations override weekly ones slot by slot: the
two are accumulated separately and the date-specific value wins wherever
it is positive.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from shiftengine.domain.models import MINUTES_PER_DAY, Skill, Weekday, format_hhmm
from shiftengine.domain.policies import minutes_to_slot_range, slot_count
from shiftengine.logging_setup import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DemandDeclaration:
    """Seats of one skill needed over a time range.

    Exactly one of ``work_date`` and ``day_of_week`` is expected.

    Attributes:
        skill_id: Required skill (None marks unsupported skill-less demand).
        start: Start in minutes since midnight.
        end: End in minutes since midnight (exclusive).
        required_seats: Seats needed throughout the range.
        work_date: Date the declaration applies to (date-specific).
        day_of_week: Weekday the declaration recurs on (weekly).
        active: Inactive declarations are ignored.
        sort_order: Display order, carried for callers.
        id: Optional record identifier.
    """

    skill_id: Optional[str]
    start: int
    end: int
    required_seats: int = 0
    work_date: Optional[date] = None
    day_of_week: Optional[Weekday] = None
    active: bool = True
    sort_order: int = 0
    id: Optional[str] = None

    @property
    def is_date_specific(self) -> bool:
        return self.work_date is not None

    def applies_to(self, day: date) -> bool:
        """Whether this declaration is effective on ``day``."""
        if self.work_date is not None:
            return self.work_date == day
        return self.day_of_week is not None and self.day_of_week == day.weekday()

    def is_usable(self) -> bool:
        """Active, with a non-empty range inside the day and positive seats."""
        return (
            self.active
            and self.end > 0
            and self.start < MINUTES_PER_DAY
            and self.end > self.start
            and self.required_seats > 0
        )

    def overlaps(self, start: int, end: int) -> bool:
        return self.start < end and start < self.end


@dataclass
class DayDemand:
    """Effective seat curves of one day.

    Attributes:
        day: The date.
        granularity_minutes: Slot width.
        curves: Skill id to seat curve (one entry per slot).
    """

    day: date
    granularity_minutes: int
    curves: dict[str, list[int]] = field(default_factory=dict)

    @property
    def skills(self) -> set[str]:
        return set(self.curves)

    @property
    def has_demand(self) -> bool:
        return any(any(curve) for curve in self.curves.values())

    def total_seat_slots(self) -> int:
        """Sum of seats over all slots and skills."""
        return sum(sum(curve) for curve in self.curves.values())


@dataclass(frozen=True)
class SkillSummary:
    """Identity of a skill appearing in a demand summary."""

    id: str
    code: Optional[str] = None
    name: Optional[str] = None


@dataclass
class DemandSummary:
    """Effective demand totals over a date range.

    Attributes:
        start_date: First day of the range.
        end_date: Last day of the range.
        granularity_minutes: Slot width.
        slot_labels: ``"HH:MM-HH:MM"`` label per slot.
        matrix: Skill id to per-slot seat totals.
        skills: Skills present, ordered by id.
        totals_per_slot: Seat totals per slot across skills.
        totals_per_skill: Seat totals per skill across slots.
    """

    start_date: date
    end_date: date
    granularity_minutes: int
    slot_labels: list[str]
    matrix: dict[str, list[int]]
    skills: list[SkillSummary]
    totals_per_slot: list[int]
    totals_per_skill: dict[str, int]

    @property
    def slot_count(self) -> int:
        return len(self.slot_labels)


def build_slot_labels(granularity_minutes: int) -> list[str]:
    """Label every slot of a day; the final slot is shown ending at 23:59."""
    g = max(1, granularity_minutes)
    labels = []
    for i in range(slot_count(g)):
        start = i * g
        end = min(MINUTES_PER_DAY, (i + 1) * g)
        if end == MINUTES_PER_DAY:
            end -= 1
        labels.append(f"{format_hhmm(start)}-{format_hhmm(end)}")
    return labels


class DemandAggregator:
    """Turns demand declarations into effective per-slot seat curves.

    Example:
        >>> aggregator = DemandAggregator(granularity_minutes=60)
        >>> day_demand = aggregator.aggregate_day(declarations, date(2024, 1, 15))
        >>> day_demand.curves["REG"][9]
        2
    """

    def __init__(self, granularity_minutes: int = 60):
        self.granularity_minutes = max(1, granularity_minutes)

    @property
    def slots(self) -> int:
        return slot_count(self.granularity_minutes)

    def aggregate_day(
        self,
        declarations: Iterable[DemandDeclaration],
        day: date,
        skill_filter: Optional[set[str]] = None,
    ) -> DayDemand:
        """Build the effective seat curve of every skill demanded on ``day``.

        Args:
            declarations: All known declarations; those not effective on
                ``day`` are ignored.
            day: Date to aggregate.
            skill_filter: Restrict to these skill ids (None = all).

        Returns:
            DayDemand holding one curve per skill with usable demand.
        """
        weekly: dict[str, list[int]] = {}
        dated: dict[str, list[int]] = {}
        skill_less = 0

        for declaration in declarations:
            if not declaration.applies_to(day):
                continue
            if not declaration.is_usable():
                logger.debug("Skipping unusable demand %s on %s", declaration, day)
                continue
            if declaration.skill_id is None:
                skill_less += 1
                continue
            if skill_filter and declaration.skill_id not in skill_filter:
                continue
            target = dated if declaration.is_date_specific else weekly
            curve = target.setdefault(declaration.skill_id, [0] * self.slots)
            first, last = minutes_to_slot_range(
                declaration.start, declaration.end, self.granularity_minutes
            )
            for i in range(first, last):
                curve[i] += declaration.required_seats

        if skill_less:
            logger.warning(
                "Ignored %d skill-less demand declaration(s) on %s", skill_less, day
            )

        curves = {}
        for skill_id in sorted(set(weekly) | set(dated)):
            weekly_curve = weekly.get(skill_id)
            dated_curve = dated.get(skill_id)
            effective = []
            for i in range(self.slots):
                w = weekly_curve[i] if weekly_curve else 0
                d = dated_curve[i] if dated_curve else 0
                effective.append(d if d > 0 else w)
            curves[skill_id] = effective

        return DayDemand(day=day, granularity_minutes=self.granularity_minutes, curves=curves)

    def summarize(
        self,
        declarations: Iterable[DemandDeclaration],
        start: Optional[date],
        end: Optional[date],
        skills: Optional[dict[str, Skill]] = None,
        skill_ids: Optional[set[str]] = None,
    ) -> DemandSummary:
        """Total the effective demand of every day in a date range.

        A missing bound defaults to the other one; reversed bounds are
        swapped.
        """
        if start is None and end is None:
            start = end = date.today()
        elif start is None:
            start = end
        elif end is None:
            end = start
        if end < start:
            start, end = end, start

        declarations = list(declarations)
        matrix: dict[str, list[int]] = {}
        day = start
        while day <= end:
            day_demand = self.aggregate_day(declarations, day, skill_filter=skill_ids)
            for skill_id, curve in day_demand.curves.items():
                totals = matrix.setdefault(skill_id, [0] * self.slots)
                for i, seats in enumerate(curve):
                    totals[i] += seats
            day += timedelta(days=1)

        skills = skills or {}
        ordered_ids = sorted(matrix)
        summaries = []
        for skill_id in ordered_ids:
            skill = skills.get(skill_id)
            summaries.append(SkillSummary(
                id=skill_id,
                code=skill.code if skill else None,
                name=skill.name if skill else None,
            ))

        totals_per_slot = [0] * self.slots
        totals_per_skill = {}
        for skill_id in ordered_ids:
            curve = matrix[skill_id]
            for i, seats in enumerate(curve):
                totals_per_slot[i] += seats
            totals_per_skill[skill_id] = sum(curve)

        return DemandSummary(
            start_date=start,
            end_date=end,
            granularity_minutes=self.granularity_minutes,
            slot_labels=build_slot_labels(self.granularity_minutes),
            matrix={skill_id: matrix[skill_id] for skill_id in ordered_ids},
            skills=summaries,
            totals_per_slot=totals_per_slot,
            totals_per_skill=totals_per_skill,
        )


def overlapping_seats(
    declarations: Iterable[DemandDeclaration],
    day: date,
    skill_id: Optional[str],
    start: int,
    end: int,
) -> int:
    """Seats of declarations for ``skill_id`` overlapping [start, end) on ``day``.

    When any date-specific declaration overlaps, only date-specific ones
    are counted. ``skill_id`` None selects skill-less declarations.
    """
    matching = [
        d for d in declarations
        if d.active
        and d.applies_to(day)
        and d.skill_id == skill_id
        and d.overlaps(start, end)
    ]
    if any(d.is_date_specific for d in matching):
        matching = [d for d in matching if d.is_date_specific]
    return sum(max(0, d.required_seats) for d in matching)
