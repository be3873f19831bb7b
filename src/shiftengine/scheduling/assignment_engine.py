"""Constraint-aware greedy selection of employees for sub-blocks.

For every seat of a block the candidate pool of the block's skill is
ranked by a fixed multi-key order and the first employee passing every
eligibility filter is taken. A rejected employee is never reconsidered
for the same seat; an exhausted pool leaves the seat unfilled and is
reported as a shortage.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from shiftengine.domain.models import (
    Assignment,
    ConstraintType,
    Employee,
    RunState,
    Weekday,
    block_hours,
    format_hhmm,
)
from shiftengine.domain.policies import EngineConfig
from shiftengine.logging_setup import get_logger
from shiftengine.scheduling.window_synthesizer import WindowTag
from shiftengine.store import Snapshot

logger = get_logger(__name__)


class Rejection(Enum):
    """Reason an employee cannot take a block."""

    ALREADY_ASSIGNED = "already_assigned"
    MISSING_SKILL = "missing_skill"
    OUTSIDE_AVAILABILITY = "outside_availability"
    DAILY_HOURS_EXCEEDED = "daily_hours_exceeded"
    UNAVAILABLE = "unavailable"
    LIMITED_MISMATCH = "limited_mismatch"
    HOLIDAY = "holiday"
    OVERLAP = "overlap"
    NOT_ELIGIBLE = "not_eligible"


@dataclass(frozen=True)
class SubBlock:
    """A length-bounded slice of a window to be staffed.

    Attributes:
        start: Start in minutes since midnight.
        end: End in minutes since midnight (exclusive).
        skill_id: Skill every seat requires.
        seats: Number of employees needed.
    """

    start: int
    end: int
    skill_id: Optional[str]
    seats: int

    @property
    def length_hours(self) -> int:
        return (self.end - self.start) // 60


@dataclass
class ShortageInfo:
    """Seats of one block that could not be filled.

    Attributes:
        work_date: Date of the block.
        label: Label the assignments would have carried.
        start: Block start in minutes.
        end: Block end in minutes.
        skill_id: Skill required.
        required: Seats requested.
        assigned: Seats filled.
    """

    work_date: date
    label: str
    start: int
    end: int
    skill_id: Optional[str]
    required: int
    assigned: int

    @property
    def missing(self) -> int:
        return max(0, self.required - self.assigned)

    def __str__(self) -> str:
        return (
            f"{self.work_date} {self.label} {format_hhmm(self.start)}-{format_hhmm(self.end)}: "
            f"required {self.required}, assigned {self.assigned}"
        )


class AssignmentEngine:
    """Picks employees for blocks and books them into the run state.

    Ranking keys, in order:
    1. short-shift candidates first (only for blocks shorter than the
       primary length);
    2. employees with a PREFERRED constraint overlapping the block first;
    3. fewer assignments so far;
    4. on tagged pairing windows, employees who are not full-day
       eligible first (tie-break only);
    5. employee id.

    Example:
        >>> engine = AssignmentEngine(snapshot, RunState())
        >>> created, shortage = engine.assign_block(day, SubBlock(540, 1020, "REG", 2))
    """

    def __init__(
        self,
        snapshot: Snapshot,
        state: RunState,
        config: Optional[EngineConfig] = None,
        employees: Optional[list[Employee]] = None,
    ):
        self.snapshot = snapshot
        self.state = state
        self.config = config or EngineConfig()
        self.employees = list(employees if employees is not None else snapshot.employees)
        self._longest_availability: dict[tuple[str, int], int] = {}

    def pool(self, skill_id: Optional[str]) -> list[Employee]:
        """Employees holding ``skill_id`` (everyone when it is None)."""
        if skill_id is None:
            return self.employees
        return self.snapshot.employees_with_skill(skill_id)

    # ------------------------------------------------------------------
    # Short-shift candidacy and gating
    # ------------------------------------------------------------------

    def max_available_minutes(self, employee_id: str, weekday: int) -> int:
        """Longest contiguous availability on a weekday after merging windows."""
        key = (employee_id, weekday)
        if key not in self._longest_availability:
            spans = sorted(
                (w.start, w.end) for w in self.snapshot.availability_for(employee_id, weekday)
            )
            longest = 0
            if spans:
                cur_start, cur_end = spans[0]
                for start, end in spans[1:]:
                    if start <= cur_end:
                        cur_end = max(cur_end, end)
                    else:
                        longest = max(longest, cur_end - cur_start)
                        cur_start, cur_end = start, end
                longest = max(longest, cur_end - cur_start)
            self._longest_availability[key] = longest
        return self._longest_availability[key]

    def is_short_candidate(self, employee: Employee, length_hours: int, day: date) -> bool:
        """Whether the employee suits a block shorter than the primary length."""
        if length_hours >= self.config.primary_length_hours:
            return False
        daily_max = employee.daily_max_hours
        rule_based = daily_max is not None and daily_max <= length_hours
        longest = self.max_available_minutes(employee.id, day.weekday())
        availability_based = 0 < longest <= length_hours * 60
        return self.config.short_logic.combine(rule_based, availability_based)

    def pattern_allows(
        self, skill_id: Optional[str], day: date, start: int, end: int, length_hours: int
    ) -> bool:
        if skill_id is None:
            return False
        weekday = Weekday.of(day)
        return any(
            pattern.allows(weekday, start, end, length_hours)
            for pattern in self.snapshot.patterns_by_skill.get(skill_id, [])
        )

    def allow_short_block(
        self,
        day: date,
        start: int,
        end: int,
        skill_id: Optional[str],
        length_hours: int,
        tag: Optional[WindowTag] = None,
    ) -> bool:
        """Whether a block shorter than the primary length may be placed.

        Allowed when a skill pattern whitelists the length, or when some
        pool employee suited to short blocks could actually take it.
        Morning/afternoon windows judge suitability by the employee's
        short eligibility flag; standalone windows are always allowed.
        """
        if self.pattern_allows(skill_id, day, start, end, length_hours):
            return True
        if tag == WindowTag.STANDALONE:
            return True
        if tag in (WindowTag.MORNING, WindowTag.AFTERNOON):
            return any(
                tag.admits(employee)
                and self.rejection(employee, day, start, end, skill_id) is None
                for employee in self.pool(skill_id)
            )
        if not self.config.short_enabled:
            return False
        return any(
            self.is_short_candidate(employee, length_hours, day)
            and self.rejection(employee, day, start, end, skill_id) is None
            for employee in self.pool(skill_id)
        )

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------

    def rejection(
        self,
        employee: Employee,
        day: date,
        start: int,
        end: int,
        skill_id: Optional[str],
        tag: Optional[WindowTag] = None,
        allow_repeat: bool = False,
    ) -> Optional[Rejection]:
        """First filter the employee fails for [start, end) on ``day``, or None."""
        if (
            not allow_repeat
            and not employee.allows_multiple_shifts
            and self.state.is_assigned(day, employee.id)
        ):
            return Rejection.ALREADY_ASSIGNED
        if not employee.has_skill(skill_id):
            return Rejection.MISSING_SKILL
        windows = self.snapshot.availability_for(employee.id, day.weekday())
        if windows and not any(w.contains(start, end) for w in windows):
            return Rejection.OUTSIDE_AVAILABILITY
        daily_max = employee.daily_max_hours
        if daily_max is not None:
            if self.state.hours_used(day, employee.id) + block_hours(start, end) > daily_max:
                return Rejection.DAILY_HOURS_EXCEEDED
        for constraint in self.snapshot.constraints_for(day, employee.id):
            if constraint.blocks(start, end):
                if constraint.constraint_type == ConstraintType.LIMITED:
                    return Rejection.LIMITED_MISMATCH
                return Rejection.UNAVAILABLE
        if not employee.allows_holiday_work and self.snapshot.is_holiday(day):
            return Rejection.HOLIDAY
        if self.state.overlaps_span(employee.id, day, start, end):
            return Rejection.OVERLAP
        if tag is not None and not tag.admits(employee):
            return Rejection.NOT_ELIGIBLE
        return None

    def preferred_employees(self, day: date, start: int, end: int) -> set[str]:
        """Employees with a PREFERRED constraint overlapping [start, end)."""
        return {
            employee_id
            for employee_id, constraints in self.snapshot.constraints_on(day).items()
            if any(c.prefers(start, end) for c in constraints)
        }

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def rank(
        self,
        candidates: list[Employee],
        day: date,
        start: int,
        end: int,
        preferred: set[str],
        tag: Optional[WindowTag] = None,
        rank_short: bool = True,
        prefer_short_only: bool = False,
    ) -> list[Employee]:
        """Order candidates by the ranking keys for one seat."""
        length_hours = (end - start) // 60
        short_block = rank_short and length_hours < self.config.primary_length_hours

        def short_key(employee: Employee) -> bool:
            if not short_block:
                return False
            if tag in (WindowTag.MORNING, WindowTag.AFTERNOON):
                return not tag.admits(employee)
            return not self.is_short_candidate(employee, length_hours, day)

        return sorted(
            candidates,
            key=lambda e: (
                short_key(e),
                e.id not in preferred,
                self.state.count(e.id),
                prefer_short_only and e.eligible_full,
                e.id,
            ),
        )

    def select_candidate(
        self,
        day: date,
        start: int,
        end: int,
        skill_id: Optional[str],
        preferred: set[str],
        tag: Optional[WindowTag] = None,
        candidates: Optional[list[Employee]] = None,
        rank_short: bool = True,
        prefer_short_only: bool = False,
        allow_repeat: bool = False,
    ) -> Optional[Employee]:
        """Return the best-ranked employee passing every filter, or None."""
        pool = candidates if candidates is not None else self.pool(skill_id)
        ranked = self.rank(
            pool, day, start, end, preferred,
            tag=tag, rank_short=rank_short, prefer_short_only=prefer_short_only,
        )
        for employee in ranked:
            reason = self.rejection(
                employee, day, start, end, skill_id, tag=tag, allow_repeat=allow_repeat
            )
            if reason is None:
                return employee
            logger.debug("%s rejected for %s %s-%s: %s",
                         employee.id, day, format_hhmm(start), format_hhmm(end), reason.value)
        return None

    def label_for(self, skill_id: Optional[str], start: int) -> str:
        skill = self.snapshot.skills.get(skill_id) if skill_id is not None else None
        return Assignment.make_label(start, skill.code if skill else None)

    def book(
        self,
        employee: Employee,
        day: date,
        start: int,
        end: int,
        skill_id: Optional[str],
        label: Optional[str] = None,
    ) -> Assignment:
        """Create an assignment and record it in the run state."""
        assignment = Assignment(
            employee_id=employee.id,
            work_date=day,
            label=label or self.label_for(skill_id, start),
            start=start,
            end=end,
            skill_id=skill_id,
        )
        self.state.record(assignment, hours=block_hours(start, end))
        return assignment

    def assign_block(
        self,
        day: date,
        block: SubBlock,
        tag: Optional[WindowTag] = None,
        label: Optional[str] = None,
        rank_short: bool = True,
        prefer_short_only: bool = False,
        allow_repeat: bool = False,
    ) -> tuple[list[Assignment], Optional[ShortageInfo]]:
        """Fill every seat of a block.

        Returns:
            The created assignments and, when seats were left unfilled,
            a ShortageInfo describing them.
        """
        label = label or self.label_for(block.skill_id, block.start)
        preferred = self.preferred_employees(day, block.start, block.end)
        created = []
        while len(created) < block.seats:
            chosen = self.select_candidate(
                day, block.start, block.end, block.skill_id, preferred,
                tag=tag, rank_short=rank_short,
                prefer_short_only=prefer_short_only, allow_repeat=allow_repeat,
            )
            if chosen is None:
                break
            created.append(self.book(chosen, day, block.start, block.end, block.skill_id, label))
            preferred.discard(chosen.id)

        if len(created) >= block.seats:
            return created, None
        shortage = ShortageInfo(
            work_date=day,
            label=label,
            start=block.start,
            end=block.end,
            skill_id=block.skill_id,
            required=block.seats,
            assigned=len(created),
        )
        logger.warning("Shortage: %s", shortage)
        return created, shortage
