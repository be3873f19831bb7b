"""Domain models for the scheduling engine.

This module contains the core data structures shared by every stage of a
generation run: employees and their rules, skills and skill patterns,
availability and per-date constraints, fixed shift templates, the
produced assignments, and the transient run state.

Times of day are plain integers counting minutes since midnight
(0 to 1440). ``"HH:MM"`` strings are converted at the edges with
``parse_hhmm``/``format_hhmm``.
"""

from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum, IntEnum
from typing import Optional, Union

MINUTES_PER_DAY = 24 * 60


def parse_hhmm(text: str) -> int:
    """Parse ``"HH:MM"`` into minutes since midnight.

    ``"24:00"`` is accepted and maps to the end of the day.

    Raises:
        ValueError: If the text is not a valid time of day.
    """
    parts = text.strip().split(":")
    if len(parts) != 2 or not parts[0].isdigit() or not parts[1].isdigit():
        raise ValueError(f"Invalid time of day: {text!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if minutes >= 60 or hours > 24 or (hours == 24 and minutes != 0):
        raise ValueError(f"Invalid time of day: {text!r}")
    return hours * 60 + minutes


def format_hhmm(minutes: int) -> str:
    """Format minutes since midnight as ``"HH:MM"``."""
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def to_minutes(value: Union[int, str, time, None]) -> Optional[int]:
    """Normalize a time of day given as minutes, ``"HH:MM"`` or ``time``."""
    if value is None:
        return None
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    if isinstance(value, str):
        return parse_hhmm(value)
    return int(value)


class Weekday(IntEnum):
    """Day of week, numbered like ``date.weekday()``."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return cls(day.weekday())

    @classmethod
    def parse(cls, value: Union[int, str, "Weekday"]) -> "Weekday":
        """Parse a weekday from its index or (case-insensitive) name."""
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown weekday: {value!r}") from None
        return cls(int(value))


@dataclass(frozen=True)
class Skill:
    """A skill that demand can require and employees can hold.

    Attributes:
        id: Unique skill identifier.
        code: Short code used in assignment labels (e.g. "REG").
        name: Human-readable name.
        priority: Processing priority inside a window (1 = highest).
    """

    id: str
    code: Optional[str] = None
    name: str = ""
    priority: int = 5


class PriorityHint(Enum):
    """Where in the day a skill pattern prefers its short blocks."""

    FIRST = "first"
    LAST = "last"
    MIDDLE = "middle"
    ANY = "any"


@dataclass
class SkillPattern:
    """Whitelist of short block lengths for a skill.

    A pattern applies when it is active, its weekday (if set) matches and
    its time range (if both bounds are set) contains the block.

    Attributes:
        skill_id: Skill the pattern belongs to.
        allowed_lengths_csv: Comma separated block lengths in hours.
        day_of_week: Restrict to one weekday (None = every day).
        start: Earliest block start in minutes (None = unbounded).
        end: Latest block end in minutes (None = unbounded).
        active: Inactive patterns are ignored.
        priority_hint: Preferred placement of short blocks.
    """

    skill_id: str
    allowed_lengths_csv: str = "6,4"
    day_of_week: Optional[Weekday] = None
    start: Optional[int] = None
    end: Optional[int] = None
    active: bool = True
    priority_hint: PriorityHint = PriorityHint.ANY

    def allowed_lengths(self) -> set[int]:
        """Lengths (hours) listed in the CSV; malformed tokens are ignored."""
        lengths = set()
        for token in (self.allowed_lengths_csv or "").split(","):
            token = token.strip()
            if token.isdigit():
                lengths.add(int(token))
        return lengths

    def allows(self, weekday: Weekday, start: int, end: int, length_hours: int) -> bool:
        """Check whether this pattern whitelists a block."""
        if not self.active:
            return False
        if self.day_of_week is not None and self.day_of_week != weekday:
            return False
        if self.start is not None and self.end is not None:
            if start < self.start or end > self.end:
                return False
        return length_hours in self.allowed_lengths()


@dataclass
class EmployeeRule:
    """Labor rules for one employee.

    Attributes:
        weekly_max_hours: Maximum hours per week.
        daily_max_hours: Maximum hours per day across all assignments.
        max_consecutive_days: Maximum consecutive working days.
        min_rest_hours: Minimum rest between shifts.
        allow_multiple_shifts_per_day: Whether a second shift on the same
            day is allowed (still bounded by daily_max_hours).
        allow_holiday_work: Whether the employee may work on holidays.
        weekly_rest_days: Required rest days per week.
    """

    weekly_max_hours: int = 40
    daily_max_hours: Optional[int] = 8
    max_consecutive_days: int = 5
    min_rest_hours: int = 11
    allow_multiple_shifts_per_day: bool = False
    allow_holiday_work: bool = True
    weekly_rest_days: int = 2


@dataclass
class Employee:
    """An employee that can be assigned to shifts.

    Employees without a rule have no daily hour cap, may work on
    holidays and take at most one shift per day.

    Attributes:
        id: Unique identifier; the final deterministic tie-break.
        name: Display name.
        skill_ids: Skills the employee holds.
        eligible_full: May take a paired full-day assignment.
        eligible_short_morning: May take a residual morning short block.
        eligible_short_afternoon: May take a residual afternoon short block.
        rule: Labor rules, if any.
    """

    id: str
    name: str = ""
    skill_ids: set[str] = field(default_factory=set)
    eligible_full: bool = True
    eligible_short_morning: bool = True
    eligible_short_afternoon: bool = True
    rule: Optional[EmployeeRule] = None

    def __post_init__(self):
        self.skill_ids = set(self.skill_ids)
        if not self.name:
            self.name = self.id

    def has_skill(self, skill_id: Optional[str]) -> bool:
        return skill_id is None or skill_id in self.skill_ids

    @property
    def allows_multiple_shifts(self) -> bool:
        return self.rule is not None and self.rule.allow_multiple_shifts_per_day

    @property
    def daily_max_hours(self) -> Optional[int]:
        return self.rule.daily_max_hours if self.rule is not None else None

    @property
    def allows_holiday_work(self) -> bool:
        return self.rule is None or self.rule.allow_holiday_work


@dataclass(frozen=True)
class AvailabilityWindow:
    """Recurring weekly availability of an employee.

    Attributes:
        employee_id: Owner of the window.
        day_of_week: Weekday the window applies to.
        start: Start in minutes since midnight.
        end: End in minutes since midnight (exclusive).
    """

    employee_id: str
    day_of_week: Weekday
    start: int
    end: int

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(
                f"Availability end ({self.end}) must be after start ({self.start})"
            )

    def contains(self, start: int, end: int) -> bool:
        return self.start <= start and end <= self.end


class ConstraintType(Enum):
    """Kinds of per-date employee constraints."""

    UNAVAILABLE = "UNAVAILABLE"
    VACATION = "VACATION"
    SICK_LEAVE = "SICK_LEAVE"
    PERSONAL = "PERSONAL"
    LIMITED = "LIMITED"  # Only shifts inside [start, end]
    PREFERRED = "PREFERRED"  # Ranking signal only

    @property
    def blocks_whole_day(self) -> bool:
        return self in _WHOLE_DAY_TYPES


_WHOLE_DAY_TYPES = frozenset({
    ConstraintType.UNAVAILABLE,
    ConstraintType.VACATION,
    ConstraintType.SICK_LEAVE,
    ConstraintType.PERSONAL,
})


@dataclass(frozen=True)
class Constraint:
    """A constraint for one employee on one date.

    Missing bounds mean start of day / end of day.

    Attributes:
        employee_id: Constrained employee.
        work_date: Date the constraint applies to.
        constraint_type: Kind of constraint.
        start: Window start in minutes (LIMITED/PREFERRED).
        end: Window end in minutes (LIMITED/PREFERRED).
        active: Inactive constraints are ignored.
        reason: Free text.
    """

    employee_id: str
    work_date: date
    constraint_type: ConstraintType
    start: Optional[int] = None
    end: Optional[int] = None
    active: bool = True
    reason: str = ""

    @property
    def window(self) -> tuple[int, int]:
        start = self.start if self.start is not None else 0
        end = self.end if self.end is not None else MINUTES_PER_DAY
        return start, end

    def blocks(self, start: int, end: int) -> bool:
        """Whether this constraint makes the employee ineligible for [start, end)."""
        if not self.active:
            return False
        if self.constraint_type.blocks_whole_day:
            return True
        if self.constraint_type == ConstraintType.LIMITED:
            allowed_start, allowed_end = self.window
            return start < allowed_start or end > allowed_end
        return False

    def prefers(self, start: int, end: int) -> bool:
        """Whether this constraint ranks the employee up for [start, end).

        Touching windows count as overlapping.
        """
        if not self.active or self.constraint_type != ConstraintType.PREFERRED:
            return False
        preferred_start, preferred_end = self.window
        return not (end < preferred_start or start > preferred_end)


@dataclass(frozen=True)
class Assignment:
    """One employee bound to one time range on one date.

    Attributes:
        employee_id: Assigned employee.
        work_date: Date of the shift.
        label: Shift label (e.g. "H09-REG").
        start: Start in minutes since midnight.
        end: End in minutes since midnight (exclusive).
        skill_id: Skill the seat was demanded for, if any.
    """

    employee_id: str
    work_date: date
    label: str
    start: int
    end: int
    skill_id: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        return self.end - self.start

    @property
    def hours(self) -> int:
        """Whole hours counted against daily caps (at least 1)."""
        return block_hours(self.start, self.end)

    def sort_key(self) -> tuple:
        return (self.work_date, self.start, self.label, self.employee_id)

    def overlaps(self, other: "Assignment") -> bool:
        return (
            self.work_date == other.work_date
            and self.start < other.end
            and other.start < self.end
        )

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "work_date": self.work_date.isoformat(),
            "label": self.label,
            "start": format_hhmm(self.start),
            "end": format_hhmm(self.end),
            "skill_id": self.skill_id,
        }

    @staticmethod
    def make_label(start: int, skill_code: Optional[str] = None) -> str:
        """Build the ``H<hour>[-<code>]`` label for a shift starting at ``start``."""
        prefix = f"H{start // 60:02d}"
        return f"{prefix}-{skill_code}" if skill_code else prefix


def block_hours(start: int, end: int) -> int:
    """Whole hours of a block, never less than one."""
    return max(1, (end - start) // 60)


def sort_assignments(assignments: list[Assignment]) -> list[Assignment]:
    """Sort by date, start, label, then employee id."""
    return sorted(assignments, key=Assignment.sort_key)


@dataclass
class ShiftTemplate:
    """Fixed shift definition used by the legacy template path.

    Attributes:
        name: Shift name, also used as the assignment label.
        start: Start in minutes since midnight.
        end: End in minutes since midnight (exclusive).
        required_employees: Seats used when no demand applies (1-20).
        active: Inactive templates are never selected.
        holiday: Template used on holidays.
        days: Weekdays the template applies to (empty = not day scoped).
        day_of_week: Single weekday scoping (older records).
        required_skill_id: Skill required from assigned employees.
    """

    name: str
    start: int
    end: int
    required_employees: int = 4
    active: bool = True
    holiday: bool = False
    days: frozenset = frozenset()
    day_of_week: Optional[Weekday] = None
    required_skill_id: Optional[str] = None

    def __post_init__(self):
        self.days = frozenset(self.days)
        if not 1 <= self.required_employees <= 20:
            raise ValueError(
                f"required_employees must be between 1 and 20, got {self.required_employees}"
            )
        if self.end <= self.start:
            raise ValueError(f"Template {self.name!r} ends before it starts")

    @property
    def is_generic(self) -> bool:
        return not self.holiday and self.day_of_week is None and not self.days


@dataclass
class RunState:
    """Mutable bookkeeping owned by a single generation run.

    Attributes:
        daily_assigned: Employees holding at least one assignment per date.
        daily_hours: Hours already assigned per date and employee.
        monthly_counts: Assignment counts used for fairness ordering.
        window_spans: Time ranges held per employee, keyed by date.
    """

    daily_assigned: dict[date, set[str]] = field(default_factory=dict)
    daily_hours: dict[date, dict[str, int]] = field(default_factory=dict)
    monthly_counts: dict[str, int] = field(default_factory=dict)
    window_spans: dict[str, list[tuple[date, int, int]]] = field(default_factory=dict)

    def is_assigned(self, day: date, employee_id: str) -> bool:
        return employee_id in self.daily_assigned.get(day, ())

    def hours_used(self, day: date, employee_id: str) -> int:
        return self.daily_hours.get(day, {}).get(employee_id, 0)

    def count(self, employee_id: str) -> int:
        return self.monthly_counts.get(employee_id, 0)

    def overlaps_span(self, employee_id: str, day: date, start: int, end: int) -> bool:
        return any(
            span_day == day and span_start < end and start < span_end
            for span_day, span_start, span_end in self.window_spans.get(employee_id, ())
        )

    def record(self, assignment: Assignment, hours: Optional[int] = None) -> None:
        """Book an assignment into every counter."""
        day = assignment.work_date
        employee_id = assignment.employee_id
        self.daily_assigned.setdefault(day, set()).add(employee_id)
        day_hours = self.daily_hours.setdefault(day, {})
        day_hours[employee_id] = day_hours.get(employee_id, 0) + (
            assignment.hours if hours is None else hours
        )
        self.monthly_counts[employee_id] = self.count(employee_id) + 1
        self.window_spans.setdefault(employee_id, []).append(
            (day, assignment.start, assignment.end)
        )
