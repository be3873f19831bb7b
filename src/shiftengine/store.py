"""Data access boundary of the engine.

The engine never talks to a database. It reads everything it needs once
per run through a ``ScheduleStore`` into an immutable ``Snapshot`` and
writes its result back through the same store. ``InMemoryStore`` is the
bundled implementation, also used by the command line and the tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Optional

from shiftengine.domain.demand import DemandDeclaration
from shiftengine.domain.models import (
    Assignment,
    AvailabilityWindow,
    Constraint,
    ConstraintType,
    Employee,
    EmployeeRule,
    PriorityHint,
    ShiftTemplate,
    Skill,
    SkillPattern,
    Weekday,
    to_minutes,
)


@dataclass
class Snapshot:
    """Everything a run reads, loaded once at run start.

    Attributes:
        period_start: First day of the period.
        period_end: Last day of the period.
        employees: Employees sorted by id.
        skills: Skill id to skill.
        patterns_by_skill: Active skill patterns grouped by skill id.
        availability_by_employee: Weekly availability grouped by employee.
        constraints_by_date: Active constraints grouped by date and employee.
        holidays: Holiday dates inside the period.
        demand: All demand declarations.
        templates: Shift templates (legacy path).
    """

    period_start: date
    period_end: date
    employees: list[Employee]
    skills: dict[str, Skill] = field(default_factory=dict)
    patterns_by_skill: dict[str, list[SkillPattern]] = field(default_factory=dict)
    availability_by_employee: dict[str, list[AvailabilityWindow]] = field(default_factory=dict)
    constraints_by_date: dict[date, dict[str, list[Constraint]]] = field(default_factory=dict)
    holidays: set[date] = field(default_factory=set)
    demand: list[DemandDeclaration] = field(default_factory=list)
    templates: list[ShiftTemplate] = field(default_factory=list)

    def __post_init__(self):
        self._by_skill: dict[str, list[Employee]] = {}
        for employee in self.employees:
            for skill_id in sorted(employee.skill_ids):
                self._by_skill.setdefault(skill_id, []).append(employee)

    def employees_with_skill(self, skill_id: str) -> list[Employee]:
        """Employees holding ``skill_id``, in the snapshot's employee order."""
        return self._by_skill.get(skill_id, [])

    def constraints_for(self, day: date, employee_id: str) -> list[Constraint]:
        return self.constraints_by_date.get(day, {}).get(employee_id, [])

    def constraints_on(self, day: date) -> dict[str, list[Constraint]]:
        return self.constraints_by_date.get(day, {})

    def availability_for(self, employee_id: str, weekday: int) -> list[AvailabilityWindow]:
        return [
            window for window in self.availability_by_employee.get(employee_id, [])
            if window.day_of_week == weekday
        ]

    def is_holiday(self, day: date) -> bool:
        return day in self.holidays

    @property
    def employee_map(self) -> dict[str, Employee]:
        return {e.id: e for e in self.employees}


class ScheduleStore(ABC):
    """Collaborator interface the engine reads from and writes to."""

    @abstractmethod
    def list_employees(self) -> list[Employee]:
        pass

    @abstractmethod
    def list_skills(self) -> list[Skill]:
        pass

    @abstractmethod
    def list_skill_patterns(self) -> list[SkillPattern]:
        pass

    @abstractmethod
    def list_availability(self) -> list[AvailabilityWindow]:
        pass

    @abstractmethod
    def list_constraints(self, start: date, end: date) -> list[Constraint]:
        """Constraints dated inside [start, end]."""
        pass

    @abstractmethod
    def list_holidays(self, start: date, end: date) -> set[date]:
        pass

    @abstractmethod
    def list_demand(self) -> list[DemandDeclaration]:
        pass

    @abstractmethod
    def list_shift_templates(self) -> list[ShiftTemplate]:
        pass

    @abstractmethod
    def list_assignments(self, start: date, end: date) -> list[Assignment]:
        """Persisted assignments dated inside [start, end]."""
        pass

    @abstractmethod
    def last_assignment_before(self, day: date) -> Optional[Assignment]:
        """Latest persisted assignment dated strictly before ``day``."""
        pass

    @abstractmethod
    def delete_assignments(self, start: date, end: date) -> int:
        """Delete assignments (and dependent records) inside [start, end]."""
        pass

    @abstractmethod
    def save_assignments(self, assignments: Iterable[Assignment]) -> list[Assignment]:
        pass

    def load_snapshot(self, start: date, end: date) -> Snapshot:
        """Read everything a run over [start, end] needs, once."""
        employees = sorted(self.list_employees(), key=lambda e: e.id)

        patterns_by_skill: dict[str, list[SkillPattern]] = {}
        for pattern in self.list_skill_patterns():
            if pattern.active:
                patterns_by_skill.setdefault(pattern.skill_id, []).append(pattern)

        availability: dict[str, list[AvailabilityWindow]] = {}
        for window in self.list_availability():
            availability.setdefault(window.employee_id, []).append(window)

        constraints: dict[date, dict[str, list[Constraint]]] = {}
        for constraint in self.list_constraints(start, end):
            if not constraint.active:
                continue
            constraints.setdefault(constraint.work_date, {}).setdefault(
                constraint.employee_id, []
            ).append(constraint)

        return Snapshot(
            period_start=start,
            period_end=end,
            employees=employees,
            skills={s.id: s for s in self.list_skills()},
            patterns_by_skill=patterns_by_skill,
            availability_by_employee=availability,
            constraints_by_date=constraints,
            holidays=set(self.list_holidays(start, end)),
            demand=list(self.list_demand()),
            templates=list(self.list_shift_templates()),
        )


class InMemoryStore(ScheduleStore):
    """A store holding everything in plain lists."""

    def __init__(
        self,
        employees: Optional[list[Employee]] = None,
        skills: Optional[list[Skill]] = None,
        skill_patterns: Optional[list[SkillPattern]] = None,
        availability: Optional[list[AvailabilityWindow]] = None,
        constraints: Optional[list[Constraint]] = None,
        holidays: Optional[Iterable[date]] = None,
        demand: Optional[list[DemandDeclaration]] = None,
        shift_templates: Optional[list[ShiftTemplate]] = None,
        assignments: Optional[list[Assignment]] = None,
    ):
        self.employees = list(employees or [])
        self.skills = list(skills or [])
        self.skill_patterns = list(skill_patterns or [])
        self.availability = list(availability or [])
        self.constraints = list(constraints or [])
        self.holidays = set(holidays or [])
        self.demand = list(demand or [])
        self.shift_templates = list(shift_templates or [])
        self.assignments = list(assignments or [])

    def list_employees(self) -> list[Employee]:
        return list(self.employees)

    def list_skills(self) -> list[Skill]:
        return list(self.skills)

    def list_skill_patterns(self) -> list[SkillPattern]:
        return list(self.skill_patterns)

    def list_availability(self) -> list[AvailabilityWindow]:
        return list(self.availability)

    def list_constraints(self, start: date, end: date) -> list[Constraint]:
        return [c for c in self.constraints if start <= c.work_date <= end]

    def list_holidays(self, start: date, end: date) -> set[date]:
        return {d for d in self.holidays if start <= d <= end}

    def list_demand(self) -> list[DemandDeclaration]:
        return list(self.demand)

    def list_shift_templates(self) -> list[ShiftTemplate]:
        return list(self.shift_templates)

    def list_assignments(self, start: date, end: date) -> list[Assignment]:
        return [a for a in self.assignments if start <= a.work_date <= end]

    def last_assignment_before(self, day: date) -> Optional[Assignment]:
        earlier = [a for a in self.assignments if a.work_date < day]
        if not earlier:
            return None
        return max(earlier, key=lambda a: (a.work_date, a.start, a.label, a.employee_id))

    def delete_assignments(self, start: date, end: date) -> int:
        before = len(self.assignments)
        self.assignments = [a for a in self.assignments if not start <= a.work_date <= end]
        return before - len(self.assignments)

    def save_assignments(self, assignments: Iterable[Assignment]) -> list[Assignment]:
        saved = list(assignments)
        self.assignments.extend(saved)
        return saved

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InMemoryStore":
        """Build a store from a JSON-shaped dict.

        Times are ``"HH:MM"`` strings (or minutes), dates ISO strings,
        weekdays names such as ``"MONDAY"``.
        """
        return cls(
            employees=[_employee_from_dict(e) for e in data.get("employees", [])],
            skills=[
                Skill(
                    id=str(s["id"]),
                    code=s.get("code"),
                    name=s.get("name", ""),
                    priority=int(s.get("priority") or 5),
                )
                for s in data.get("skills", [])
            ],
            skill_patterns=[
                SkillPattern(
                    skill_id=str(p["skill_id"]),
                    allowed_lengths_csv=p.get("allowed_lengths_csv", "6,4"),
                    day_of_week=_weekday(p.get("day_of_week")),
                    start=to_minutes(p.get("start")),
                    end=to_minutes(p.get("end")),
                    active=p.get("active", True),
                    priority_hint=PriorityHint(p.get("priority_hint", "any").lower()),
                )
                for p in data.get("skill_patterns", [])
            ],
            availability=[
                AvailabilityWindow(
                    employee_id=str(a["employee_id"]),
                    day_of_week=Weekday.parse(a["day_of_week"]),
                    start=to_minutes(a["start"]),
                    end=to_minutes(a["end"]),
                )
                for a in data.get("availability", [])
            ],
            constraints=[
                Constraint(
                    employee_id=str(c["employee_id"]),
                    work_date=date.fromisoformat(c["date"]),
                    constraint_type=ConstraintType(c["type"].upper()),
                    start=to_minutes(c.get("start")),
                    end=to_minutes(c.get("end")),
                    active=c.get("active", True),
                    reason=c.get("reason", ""),
                )
                for c in data.get("constraints", [])
            ],
            holidays=[date.fromisoformat(d) for d in data.get("holidays", [])],
            demand=[_demand_from_dict(d) for d in data.get("demand", [])],
            shift_templates=[_template_from_dict(t) for t in data.get("shift_templates", [])],
            assignments=[
                Assignment(
                    employee_id=str(a["employee_id"]),
                    work_date=date.fromisoformat(a["work_date"]),
                    label=a.get("label", ""),
                    start=to_minutes(a["start"]),
                    end=to_minutes(a["end"]),
                    skill_id=a.get("skill_id"),
                )
                for a in data.get("assignments", [])
            ],
        )


def _weekday(value: Any) -> Optional[Weekday]:
    return None if value is None else Weekday.parse(value)


def _employee_from_dict(data: dict[str, Any]) -> Employee:
    rule = data.get("rule")
    return Employee(
        id=str(data["id"]),
        name=data.get("name", ""),
        skill_ids={str(s) for s in data.get("skills", [])},
        eligible_full=data.get("eligible_full", True),
        eligible_short_morning=data.get("eligible_short_morning", True),
        eligible_short_afternoon=data.get("eligible_short_afternoon", True),
        rule=EmployeeRule(**rule) if rule is not None else None,
    )


def _demand_from_dict(data: dict[str, Any]) -> DemandDeclaration:
    skill_id = data.get("skill_id")
    work_date = data.get("date")
    return DemandDeclaration(
        skill_id=str(skill_id) if skill_id is not None else None,
        start=to_minutes(data["start"]),
        end=to_minutes(data["end"]),
        required_seats=int(data.get("seats", data.get("required_seats", 0))),
        work_date=date.fromisoformat(work_date) if work_date else None,
        day_of_week=_weekday(data.get("day_of_week")),
        active=data.get("active", True),
        sort_order=int(data.get("sort_order", 0)),
        id=data.get("id"),
    )


def _template_from_dict(data: dict[str, Any]) -> ShiftTemplate:
    return ShiftTemplate(
        name=data["name"],
        start=to_minutes(data["start"]),
        end=to_minutes(data["end"]),
        required_employees=int(data.get("required_employees", 4)),
        active=data.get("active", True),
        holiday=data.get("holiday", False),
        days=frozenset(Weekday.parse(d) for d in data.get("days", [])),
        day_of_week=_weekday(data.get("day_of_week")),
        required_skill_id=data.get("required_skill_id"),
    )
