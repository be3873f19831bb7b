"""Validation module for verifying assignment sets.

This module re-checks produced assignments against the snapshot they
were generated from. Every rule the engine enforces while selecting
candidates is checked here independently, so a generated set can be
verified before it is handed on.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from shiftengine.domain.models import Assignment, ConstraintType, format_hhmm
from shiftengine.store import Snapshot


class ValidationErrorType(Enum):
    """Types of validation errors."""

    UNKNOWN_EMPLOYEE = "unknown_employee"
    OVERLAPPING_ASSIGNMENTS = "overlapping_assignments"
    MULTIPLE_SHIFTS_NOT_ALLOWED = "multiple_shifts_not_allowed"
    DAILY_HOURS_EXCEEDED = "daily_hours_exceeded"
    HARD_CONSTRAINT_VIOLATED = "hard_constraint_violated"
    LIMITED_WINDOW_VIOLATED = "limited_window_violated"
    OUTSIDE_AVAILABILITY = "outside_availability"
    HOLIDAY_WORK_NOT_ALLOWED = "holiday_work_not_allowed"
    MISSING_SKILL = "missing_skill"


@dataclass
class ValidationError:
    """A single validation error."""

    error_type: ValidationErrorType
    message: str
    employee_id: Optional[str] = None
    work_date: Optional[date] = None
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.error_type.value}]"]
        if self.employee_id:
            parts.append(f"Employee {self.employee_id}:")
        parts.append(self.message)
        if self.work_date is not None:
            parts.append(f"({self.work_date})")
        return " ".join(parts)


@dataclass
class ValidationResult:
    """Result of validating an assignment set."""

    is_valid: bool = True
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, error: ValidationError) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(warning)

    def errors_of(self, error_type: ValidationErrorType) -> list[ValidationError]:
        return [e for e in self.errors if e.error_type == error_type]


def _span(assignment: Assignment) -> str:
    return f"{assignment.label} {format_hhmm(assignment.start)}-{format_hhmm(assignment.end)}"


class ScheduleValidator:
    """Validates assignments against employee rules and constraints.

    Example:
        >>> validator = ScheduleValidator()
        >>> result = validator.validate(report.assignments, snapshot)
        >>> if not result.is_valid:
        ...     for error in result.errors:
        ...         print(error)
    """

    def validate(self, assignments: list[Assignment], snapshot: Snapshot) -> ValidationResult:
        """Validate a complete assignment set.

        Args:
            assignments: Assignments to check.
            snapshot: Snapshot holding employees, constraints and holidays.

        Returns:
            ValidationResult with is_valid flag and any errors.
        """
        result = ValidationResult()
        employees = snapshot.employee_map

        by_employee_day: dict[tuple[str, date], list[Assignment]] = {}
        for assignment in assignments:
            by_employee_day.setdefault(
                (assignment.employee_id, assignment.work_date), []
            ).append(assignment)

        for (employee_id, day), held in sorted(by_employee_day.items()):
            employee = employees.get(employee_id)
            if employee is None:
                result.add_error(ValidationError(
                    error_type=ValidationErrorType.UNKNOWN_EMPLOYEE,
                    message=f"Unknown employee ID: {employee_id}",
                    employee_id=employee_id,
                    work_date=day,
                ))
                continue

            held = sorted(held, key=lambda a: (a.start, a.end))
            self._validate_day_totals(result, employee, day, held)
            for assignment in held:
                self._validate_assignment(result, employee, assignment, snapshot)

        return result

    def _validate_day_totals(self, result, employee, day, held) -> None:
        """Overlaps, second shifts and daily hours of one employee on one day."""
        for first, second in zip(held, held[1:]):
            if first.overlaps(second):
                result.add_error(ValidationError(
                    error_type=ValidationErrorType.OVERLAPPING_ASSIGNMENTS,
                    message=f"{_span(first)} overlaps {_span(second)}",
                    employee_id=employee.id,
                    work_date=day,
                ))

        if len(held) > 1 and not employee.allows_multiple_shifts:
            result.add_error(ValidationError(
                error_type=ValidationErrorType.MULTIPLE_SHIFTS_NOT_ALLOWED,
                message=f"{len(held)} assignments but only one shift per day is allowed",
                employee_id=employee.id,
                work_date=day,
                details={"count": len(held)},
            ))

        daily_max = employee.daily_max_hours
        if daily_max is not None:
            hours = sum(a.hours for a in held)
            if hours > daily_max:
                result.add_error(ValidationError(
                    error_type=ValidationErrorType.DAILY_HOURS_EXCEEDED,
                    message=f"{hours}h assigned exceeds daily max of {daily_max}h",
                    employee_id=employee.id,
                    work_date=day,
                    details={"hours": hours, "max": daily_max},
                ))

    def _validate_assignment(self, result, employee, assignment, snapshot) -> None:
        day = assignment.work_date
        start, end = assignment.start, assignment.end

        if not employee.has_skill(assignment.skill_id):
            result.add_error(ValidationError(
                error_type=ValidationErrorType.MISSING_SKILL,
                message=f"{_span(assignment)} requires skill {assignment.skill_id}",
                employee_id=employee.id,
                work_date=day,
            ))

        windows = snapshot.availability_for(employee.id, day.weekday())
        if windows and not any(w.contains(start, end) for w in windows):
            result.add_error(ValidationError(
                error_type=ValidationErrorType.OUTSIDE_AVAILABILITY,
                message=f"{_span(assignment)} is outside weekly availability",
                employee_id=employee.id,
                work_date=day,
            ))

        for constraint in snapshot.constraints_for(day, employee.id):
            if not constraint.blocks(start, end):
                continue
            if constraint.constraint_type == ConstraintType.LIMITED:
                allowed_start, allowed_end = constraint.window
                result.add_error(ValidationError(
                    error_type=ValidationErrorType.LIMITED_WINDOW_VIOLATED,
                    message=(
                        f"{_span(assignment)} is outside limited window "
                        f"{format_hhmm(allowed_start)}-{format_hhmm(allowed_end)}"
                    ),
                    employee_id=employee.id,
                    work_date=day,
                ))
            else:
                result.add_error(ValidationError(
                    error_type=ValidationErrorType.HARD_CONSTRAINT_VIOLATED,
                    message=f"{_span(assignment)} on a {constraint.constraint_type.value} day",
                    employee_id=employee.id,
                    work_date=day,
                    details={"constraint": constraint.constraint_type.value},
                ))

        if snapshot.is_holiday(day) and not employee.allows_holiday_work:
            result.add_error(ValidationError(
                error_type=ValidationErrorType.HOLIDAY_WORK_NOT_ALLOWED,
                message=f"{_span(assignment)} on a holiday",
                employee_id=employee.id,
                work_date=day,
            ))
