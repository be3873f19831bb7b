"""Carry-over between periods: employee rotation and fairness seeding."""

from collections import Counter
from datetime import date, timedelta
from typing import Iterable, Optional

from shiftengine.domain.models import Assignment, Employee
from shiftengine.logging_setup import get_logger

logger = get_logger(__name__)


def rotation_offset(last_assignment: Optional[Assignment], employees: list[Employee]) -> int:
    """Position just after the employee of the last pre-period assignment.

    Returns 0 when there is no such assignment or its employee is unknown.
    """
    if last_assignment is None or not employees:
        return 0
    for i, employee in enumerate(employees):
        if employee.id == last_assignment.employee_id:
            offset = (i + 1) % len(employees)
            logger.debug("Rotation offset %d after employee %s", offset, employee.id)
            return offset
    return 0


def rotate(employees: list[Employee], offset: int) -> list[Employee]:
    """Return ``employees`` starting at ``offset`` and wrapping around."""
    if not employees:
        return []
    offset %= len(employees)
    return employees[offset:] + employees[:offset]


def fairness_history_range(period_start: date) -> tuple[date, date]:
    """First day of the previous month through the day before ``period_start``."""
    history_end = period_start - timedelta(days=1)
    history_start = (period_start.replace(day=1) - timedelta(days=1)).replace(day=1)
    return history_start, history_end


def seed_counts(assignments: Iterable[Assignment]) -> dict[str, int]:
    """Assignments per employee."""
    return dict(Counter(a.employee_id for a in assignments))


def carry_over(store, period_start: date, employees: list[Employee]) -> tuple[list[Employee], dict[str, int]]:
    """Rotated employee order and seeded fairness counts for a new run.

    Args:
        store: ScheduleStore holding the assignments of earlier periods.
        period_start: First day of the run.
        employees: Employees sorted by id.
    """
    offset = rotation_offset(store.last_assignment_before(period_start), employees)
    history_start, history_end = fairness_history_range(period_start)
    counts = seed_counts(store.list_assignments(history_start, history_end))
    logger.info(
        "Rotation offset %d, fairness seeded from %d assignment(s) in %s..%s",
        offset, sum(counts.values()), history_start, history_end,
    )
    return rotate(employees, offset), counts
