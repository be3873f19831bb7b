"""Generation from fixed shift templates, and per-day diagnostics.

Older deployments staff a fixed set of named shifts per day instead of
synthesizing windows from demand. Demand still sizes each shift when it
overlaps it; otherwise the template's own head count applies.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from shiftengine.domain.demand import DemandDeclaration, overlapping_seats
from shiftengine.domain.models import (
    Assignment,
    ConstraintType,
    RunState,
    ShiftTemplate,
    Weekday,
    sort_assignments,
)
from shiftengine.error_log import ErrorLogBuffer
from shiftengine.errors import PreconditionError
from shiftengine.logging_setup import RunLogger, get_logger
from shiftengine.scheduling.assignment_engine import AssignmentEngine, ShortageInfo
from shiftengine.scheduling.rotation import carry_over
from shiftengine.scheduling.scheduler import GenerationReport, date_range, month_bounds
from shiftengine.store import ScheduleStore

logger = get_logger(__name__)


def select_templates_for_day(
    templates: list[ShiftTemplate], day: date, is_holiday: bool
) -> list[ShiftTemplate]:
    """Templates staffed on ``day``, sorted by start.

    The first non-empty group wins: holiday templates (on holidays),
    templates listing the weekday in ``days``, templates whose single
    ``day_of_week`` matches, then generic templates.
    """
    active = [t for t in templates if t.active]
    weekday = Weekday.of(day)

    groups = []
    if is_holiday:
        groups.append([t for t in active if t.holiday])
    groups.append([t for t in active if t.days and weekday in t.days])
    groups.append([t for t in active if t.day_of_week is not None and t.day_of_week == weekday])
    groups.append([t for t in active if t.is_generic])

    for group in groups:
        if group:
            return sorted(group, key=lambda t: t.start)
    return []


def compute_required(
    template: ShiftTemplate, day: date, demand: list[DemandDeclaration]
) -> int:
    """Seats a template needs on ``day``.

    The template is cut into segments at the boundaries of overlapping
    declarations; the largest segment demand wins. A template with a
    skill takes that skill's demand and falls back to skill-less demand.
    Without any demand the template's head count applies.
    """
    start, end = template.start, template.end
    points = {start, end}
    for declaration in demand:
        if declaration.active and declaration.applies_to(day) and declaration.overlaps(start, end):
            points.add(max(start, declaration.start))
            points.add(min(end, declaration.end))

    ordered = sorted(points)
    required = 0
    for seg_start, seg_end in zip(ordered, ordered[1:]):
        generic = overlapping_seats(demand, day, None, seg_start, seg_end)
        if template.required_skill_id is not None:
            by_skill = overlapping_seats(
                demand, day, template.required_skill_id, seg_start, seg_end
            )
            seats = by_skill if by_skill > 0 else generic
        else:
            seats = generic
        required = max(required, seats)

    if required <= 0:
        return max(1, template.required_employees)
    return required


@dataclass
class ShiftDiagnostics:
    """Why one template of a day is (not) fully staffed.

    Attributes:
        template_name: Name of the template.
        start: Start in minutes.
        end: End in minutes.
        required: Seats the template needs.
        assigned: Persisted assignments for the template.
        assigned_employees: Names of those assigned.
        unavailable_employees: Names blocked by a whole-day constraint.
        limited_mismatch_employees: Names whose LIMITED window excludes the shift.
        already_assigned_today: Names holding any assignment that day.
        preferred_employees: Names with a matching PREFERRED constraint.
    """

    template_name: str
    start: int
    end: int
    required: int
    assigned: int
    assigned_employees: list[str] = field(default_factory=list)
    unavailable_employees: list[str] = field(default_factory=list)
    limited_mismatch_employees: list[str] = field(default_factory=list)
    already_assigned_today: list[str] = field(default_factory=list)
    preferred_employees: list[str] = field(default_factory=list)

    @property
    def is_short(self) -> bool:
        return self.assigned < self.required


@dataclass
class DiagnosticReport:
    work_date: date
    shifts: list[ShiftDiagnostics] = field(default_factory=list)


class TemplateScheduler:
    """Staffs fixed shift templates day by day.

    Candidates are ranked by matching PREFERRED constraint, then monthly
    assignment count, then id; the eligibility filters are the ones of
    the demand-driven path.

    Example:
        >>> scheduler = TemplateScheduler(store)
        >>> report = scheduler.generate_month(2024, 3)
        >>> diagnostics = scheduler.diagnose_day(date(2024, 3, 4))
    """

    def __init__(self, store: ScheduleStore, error_log: Optional[ErrorLogBuffer] = None):
        self.store = store
        self.error_log = error_log if error_log is not None else ErrorLogBuffer()
        self.run_log = RunLogger()

    def generate_month(self, year: int, month: int) -> GenerationReport:
        start, end = month_bounds(year, month)
        return self.generate_period(start, end)

    def generate_period(self, start: date, end: date) -> GenerationReport:
        """Replace the assignments of [start, end] with template-based ones.

        Raises:
            PreconditionError: If the period is reversed, no employee is
                registered or no template is active. Nothing is deleted
                in that case.
        """
        if end < start:
            raise PreconditionError(f"Period end {end} is before start {start}")
        snapshot = self.store.load_snapshot(start, end)
        if not snapshot.employees:
            raise self._precondition("No employees registered; add employees before generating")
        templates = [t for t in snapshot.templates if t.active]
        if not templates:
            raise self._precondition("No active shift template; register templates before generating")

        self.run_log.phase(f"Template generation {start}..{end}")
        employees, counts = carry_over(self.store, start, snapshot.employees)
        engine = AssignmentEngine(snapshot, RunState(monthly_counts=dict(counts)), employees=employees)

        report = GenerationReport()
        for day in date_range(start, end):
            for template in select_templates_for_day(templates, day, snapshot.is_holiday(day)):
                required = compute_required(template, day, snapshot.demand)
                created = self._staff_template(engine, template, day, required)
                report.assignments.extend(created)
                if len(created) < required:
                    shortage = ShortageInfo(
                        work_date=day,
                        label=template.name,
                        start=template.start,
                        end=template.end,
                        skill_id=template.required_skill_id,
                        required=required,
                        assigned=len(created),
                    )
                    logger.warning("Shortage: %s", shortage)
                    report.shortages.append(shortage)
                    self.error_log.add_error(f"Shortage: {shortage}")

        report.assignments = sort_assignments(report.assignments)
        report.deleted = self.store.delete_assignments(start, end)
        self.store.save_assignments(report.assignments)
        self.run_log.step("Created %d assignment(s), %d shortage(s)",
                          report.filled_seats, len(report.shortages))
        return report

    def _precondition(self, message: str) -> PreconditionError:
        logger.error(message)
        self.error_log.add_error(message)
        return PreconditionError(message)

    def _staff_template(
        self, engine: AssignmentEngine, template: ShiftTemplate, day: date, required: int
    ) -> list[Assignment]:
        preferred = engine.preferred_employees(day, template.start, template.end)
        created = []
        while len(created) < required:
            employee = engine.select_candidate(
                day, template.start, template.end, template.required_skill_id,
                preferred, candidates=engine.employees, rank_short=False,
            )
            if employee is None:
                break
            created.append(engine.book(
                employee, day, template.start, template.end,
                template.required_skill_id, label=template.name,
            ))
            preferred.discard(employee.id)
        return created

    def diagnose_day(self, day: date) -> DiagnosticReport:
        """Explain the staffing of every template selected for ``day``."""
        snapshot = self.store.load_snapshot(day, day)
        templates = select_templates_for_day(snapshot.templates, day, snapshot.is_holiday(day))
        persisted = self.store.list_assignments(day, day)
        assigned_today = {a.employee_id for a in persisted}
        names = snapshot.employee_map
        engine = AssignmentEngine(snapshot, RunState())

        report = DiagnosticReport(work_date=day)
        for template in templates:
            for_template = [
                a for a in persisted
                if a.label == template.name and a.start == template.start and a.end == template.end
            ]
            preferred = engine.preferred_employees(day, template.start, template.end)
            diagnostics = ShiftDiagnostics(
                template_name=template.name,
                start=template.start,
                end=template.end,
                required=compute_required(template, day, snapshot.demand),
                assigned=len(for_template),
                assigned_employees=[
                    names[a.employee_id].name if a.employee_id in names else a.employee_id
                    for a in for_template
                ],
                preferred_employees=[e.name for e in snapshot.employees if e.id in preferred],
            )
            for employee in snapshot.employees:
                if employee.id in assigned_today:
                    diagnostics.already_assigned_today.append(employee.name)
                    continue
                constraints = snapshot.constraints_for(day, employee.id)
                if any(c.constraint_type.blocks_whole_day for c in constraints):
                    diagnostics.unavailable_employees.append(employee.name)
                    continue
                if any(
                    c.constraint_type == ConstraintType.LIMITED
                    and c.blocks(template.start, template.end)
                    for c in constraints
                ):
                    diagnostics.limited_mismatch_employees.append(employee.name)
            report.shifts.append(diagnostics)
        return report
