"""Main scheduler interface.

This module provides the DemandScheduler class that orchestrates a
demand-driven generation run: demand aggregation, optional pairing,
window synthesis, block splitting and greedy assignment, followed by the
full replacement of the period's persisted assignments.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterator, Optional

from shiftengine.domain.demand import DemandAggregator, overlapping_seats
from shiftengine.domain.models import Assignment, RunState, format_hhmm, sort_assignments
from shiftengine.domain.policies import EngineConfig, PairingSettings, ResolvedPairing
from shiftengine.error_log import ErrorLogBuffer
from shiftengine.errors import ConfigurationError, PreconditionError
from shiftengine.logging_setup import RunLogger, get_logger
from shiftengine.scheduling.assignment_engine import AssignmentEngine, ShortageInfo, SubBlock
from shiftengine.scheduling.block_splitter import BlockSplitter, order_skills, order_windows
from shiftengine.scheduling.pairing import PairingPass
from shiftengine.scheduling.rotation import carry_over
from shiftengine.scheduling.window_synthesizer import Window, WindowTag, synthesize_windows
from shiftengine.store import ScheduleStore, Snapshot

logger = get_logger(__name__)


def date_range(start: date, end: date) -> Iterator[date]:
    """Every date from ``start`` through ``end``."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a month.

    Raises:
        PreconditionError: If the month does not exist.
    """
    try:
        last = calendar.monthrange(year, month)[1]
    except ValueError as exc:
        raise PreconditionError(f"Invalid month: {year}-{month}") from exc
    return date(year, month, 1), date(year, month, last)


@dataclass
class GenerationReport:
    """Result of a generation run.

    Attributes:
        assignments: Created assignments sorted by date, start, label and
            employee id.
        shortages: Blocks whose seats could not all be filled.
        unfilled_days: Days with demand that received no assignment.
        deleted: Number of persisted assignments replaced.
    """

    assignments: list[Assignment] = field(default_factory=list)
    shortages: list[ShortageInfo] = field(default_factory=list)
    unfilled_days: list[date] = field(default_factory=list)
    deleted: int = 0

    @property
    def filled_seats(self) -> int:
        return len(self.assignments)

    @property
    def required_seats(self) -> int:
        return self.filled_seats + sum(s.missing for s in self.shortages)

    @property
    def missing_seats(self) -> int:
        return sum(s.missing for s in self.shortages)

    def get_summary(self) -> dict:
        """Get a summary of the run."""
        per_day: dict[str, int] = {}
        for assignment in self.assignments:
            key = assignment.work_date.isoformat()
            per_day[key] = per_day.get(key, 0) + 1
        return {
            "assignments": self.filled_seats,
            "required_seats": self.required_seats,
            "missing_seats": self.missing_seats,
            "shortages": len(self.shortages),
            "unfilled_days": [d.isoformat() for d in self.unfilled_days],
            "employees_used": len({a.employee_id for a in self.assignments}),
            "assignments_by_day": per_day,
            "replaced": self.deleted,
        }


class DemandScheduler:
    """High-level scheduler for demand-driven generation.

    One run reads a snapshot of the store, builds assignments day by day
    and replaces the period's persisted assignments with them. Shortages
    never abort a run: they are logged, collected in the report and
    pushed to the error log.

    Example:
        >>> scheduler = DemandScheduler(store)
        >>> report = scheduler.generate_month(2024, 3)
        >>> report.get_summary()["assignments"]
        412
    """

    def __init__(
        self,
        store: ScheduleStore,
        config: Optional[EngineConfig] = None,
        pairing: Optional[PairingSettings] = None,
        error_log: Optional[ErrorLogBuffer] = None,
    ):
        """Initialize scheduler.

        Args:
            store: Source of input data and sink for assignments.
            config: Engine settings.
            pairing: Morning/afternoon pairing settings (disabled by default).
            error_log: Buffer receiving shortages and failures.
        """
        self.store = store
        self.config = config or EngineConfig()
        self.pairing = pairing or PairingSettings()
        self.error_log = error_log if error_log is not None else ErrorLogBuffer()
        self.run_log = RunLogger()

    # ------------------------------------------------------------------
    # Period generation
    # ------------------------------------------------------------------

    def generate_month(self, year: int, month: int, reset: bool = True) -> GenerationReport:
        start, end = month_bounds(year, month)
        return self.generate_period(start, end, reset=reset)

    def generate_period(self, start: date, end: date, reset: bool = True) -> GenerationReport:
        """Generate assignments for every day in [start, end].

        Args:
            start: First day.
            end: Last day (inclusive).
            reset: Delete the period's persisted assignments before saving.
                When False they are kept and treated as already booked.

        Returns:
            GenerationReport of the run.

        Raises:
            PreconditionError: If the period is reversed or there are no
                employees. Nothing is deleted or written in that case.
        """
        if end < start:
            raise PreconditionError(f"Period end {end} is before start {start}")

        self.run_log.phase(f"Demand generation {start}..{end}")
        snapshot = self.store.load_snapshot(start, end)
        if not snapshot.employees:
            message = "No employees registered; add employees before generating"
            logger.error(message)
            self.error_log.add_error(message)
            raise PreconditionError(message)

        employees, counts = carry_over(self.store, start, snapshot.employees)
        state = RunState(monthly_counts=dict(counts))
        if not reset:
            for existing in self.store.list_assignments(start, end):
                state.record(existing)

        engine = AssignmentEngine(snapshot, state, self.config, employees=employees)
        pairing = self._resolve_pairing()
        aggregator = DemandAggregator(self.config.granularity_minutes)
        self.run_log.step("%d employee(s), %d demand declaration(s), pairing %s",
                          len(employees), len(snapshot.demand),
                          "on" if pairing else "off")

        report = GenerationReport()
        for day in date_range(start, end):
            day_demand = aggregator.aggregate_day(snapshot.demand, day)
            if not day_demand.has_demand:
                continue
            curves = {skill_id: list(curve) for skill_id, curve in day_demand.curves.items()}
            created = self._generate_day(day, curves, snapshot, engine, pairing, report)
            report.assignments.extend(created)
            if not created:
                logger.warning("No assignment could be made on %s despite demand", day)
                report.unfilled_days.append(day)

        report.assignments = sort_assignments(report.assignments)
        if reset:
            report.deleted = self.store.delete_assignments(start, end)
            self.run_log.detail("deleted", report.deleted)
        self.store.save_assignments(report.assignments)

        self.run_log.step("Created %d assignment(s), %d shortage(s), %d missing seat(s)",
                          report.filled_seats, len(report.shortages), report.missing_seats)
        return report

    def _resolve_pairing(self) -> Optional[ResolvedPairing]:
        if not self.pairing.enabled:
            return None
        try:
            return self.pairing.resolve()
        except ConfigurationError as exc:
            logger.warning("Pairing disabled for this run: %s", exc)
            self.error_log.add_error("Pairing disabled for this run", exc)
            return None

    def _generate_day(
        self,
        day: date,
        curves: dict[str, list[int]],
        snapshot: Snapshot,
        engine: AssignmentEngine,
        pairing: Optional[ResolvedPairing],
        report: GenerationReport,
    ) -> list[Assignment]:
        """Staff one day from its (mutable) seat curves."""
        created = []
        pairing_pass = None
        if pairing is not None:
            pairing_pass = PairingPass(engine, pairing, self.config.granularity_minutes)
            created.extend(pairing_pass.run(day, curves))

        windows = synthesize_windows(
            curves, self.config.granularity_minutes, self.config.max_window_minutes
        )
        for window in order_windows(windows.values(), self.config.midday_minute):
            if pairing_pass is not None:
                window.tag = pairing_pass.tag_for(window)
            prefer_short_only = bool(
                pairing is not None and pairing.prefer_shorts and window.tag is not None
            )
            for skill_id, seats in order_skills(window.per_skill_seats, snapshot.skills):
                created.extend(self._staff_unit(
                    day, window, skill_id, seats, engine, report, prefer_short_only
                ))
        return created

    def _staff_unit(
        self,
        day: date,
        window: Window,
        skill_id: Optional[str],
        seats: int,
        engine: AssignmentEngine,
        report: GenerationReport,
        prefer_short_only: bool = False,
    ) -> list[Assignment]:
        """Split one (window, skill) unit into blocks and fill their seats."""
        tag: Optional[WindowTag] = window.tag

        def gate(start: int, end: int, length_hours: int) -> bool:
            return engine.allow_short_block(day, start, end, skill_id, length_hours, tag=tag)

        splitter = BlockSplitter(self.config, gate)
        created = []
        covered = 0
        for start, end in splitter.split(window.start, window.end):
            covered += end - start
            assignments, shortage = engine.assign_block(
                day, SubBlock(start, end, skill_id, seats),
                tag=tag, prefer_short_only=prefer_short_only,
            )
            created.extend(assignments)
            if shortage is not None:
                report.shortages.append(shortage)
                self.error_log.add_error(f"Shortage: {shortage}")

        if covered < window.duration_minutes:
            logger.debug("%s %s: %d of %d minute(s) left uncovered for %s",
                         day, window, window.duration_minutes - covered,
                         window.duration_minutes, skill_id)
        return created

    # ------------------------------------------------------------------
    # Hourly generation
    # ------------------------------------------------------------------

    def generate_hourly_for_day(
        self,
        day: date,
        start_hour: int,
        end_hour: int,
        skill_id: Optional[str],
    ) -> list[Assignment]:
        """Create one-hour assignments for each hour with skill demand.

        The day's persisted assignments are replaced. An employee may hold
        several hours of the day, still bounded by the daily hour cap.

        Raises:
            PreconditionError: If there are no employees.
        """
        snapshot = self.store.load_snapshot(day, day)
        if not snapshot.employees:
            raise PreconditionError("No employees registered; add employees before generating")

        self.run_log.phase(f"Hourly generation {day} {start_hour:02d}..{end_hour:02d}")
        if skill_id is None:
            logger.warning("Hourly generation without a skill creates no assignment")

        engine = AssignmentEngine(snapshot, RunState(), self.config)
        created = []
        for hour in range(max(0, start_hour), min(24, end_hour)):
            start = hour * 60
            end = start + 60
            if skill_id is None:
                break
            seats = overlapping_seats(snapshot.demand, day, skill_id, start, end)
            if seats <= 0:
                continue
            assignments, shortage = engine.assign_block(
                day, SubBlock(start, end, skill_id, seats),
                rank_short=False, allow_repeat=True,
            )
            created.extend(assignments)
            if shortage is not None:
                self.error_log.add_error(f"Shortage: {shortage}")
            logger.debug("Hour %s: %d/%d seat(s)", format_hhmm(start), len(assignments), seats)

        created = sort_assignments(created)
        deleted = self.store.delete_assignments(day, day)
        self.store.save_assignments(created)
        self.run_log.step("Replaced %d assignment(s) with %d hourly assignment(s)",
                          deleted, len(created))
        return created
