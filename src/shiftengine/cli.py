"""Command-line interface for the shiftengine scheduling tool."""

import argparse
import json
import sys
from dataclasses import replace
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Optional

from shiftengine.domain.demand import DemandAggregator, DemandDeclaration
from shiftengine.domain.models import (
    AvailabilityWindow,
    Constraint,
    ConstraintType,
    Employee,
    EmployeeRule,
    Skill,
    Weekday,
    format_hhmm,
    parse_hhmm,
)
from shiftengine.domain.policies import EngineConfig, PairingSettings
from shiftengine.error_log import ErrorLogBuffer
from shiftengine.errors import ShiftEngineError
from shiftengine.logging_setup import setup_logging
from shiftengine.scheduling.scheduler import DemandScheduler, GenerationReport, month_bounds
from shiftengine.scheduling.template_scheduler import TemplateScheduler
from shiftengine.store import InMemoryStore
from shiftengine.validation.validator import ScheduleValidator


def load_json(path: str) -> dict[str, Any]:
    with open(path, encoding="utf-8") as handle:
        return json.load(handle)


def load_config(path: Optional[str]) -> tuple[EngineConfig, PairingSettings]:
    """Read engine and pairing settings from a JSON file.

    The file holds an ``engine`` and a ``pairing`` object; a file without
    them is read as engine settings only.
    """
    if not path:
        return EngineConfig(), PairingSettings()
    data = load_json(path)
    engine = data.get("engine", data)
    pairing = data.get("pairing", {})
    return EngineConfig.from_mapping(engine), PairingSettings.from_mapping(pairing)


def resolve_period(args: argparse.Namespace) -> tuple[date, date]:
    """Period from ``--month YYYY-MM`` or ``--start``/``--end``."""
    if args.month:
        year, month = (int(part) for part in args.month.split("-"))
        return month_bounds(year, month)
    start = date.fromisoformat(args.start) if args.start else date.today()
    end = date.fromisoformat(args.end) if args.end else start
    return start, end


def create_sample_store(employee_count: int = 10, start: Optional[date] = None) -> InMemoryStore:
    """Create a store with sample skills, employees and weekly demand.

    Args:
        employee_count: Number of employees to create.
        start: First day of the sample period (used for constraints).
    """
    start = start or date.today()
    skills = [
        Skill(id="REG", code="REG", name="Register", priority=1),
        Skill(id="STK", code="STK", name="Stocking", priority=2),
    ]

    names = [
        "Alice", "Bob", "Carol", "David", "Eve", "Frank", "Grace", "Henry",
        "Ivy", "Jack", "Kate", "Leo", "Mia", "Noah", "Olivia", "Paul",
    ]

    employees = []
    availability = []
    constraints = []
    for i in range(employee_count):
        name = names[i % len(names)]
        if i >= len(names):
            name = f"{name}{i // len(names) + 1}"
        employee_id = f"E{i + 1:03d}"

        skill_ids = {"REG"} if i % 3 else {"REG", "STK"}
        # 9h leaves room for a paired full day
        rule = EmployeeRule(daily_max_hours=4 if i % 5 == 4 else 9)
        employees.append(Employee(
            id=employee_id,
            name=name,
            skill_ids=skill_ids,
            eligible_full=i % 4 != 3,
            rule=rule,
        ))

        # Vary availability: early, late or unrestricted
        for weekday in Weekday:
            if i % 4 == 1:
                availability.append(AvailabilityWindow(
                    employee_id, weekday, parse_hhmm("07:00"), parse_hhmm("17:00")
                ))
            elif i % 4 == 2:
                availability.append(AvailabilityWindow(
                    employee_id, weekday, parse_hhmm("12:00"), parse_hhmm("22:00")
                ))

        if i % 6 == 0:
            constraints.append(Constraint(
                employee_id, start + timedelta(days=i % 7), ConstraintType.VACATION
            ))

    demand = []
    for weekday in Weekday:
        demand.append(DemandDeclaration(
            skill_id="REG", start=parse_hhmm("09:00"), end=parse_hhmm("18:00"),
            required_seats=2, day_of_week=weekday,
        ))
        demand.append(DemandDeclaration(
            skill_id="REG", start=parse_hhmm("11:00"), end=parse_hhmm("15:00"),
            required_seats=1, day_of_week=weekday,
        ))
        demand.append(DemandDeclaration(
            skill_id="STK", start=parse_hhmm("07:00"), end=parse_hhmm("15:00"),
            required_seats=1, day_of_week=weekday,
        ))

    return InMemoryStore(
        employees=employees,
        skills=skills,
        availability=availability,
        constraints=constraints,
        demand=demand,
    )


def print_report(report: GenerationReport, store: InMemoryStore, start: date, end: date) -> None:
    """Print the outcome of a generation run, with validation."""
    summary = report.get_summary()
    print(f"\n{'=' * 60}")
    print(f"Schedule: {start} to {end}")
    print(f"{'=' * 60}")
    print(f"  Assignments: {summary['assignments']}/{summary['required_seats']} seats")
    print(f"  Employees used: {summary['employees_used']}")
    print(f"  Replaced: {summary['replaced']}")
    if report.shortages:
        print(f"\nShortages ({len(report.shortages)}):")
        for shortage in report.shortages[:10]:
            print(f"    - {shortage}")
        if len(report.shortages) > 10:
            print(f"    ... and {len(report.shortages) - 10} more")
    if report.unfilled_days:
        print(f"\nDays without any assignment: {', '.join(summary['unfilled_days'])}")

    snapshot = store.load_snapshot(start, end)
    result = ScheduleValidator().validate(report.assignments, snapshot)
    if result.is_valid:
        print("\nValidation: PASSED")
    else:
        print(f"\nValidation: FAILED ({len(result.errors)} errors)")
        for error in result.errors[:5]:
            print(f"    - {error}")


def write_assignments(report: GenerationReport, output: Optional[str]) -> None:
    if not output:
        return
    payload = {
        "summary": report.get_summary(),
        "assignments": [a.to_dict() for a in report.assignments],
        "shortages": [str(s) for s in report.shortages],
    }
    Path(output).write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"\nWrote {len(report.assignments)} assignment(s) to {output}")


def run_generate(args: argparse.Namespace) -> int:
    config, pairing = load_config(args.config)
    if args.granularity:
        config = replace(config, granularity_minutes=args.granularity)
    if args.pairing:
        pairing.enabled = True
    store = InMemoryStore.from_dict(load_json(args.snapshot))
    start, end = resolve_period(args)

    error_log = ErrorLogBuffer()
    scheduler = DemandScheduler(store, config=config, pairing=pairing, error_log=error_log)
    report = scheduler.generate_period(start, end, reset=not args.keep)
    print_report(report, store, start, end)
    write_assignments(report, args.output)
    return 0


def run_templates(args: argparse.Namespace) -> int:
    store = InMemoryStore.from_dict(load_json(args.snapshot))
    start, end = resolve_period(args)
    report = TemplateScheduler(store).generate_period(start, end)
    print_report(report, store, start, end)
    write_assignments(report, args.output)
    return 0


def run_demand(args: argparse.Namespace) -> int:
    store = InMemoryStore.from_dict(load_json(args.snapshot))
    start, end = resolve_period(args)
    skills = {s.id: s for s in store.list_skills()}
    aggregator = DemandAggregator(args.granularity or 60)
    summary = aggregator.summarize(
        store.list_demand(), start, end, skills=skills,
        skill_ids=set(args.skill) if args.skill else None,
    )

    print(f"Demand {summary.start_date} to {summary.end_date} "
          f"({summary.granularity_minutes} min slots)")
    header = "  ".join(s.code or s.id for s in summary.skills)
    print(f"  {'slot':<12} {header}  total")
    for i, label in enumerate(summary.slot_labels):
        if summary.totals_per_slot[i] == 0:
            continue
        cells = "  ".join(
            f"{summary.matrix[s.id][i]:>{len(s.code or s.id)}}" for s in summary.skills
        )
        print(f"  {label:<12} {cells}  {summary.totals_per_slot[i]}")
    for skill_id, total in summary.totals_per_skill.items():
        print(f"  {skill_id}: {total} seat-slot(s)")
    return 0


def run_diagnose(args: argparse.Namespace) -> int:
    store = InMemoryStore.from_dict(load_json(args.snapshot))
    day = date.fromisoformat(args.date)
    report = TemplateScheduler(store).diagnose_day(day)
    print(f"Diagnostics for {report.work_date}")
    if not report.shifts:
        print("  No template applies to this day")
    for shift in report.shifts:
        print(f"\n  {shift.template_name} {format_hhmm(shift.start)}-{format_hhmm(shift.end)}: "
              f"{shift.assigned}/{shift.required}")
        print(f"    assigned:         {', '.join(shift.assigned_employees) or '-'}")
        print(f"    unavailable:      {', '.join(shift.unavailable_employees) or '-'}")
        print(f"    limited mismatch: {', '.join(shift.limited_mismatch_employees) or '-'}")
        print(f"    already assigned: {', '.join(shift.already_assigned_today) or '-'}")
        print(f"    preferred:        {', '.join(shift.preferred_employees) or '-'}")
    return 0


def run_demo(employee_count: int = 10, days: int = 7, pairing: bool = False) -> int:
    """Run a demo generation over sample data."""
    start = date.today()
    end = start + timedelta(days=max(1, days) - 1)
    print(f"Generating demo schedule for {employee_count} employees, {start} to {end}...")

    store = create_sample_store(employee_count, start)
    scheduler = DemandScheduler(store, pairing=PairingSettings(enabled=pairing))
    report = scheduler.generate_period(start, end)
    print_report(report, store, start, end)
    return 0


def _add_period_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--month", "-m", type=str, help="Month to generate (YYYY-MM)")
    parser.add_argument("--start", type=str, help="First day (YYYY-MM-DD)")
    parser.add_argument("--end", type=str, help="Last day (YYYY-MM-DD, default: start)")


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="shiftengine - Demand-driven shift scheduling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo                                   Run demo with 10 employees
  %(prog)s demo --count 20 --pairing              Demo with morning/afternoon pairing
  %(prog)s generate data.json --month 2024-03     Generate a month from demand
  %(prog)s generate data.json --start 2024-03-04 --end 2024-03-10 -o out.json
  %(prog)s templates data.json --month 2024-03    Generate from shift templates
  %(prog)s demand data.json --start 2024-03-04    Show the effective demand
  %(prog)s diagnose data.json --date 2024-03-04   Explain template staffing
        """,
    )
    parser.add_argument("--log-level", default="WARNING", help="Console log level (default: WARNING)")
    parser.add_argument("--log-file", type=str, help="Write a rotating log file")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    generate_parser = subparsers.add_parser("generate", help="Generate assignments from demand")
    generate_parser.add_argument("snapshot", help="JSON file with employees, skills and demand")
    _add_period_arguments(generate_parser)
    generate_parser.add_argument("--config", "-c", type=str, help="JSON engine/pairing settings")
    generate_parser.add_argument("--granularity", "-g", type=int, help="Slot width in minutes")
    generate_parser.add_argument("--pairing", action="store_true", help="Enable pairing")
    generate_parser.add_argument(
        "--keep", action="store_true",
        help="Keep existing assignments of the period instead of replacing them",
    )
    generate_parser.add_argument("--output", "-o", type=str, help="Write assignments as JSON")

    templates_parser = subparsers.add_parser("templates", help="Generate from shift templates")
    templates_parser.add_argument("snapshot", help="JSON file with employees and templates")
    _add_period_arguments(templates_parser)
    templates_parser.add_argument("--output", "-o", type=str, help="Write assignments as JSON")

    demand_parser = subparsers.add_parser("demand", help="Summarize effective demand")
    demand_parser.add_argument("snapshot", help="JSON file with demand declarations")
    _add_period_arguments(demand_parser)
    demand_parser.add_argument("--granularity", "-g", type=int, help="Slot width in minutes")
    demand_parser.add_argument("--skill", "-s", action="append", help="Restrict to a skill id")

    diagnose_parser = subparsers.add_parser("diagnose", help="Explain template staffing of a day")
    diagnose_parser.add_argument("snapshot", help="JSON file with employees and templates")
    diagnose_parser.add_argument("--date", "-d", required=True, help="Day (YYYY-MM-DD)")

    demo_parser = subparsers.add_parser("demo", help="Run demo generation on sample data")
    demo_parser.add_argument(
        "--count", "-c", type=int, default=10,
        help="Number of employees to generate (default: 10)",
    )
    demo_parser.add_argument(
        "--days", "-d", type=int, default=7,
        help="Number of days to schedule (default: 7)",
    )
    demo_parser.add_argument("--pairing", action="store_true", help="Enable pairing")

    args = parser.parse_args(argv)
    setup_logging(level="DEBUG" if args.log_file else args.log_level,
                  log_file=args.log_file, console_level=args.log_level)

    commands = {
        "generate": run_generate,
        "templates": run_templates,
        "demand": run_demand,
        "diagnose": run_diagnose,
    }
    try:
        if args.command == "demo":
            return run_demo(args.count, args.days, args.pairing)
        if args.command in commands:
            return commands[args.command](args)
    except ShiftEngineError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
