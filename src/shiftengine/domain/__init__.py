"""Domain models, demand aggregation and run policies."""

from shiftengine.domain.demand import (
    DayDemand,
    DemandAggregator,
    DemandDeclaration,
    DemandSummary,
    SkillSummary,
)
from shiftengine.domain.models import (
    Assignment,
    AvailabilityWindow,
    Constraint,
    ConstraintType,
    Employee,
    EmployeeRule,
    PriorityHint,
    RunState,
    ShiftTemplate,
    Skill,
    SkillPattern,
    Weekday,
    format_hhmm,
    parse_hhmm,
)
from shiftengine.domain.policies import (
    EngineConfig,
    PairingSettings,
    ResolvedPairing,
    ShortShiftLogic,
    TimeWindow,
)

__all__ = [
    # Models
    "Assignment",
    "AvailabilityWindow",
    "Constraint",
    "ConstraintType",
    "Employee",
    "EmployeeRule",
    "PriorityHint",
    "RunState",
    "ShiftTemplate",
    "Skill",
    "SkillPattern",
    "Weekday",
    "format_hhmm",
    "parse_hhmm",
    # Demand
    "DayDemand",
    "DemandAggregator",
    "DemandDeclaration",
    "DemandSummary",
    "SkillSummary",
    # Policies
    "EngineConfig",
    "PairingSettings",
    "ResolvedPairing",
    "ShortShiftLogic",
    "TimeWindow",
]
