"""Exception hierarchy for the scheduling engine.

Shortages are never raised; they are reported alongside the generated
assignments. Only conditions that make a run meaningless abort it.
"""


class ShiftEngineError(Exception):
    """Base class for all engine errors."""


class ScheduleGenerationError(ShiftEngineError):
    """A generation run could not be carried out."""


class PreconditionError(ScheduleGenerationError):
    """A run was rejected before any assignment was deleted or written.

    Raised when no employees are registered, when the legacy template
    path finds no active shift template, or when the requested period
    is reversed.
    """


class ConfigurationError(ShiftEngineError, ValueError):
    """An engine or pairing setting has an invalid value."""
