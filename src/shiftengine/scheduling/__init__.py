"""Scheduling engine turning demand into assignments."""

from shiftengine.scheduling.assignment_engine import (
    AssignmentEngine,
    Rejection,
    ShortageInfo,
    SubBlock,
)
from shiftengine.scheduling.block_splitter import BlockSplitter, order_skills, order_windows
from shiftengine.scheduling.pairing import PairingPass
from shiftengine.scheduling.scheduler import DemandScheduler, GenerationReport
from shiftengine.scheduling.template_scheduler import (
    DiagnosticReport,
    ShiftDiagnostics,
    TemplateScheduler,
)
from shiftengine.scheduling.window_synthesizer import Window, WindowTag, synthesize_windows

__all__ = [
    # Schedulers
    "DemandScheduler",
    "GenerationReport",
    "TemplateScheduler",
    "DiagnosticReport",
    "ShiftDiagnostics",
    # Stages
    "synthesize_windows",
    "Window",
    "WindowTag",
    "order_windows",
    "order_skills",
    "BlockSplitter",
    "PairingPass",
    # Assignment
    "AssignmentEngine",
    "Rejection",
    "ShortageInfo",
    "SubBlock",
]
