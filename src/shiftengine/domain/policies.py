"""Policy and configuration definitions for the engine.

This module contains the tunable rules of a generation run: slot
granularity, window and block lengths, short-shift gating, and the
morning/afternoon pairing settings. Policies are kept separate from the
scheduling stages so they can be tested and changed independently.
"""

import math
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Mapping, Optional

from shiftengine.domain.models import MINUTES_PER_DAY, format_hhmm, parse_hhmm
from shiftengine.errors import ConfigurationError


class ShortShiftLogic(Enum):
    """How the two short-candidate signals are combined.

    Signal (a) is rule based: the employee's daily cap is no longer than
    the block. Signal (b) is availability based: the employee's longest
    contiguous availability that weekday is no longer than the block.
    """

    A_OR_B = "a_or_b"
    A_ONLY = "a_only"
    B_ONLY = "b_only"

    @classmethod
    def parse(cls, value: Any) -> "ShortShiftLogic":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text == "c_or":  # name used by older deployments
            return cls.A_OR_B
        try:
            return cls(text)
        except ValueError:
            raise ConfigurationError(f"Unknown short-shift logic: {value!r}") from None

    def combine(self, rule_based: bool, availability_based: bool) -> bool:
        if self == ShortShiftLogic.A_ONLY:
            return rule_based
        if self == ShortShiftLogic.B_ONLY:
            return availability_based
        return rule_based or availability_based


def slot_count(granularity_minutes: int) -> int:
    """Number of slots covering a day at the given granularity."""
    return math.ceil(MINUTES_PER_DAY / max(1, granularity_minutes))


def max_window_slots(max_window_minutes: int, granularity_minutes: int) -> int:
    """Whole slots that fit in a window of at most ``max_window_minutes``."""
    return max(1, max_window_minutes // max(1, granularity_minutes))


def minutes_to_slot_range(start: int, end: int, granularity_minutes: int) -> tuple[int, int]:
    """Convert [start, end) minutes to a clamped [first, last) slot range."""
    g = max(1, granularity_minutes)
    slots = slot_count(g)
    first = max(0, start // g)
    last = min(slots, math.ceil(end / g))
    return first, last


def parse_lengths(csv: Optional[str]) -> list[int]:
    """Parse a CSV of hour lengths, dropping malformed and non-positive tokens."""
    lengths = []
    for token in (csv or "").split(","):
        token = token.strip()
        if token.isdigit() and int(token) > 0:
            lengths.append(int(token))
    return lengths


# Dotted property names of older deployments mapped to attribute names.
_ENGINE_ALIASES = {
    "shift.short.enabled": "short_enabled",
    "shift.short.logic": "short_logic",
    "shift.short.lengths": "short_lengths",
    "shift.short.minLength": "short_min_length_hours",
    "shift.window.roundingMinutes": "granularity_minutes",
}


@dataclass
class EngineConfig:
    """Settings of a demand-driven generation run.

    Attributes:
        granularity_minutes: Slot width used to discretize demand.
        max_window_minutes: Longest window the synthesizer may emit.
        primary_length_hours: Block length tried first; shorter lengths
            need gating.
        short_enabled: Whether pool-based short gating is enabled.
        short_logic: How short-candidate signals are combined.
        short_lengths: CSV of shorter block lengths in hours.
        short_min_length_hours: Smallest remainder a fill keeps working on.
        midday_minute: Reference point for center-out window ordering.
    """

    granularity_minutes: int = 60
    max_window_minutes: int = 540
    primary_length_hours: int = 8
    short_enabled: bool = True
    short_logic: ShortShiftLogic = ShortShiftLogic.A_OR_B
    short_lengths: str = "6,4"
    short_min_length_hours: int = 4
    midday_minute: int = 12 * 60

    def __post_init__(self):
        self.short_logic = ShortShiftLogic.parse(self.short_logic)
        if self.granularity_minutes < 1:
            raise ConfigurationError("granularity_minutes must be at least 1")
        if self.max_window_minutes < self.granularity_minutes:
            raise ConfigurationError("max_window_minutes must cover at least one slot")
        if self.primary_length_hours < 1 or self.short_min_length_hours < 1:
            raise ConfigurationError("block lengths must be at least one hour")

    @property
    def slots(self) -> int:
        return slot_count(self.granularity_minutes)

    @property
    def max_slots_per_window(self) -> int:
        return max_window_slots(self.max_window_minutes, self.granularity_minutes)

    def block_lengths(self) -> list[int]:
        """Candidate block lengths in hours, primary length first."""
        return [self.primary_length_hours] + parse_lengths(self.short_lengths)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "EngineConfig":
        """Build a config from attribute names or legacy dotted keys.

        Unknown keys are ignored.
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in mapping.items():
            name = _ENGINE_ALIASES.get(key, key)
            if name in known:
                values[name] = value
        for name in ("granularity_minutes", "max_window_minutes",
                     "primary_length_hours", "short_min_length_hours", "midday_minute"):
            if name in values:
                values[name] = _as_int(name, values[name])
        if "short_enabled" in values:
            values["short_enabled"] = _as_bool(values["short_enabled"])
        return cls(**values)


@dataclass(frozen=True)
class TimeWindow:
    """A [start, end) time-of-day range parsed from ``"HH:MM-HH:MM"``."""

    start: int
    end: int

    @classmethod
    def parse(cls, text: str) -> "TimeWindow":
        """Parse ``"HH:MM-HH:MM"``.

        Raises:
            ConfigurationError: If the text is malformed or the range is empty.
        """
        try:
            start_text, end_text = text.split("-")
            start, end = parse_hhmm(start_text), parse_hhmm(end_text)
        except (AttributeError, ValueError):
            raise ConfigurationError(f"Malformed time window: {text!r}") from None
        if end <= start:
            raise ConfigurationError(f"Time window ends before it starts: {text!r}")
        return cls(start, end)

    def contains(self, start: int, end: int) -> bool:
        return self.start <= start and end <= self.end

    def __str__(self) -> str:
        return f"{format_hhmm(self.start)}-{format_hhmm(self.end)}"


_PAIRING_ALIASES = {
    "preferShorts": "prefer_shorts",
    "pairToleranceMinutes": "pair_tolerance_minutes",
    "fullWindow": "full_window",
    "morningWindow": "morning_window",
    "afternoonWindow": "afternoon_window",
    "standaloneWindows": "standalone_windows",
}


@dataclass
class PairingSettings:
    """Settings of the optional morning/afternoon pairing pass.

    Window values stay as strings so that a malformed value disables
    pairing for the run instead of failing configuration loading.
    """

    enabled: bool = False
    prefer_shorts: bool = True
    pair_tolerance_minutes: int = 0
    full_window: str = "09:00-18:00"
    morning_window: str = "09:00-13:00"
    afternoon_window: str = "13:00-18:00"
    standalone_windows: str = "17:00-21:00"

    def resolve(self) -> "ResolvedPairing":
        """Parse and cross-check the configured windows.

        Raises:
            ConfigurationError: If a window is malformed, the morning
                window does not end before the afternoon window starts,
                the gap between them exceeds the tolerance, or the paired
                span falls outside the full-day window.
        """
        full = TimeWindow.parse(self.full_window)
        morning = TimeWindow.parse(self.morning_window)
        afternoon = TimeWindow.parse(self.afternoon_window)
        if morning.end > afternoon.start:
            raise ConfigurationError(
                f"Morning window {morning} overlaps afternoon window {afternoon}"
            )
        gap = afternoon.start - morning.end
        if gap > max(0, self.pair_tolerance_minutes):
            raise ConfigurationError(
                f"Gap of {gap} minutes between {morning} and {afternoon} "
                f"exceeds tolerance of {self.pair_tolerance_minutes}"
            )
        if not full.contains(morning.start, afternoon.end):
            raise ConfigurationError(
                f"Paired span {format_hhmm(morning.start)}-{format_hhmm(afternoon.end)} "
                f"is outside full window {full}"
            )
        standalone = tuple(
            TimeWindow.parse(token)
            for token in (self.standalone_windows or "").split(",")
            if token.strip()
        )
        return ResolvedPairing(full, morning, afternoon, standalone, self.prefer_shorts)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "PairingSettings":
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in mapping.items():
            name = _PAIRING_ALIASES.get(key, key)
            if name in known:
                values[name] = value
        for name in ("enabled", "prefer_shorts"):
            if name in values:
                values[name] = _as_bool(values[name])
        if "pair_tolerance_minutes" in values:
            values["pair_tolerance_minutes"] = _as_int(
                "pair_tolerance_minutes", values["pair_tolerance_minutes"]
            )
        return cls(**values)


@dataclass(frozen=True)
class ResolvedPairing:
    """Parsed pairing windows ready for use by a run."""

    full: TimeWindow
    morning: TimeWindow
    afternoon: TimeWindow
    standalone: tuple[TimeWindow, ...]
    prefer_shorts: bool = True

    @property
    def span(self) -> tuple[int, int]:
        return self.morning.start, self.afternoon.end


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _as_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e
