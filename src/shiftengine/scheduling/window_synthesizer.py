"""Seat-track synthesis of shift windows from seat curves.

A seat curve is swept slot by slot while a stack of open "tracks" is kept
level with the demand: tracks are opened on rising edges and the most
recently opened ones are closed on falling edges. A track that reaches
the maximum window length is closed early and, if demand persists,
reopened on the same slot. Every closed track becomes one seat of a
window keyed by its (start, end) minutes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

from shiftengine.domain.models import MINUTES_PER_DAY, Employee, format_hhmm
from shiftengine.domain.policies import max_window_slots


class WindowTag(Enum):
    """Pairing role of a window, used for short-length eligibility."""

    FULL = "full"
    MORNING = "morning"
    AFTERNOON = "afternoon"
    STANDALONE = "standalone"

    def admits(self, employee: Employee) -> bool:
        """Whether the employee's eligibility flags allow this kind of window."""
        if self == WindowTag.FULL:
            return employee.eligible_full
        if self == WindowTag.MORNING:
            return employee.eligible_short_morning
        if self == WindowTag.AFTERNOON:
            return employee.eligible_short_afternoon
        return True


@dataclass
class Window:
    """A contiguous time range with the seats each skill needs inside it.

    Attributes:
        start: Start in minutes since midnight.
        end: End in minutes since midnight (exclusive).
        per_skill_seats: Skill id to seat count.
        tag: Pairing role of the window, if any.
    """

    start: int
    end: int
    per_skill_seats: dict[str, int] = field(default_factory=dict)
    tag: Optional[WindowTag] = None

    @property
    def key(self) -> tuple[int, int]:
        return (self.start, self.end)

    @property
    def duration_minutes(self) -> int:
        return self.end - self.start

    @property
    def midpoint(self) -> int:
        return (self.start + self.end) // 2

    @property
    def total_seats(self) -> int:
        return sum(self.per_skill_seats.values())

    def __str__(self) -> str:
        return f"[{format_hhmm(self.start)}-{format_hhmm(self.end)}) {self.per_skill_seats}"


def seat_tracks(curve: list[int], max_slots: int) -> Iterator[tuple[int, int]]:
    """Yield (start_slot, end_slot) for every track closed while sweeping ``curve``.

    Args:
        curve: Seats required per slot.
        max_slots: Longest track, in slots, before it is force-closed.
    """
    max_slots = max(1, max_slots)
    open_tracks: list[int] = []  # opening slot of each track, most recent last

    for i, need in enumerate(curve):
        while len(open_tracks) > need:
            yield open_tracks.pop(), i

        expired = [start for start in open_tracks if i - start >= max_slots]
        if expired:
            open_tracks = [start for start in open_tracks if i - start < max_slots]
            for start in expired:
                yield start, i

        while len(open_tracks) < need:
            open_tracks.append(i)

    end = len(curve)
    while open_tracks:
        yield open_tracks.pop(), end


def synthesize_windows(
    curves: dict[str, list[int]],
    granularity_minutes: int,
    max_window_minutes: int = 540,
    day_end: Optional[int] = None,
) -> dict[tuple[int, int], Window]:
    """Convert per-skill seat curves into windows keyed by (start, end).

    Args:
        curves: Skill id to seat curve.
        granularity_minutes: Slot width.
        max_window_minutes: Longest window allowed.
        day_end: Clamp for window ends (defaults to the end of the day).

    Returns:
        Windows keyed by (start, end) minutes; seats of tracks with the
        same bounds are summed per skill.
    """
    g = max(1, granularity_minutes)
    max_slots = max_window_slots(max_window_minutes, g)
    windows: dict[tuple[int, int], Window] = {}

    for skill_id in sorted(curves):
        curve = curves[skill_id]
        limit = day_end if day_end is not None else min(len(curve) * g, MINUTES_PER_DAY)
        for start_slot, end_slot in seat_tracks(curve, max_slots):
            key = (start_slot * g, min(end_slot * g, limit))
            window = windows.get(key)
            if window is None:
                window = windows[key] = Window(start=key[0], end=key[1])
            window.per_skill_seats[skill_id] = window.per_skill_seats.get(skill_id, 0) + 1

    return windows
