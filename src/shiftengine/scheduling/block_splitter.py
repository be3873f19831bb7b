"""Window ordering and splitting of windows into staffable blocks.

Windows of a day are visited earliest-first, then latest-first, then
center-out around midday. Each (window, skill) unit is cut into blocks
of the configured lengths by three fills that share one list of still
uncovered intervals: from the left edge, from the right edge, and
outwards from a pivot in the middle.
"""

from typing import Callable, Iterable, Iterator, Optional

from shiftengine.domain.models import Skill
from shiftengine.domain.policies import EngineConfig
from shiftengine.scheduling.window_synthesizer import Window

DEFAULT_SKILL_PRIORITY = 5

# (start, end, length_hours) -> may a short block be placed there
ShortGate = Callable[[int, int, int], bool]


def order_windows(windows: Iterable[Window], midday: int = 12 * 60) -> list[Window]:
    """Concatenate the First, Last and Other passes over ``windows``.

    A window appearing again in a later pass keeps its first position.
    """
    items = list(windows)
    first = sorted(items, key=lambda w: (w.start, w.end))
    last = sorted(items, key=lambda w: (-w.end, -w.start))
    other = sorted(items, key=lambda w: (abs(w.midpoint - midday), w.midpoint))

    ordered = []
    seen = set()
    for window in first + last + other:
        if window.key in seen:
            continue
        seen.add(window.key)
        ordered.append(window)
    return ordered


def order_skills(
    per_skill_seats: dict[Optional[str], int],
    skills: dict[str, Skill],
) -> list[tuple[Optional[str], int]]:
    """Skills of a window by priority (1 first), then id; skill-less last."""

    def key(item):
        skill_id = item[0]
        if skill_id is None:
            return (1, 0, "")
        skill = skills.get(skill_id)
        priority = skill.priority if skill is not None and skill.priority is not None \
            else DEFAULT_SKILL_PRIORITY
        return (0, priority, skill_id)

    return sorted(per_skill_seats.items(), key=key)


class RemainingIntervals:
    """Sorted, non-overlapping intervals of a window not yet covered."""

    def __init__(self, start: int, end: int):
        self.intervals: list[tuple[int, int]] = [(start, end)]

    def covering_index(self, start: int, end: int) -> int:
        for i, (lo, hi) in enumerate(self.intervals):
            if lo <= start and end <= hi:
                return i
        return -1

    def consume_if_fits(self, start: int, end: int) -> bool:
        """Remove [start, end) if it lies inside a single remaining interval."""
        index = self.covering_index(start, end)
        if index < 0:
            return False
        lo, hi = self.intervals.pop(index)
        if start > lo:
            self.intervals.append((lo, start))
        if end < hi:
            self.intervals.append((end, hi))
        self.intervals.sort()
        return True

    def __iter__(self):
        return iter(self.intervals)

    def __len__(self) -> int:
        return len(self.intervals)


class BlockSplitter:
    """Cuts one window into blocks of the configured lengths.

    Args:
        config: Engine settings providing block lengths.
        allow_short: Gate consulted for every block shorter than the
            primary length.
    """

    def __init__(self, config: EngineConfig, allow_short: ShortGate):
        self.config = config
        self.allow_short = allow_short
        self.lengths = config.block_lengths()
        self.min_minutes = config.short_min_length_hours * 60

    def _usable(self, start: int, end: int, length: int) -> bool:
        if length < self.config.primary_length_hours:
            return self.allow_short(start, end, length)
        return True

    def build_left(self, start: int, end: int) -> list[tuple[int, int]]:
        """Blocks laid from the left edge, each starting where the last ended."""
        blocks = []
        cursor = start
        while cursor + self.min_minutes <= end:
            for length in self.lengths:
                block_end = cursor + length * 60
                if block_end > end or not self._usable(cursor, block_end, length):
                    continue
                blocks.append((cursor, block_end))
                cursor = block_end
                break
            else:
                break
        return blocks

    def build_right(self, start: int, end: int) -> list[tuple[int, int]]:
        """Blocks laid from the right edge, each ending where the last started."""
        blocks = []
        cursor = end
        while start + self.min_minutes <= cursor:
            for length in self.lengths:
                block_start = cursor - length * 60
                if block_start < start or not self._usable(block_start, cursor, length):
                    continue
                blocks.append((block_start, cursor))
                cursor = block_start
                break
            else:
                break
        return blocks

    def build_center(self, start: int, end: int, pivot: int) -> list[tuple[int, int]]:
        """Blocks laid outwards from ``pivot``: leftwards first, then rightwards."""
        if not start <= pivot <= end:
            pivot = (start + end) // 2
        blocks = []

        left = pivot
        while left - self.min_minutes >= start:
            for length in self.lengths:
                block_start = left - length * 60
                if block_start < start or not self._usable(block_start, left, length):
                    continue
                blocks.append((block_start, left))
                left = block_start
                break
            else:
                break

        right = pivot
        while right + self.min_minutes <= end:
            for length in self.lengths:
                block_end = right + length * 60
                if block_end > end or not self._usable(right, block_end, length):
                    continue
                blocks.append((right, block_end))
                right = block_end
                break
            else:
                break
        return blocks

    def pivot_for(self, start: int, end: int, last_left_end: Optional[int]) -> int:
        """End of the left fill, else start plus the primary length, else the midpoint."""
        if last_left_end is not None:
            pivot = last_left_end
        else:
            pivot = start + self.config.primary_length_hours * 60
        if pivot < start or pivot > end:
            pivot = (start + end) // 2
        return pivot

    def split(self, start: int, end: int) -> Iterator[tuple[int, int]]:
        """Yield the blocks placed for [start, end), in placement order.

        Each fill is built only after the blocks of the previous fill
        have been consumed by the caller, so gating sees the assignments
        made in between.
        """
        remaining = RemainingIntervals(start, end)

        last_left_end = None
        for block in self.build_left(start, end):
            if remaining.consume_if_fits(*block):
                last_left_end = block[1]
                yield block

        for block in self.build_right(start, end):
            if remaining.consume_if_fits(*block):
                yield block

        pivot = self.pivot_for(start, end, last_left_end)
        for block in self.build_center(start, end, pivot):
            if remaining.consume_if_fits(*block):
                yield block
