"""Tests for window ordering and block splitting."""

from shiftengine.domain.models import Skill
from shiftengine.domain.policies import EngineConfig
from shiftengine.scheduling.block_splitter import (
    BlockSplitter,
    RemainingIntervals,
    order_skills,
    order_windows,
)
from shiftengine.scheduling.window_synthesizer import Window


def always(start, end, length):
    return True


def never(start, end, length):
    return False


# =============================================================================
# Ordering
# =============================================================================


class TestOrderWindows:
    """Tests for the window visiting order."""

    def test_earliest_first_wins_over_later_passes(self):
        windows = [
            Window(960, 1140, {"A": 1}),
            Window(540, 600, {"A": 1}),
            Window(420, 960, {"A": 1}),
        ]
        ordered = order_windows(windows)
        assert [w.key for w in ordered] == [(420, 960), (540, 600), (960, 1140)]

    def test_each_window_appears_once(self):
        windows = [Window(540, 1020), Window(540, 780), Window(1020, 1260)]
        ordered = order_windows(windows)
        assert len(ordered) == 3
        assert len({w.key for w in ordered}) == 3

    def test_empty(self):
        assert order_windows([]) == []


class TestOrderSkills:
    """Tests for skill priority inside a window."""

    def test_priority_then_id_then_skill_less(self):
        skills = {
            "A": Skill(id="A", priority=5),
            "B": Skill(id="B", priority=1),
        }
        ordered = order_skills({"A": 1, None: 2, "C": 1, "B": 3}, skills)
        assert [skill_id for skill_id, _ in ordered] == ["B", "A", "C", None]
        assert ordered[0] == ("B", 3)

    def test_unknown_skill_uses_default_priority(self):
        skills = {"Z": Skill(id="Z", priority=9)}
        ordered = order_skills({"Z": 1, "M": 1}, skills)
        assert [skill_id for skill_id, _ in ordered] == ["M", "Z"]


# =============================================================================
# RemainingIntervals
# =============================================================================


class TestRemainingIntervals:
    """Tests for the shared uncovered-interval list."""

    def test_consume_splits_interval(self):
        remaining = RemainingIntervals(540, 1080)
        assert remaining.consume_if_fits(600, 700)
        assert list(remaining) == [(540, 600), (700, 1080)]

    def test_consume_outside_fails(self):
        remaining = RemainingIntervals(540, 1080)
        assert not remaining.consume_if_fits(500, 600)
        assert list(remaining) == [(540, 1080)]

    def test_consume_across_gap_fails(self):
        remaining = RemainingIntervals(540, 1080)
        remaining.consume_if_fits(600, 700)
        assert not remaining.consume_if_fits(560, 800)
        assert len(remaining) == 2

    def test_consume_exact_interval(self):
        remaining = RemainingIntervals(540, 780)
        assert remaining.consume_if_fits(540, 780)
        assert len(remaining) == 0


# =============================================================================
# BlockSplitter
# =============================================================================


class TestBlockSplitter:
    """Tests for left, right and center fills."""

    def test_nine_hour_window_gets_one_primary_block(self):
        splitter = BlockSplitter(EngineConfig(), always)
        assert list(splitter.split(540, 1080)) == [(540, 1020)]

    def test_twelve_hour_window_with_short_blocks(self):
        splitter = BlockSplitter(EngineConfig(), always)
        assert list(splitter.split(540, 1260)) == [(540, 1020), (1020, 1260)]

    def test_twelve_hour_window_without_short_blocks(self):
        splitter = BlockSplitter(EngineConfig(), never)
        assert list(splitter.split(540, 1260)) == [(540, 1020)]

    def test_four_hour_window_needs_gate(self):
        assert list(BlockSplitter(EngineConfig(), never).split(540, 780)) == []
        assert list(BlockSplitter(EngineConfig(), always).split(540, 780)) == [(540, 780)]

    def test_window_shorter_than_minimum(self):
        splitter = BlockSplitter(EngineConfig(), always)
        assert list(splitter.split(540, 720)) == []

    def test_gate_receives_block_and_length(self):
        calls = []

        def gate(start, end, length):
            calls.append((start, end, length))
            return True

        list(BlockSplitter(EngineConfig(), gate).split(540, 780))
        assert (540, 780, 4) in calls
        assert all(length < 8 for _, _, length in calls), f"Calls: {calls}"

    def test_fills_are_built_lazily(self):
        """A fill is built only after earlier blocks were consumed."""
        state = {"allow": False}

        def gate(start, end, length):
            return state["allow"]

        blocks = []
        for block in BlockSplitter(EngineConfig(), gate).split(540, 1260):
            blocks.append(block)
            state["allow"] = True

        assert blocks == [(540, 1020), (1020, 1260)]

    def test_blocks_never_overlap(self):
        splitter = BlockSplitter(EngineConfig(), always)
        blocks = sorted(splitter.split(300, 1380))
        for first, second in zip(blocks, blocks[1:]):
            assert first[1] <= second[0], f"Overlapping blocks: {blocks}"

    def test_custom_lengths(self):
        config = EngineConfig(primary_length_hours=6, short_lengths="3", short_min_length_hours=3)
        splitter = BlockSplitter(config, always)
        assert list(splitter.split(540, 1080)) == [(540, 900), (900, 1080)]

    def test_build_center(self):
        splitter = BlockSplitter(EngineConfig(), always)
        assert splitter.build_center(0, 960, 480) == [(0, 480), (480, 960)]

    def test_build_center_out_of_range_pivot_uses_midpoint(self):
        splitter = BlockSplitter(EngineConfig(), always)
        assert splitter.build_center(0, 960, 2000) == [(0, 480), (480, 960)]

    def test_pivot(self):
        splitter = BlockSplitter(EngineConfig(), always)
        assert splitter.pivot_for(540, 1260, 900) == 900
        assert splitter.pivot_for(540, 1260, None) == 1020
        assert splitter.pivot_for(540, 780, None) == 660
