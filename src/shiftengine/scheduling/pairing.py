"""Morning/afternoon pairing of seat curves into full-day assignments.

When the same skill needs seats throughout both the morning and the
afternoon window, one full-day employee can cover a morning seat and an
afternoon seat at once. Pairing runs on a day's curves before window
synthesis and removes the seats it covered; the residual curves go
through the generic path, where windows lying inside the morning,
afternoon or a standalone window are tagged for short-block eligibility.
"""

from datetime import date
from typing import Optional

from shiftengine.domain.models import Assignment
from shiftengine.domain.policies import ResolvedPairing, TimeWindow, minutes_to_slot_range
from shiftengine.logging_setup import get_logger
from shiftengine.scheduling.assignment_engine import AssignmentEngine
from shiftengine.scheduling.window_synthesizer import Window, WindowTag

logger = get_logger(__name__)


class PairingPass:
    """Pairs morning and afternoon seats of one day.

    Args:
        engine: Assignment engine of the run (shared run state).
        pairing: Resolved pairing windows.
        granularity_minutes: Slot width of the curves.

    Example:
        >>> pairing_pass = PairingPass(engine, settings.resolve(), 60)
        >>> created = pairing_pass.run(day, curves)  # curves are decremented
    """

    def __init__(self, engine: AssignmentEngine, pairing: ResolvedPairing, granularity_minutes: int):
        self.engine = engine
        self.pairing = pairing
        self.granularity_minutes = max(1, granularity_minutes)

    def _slots(self, window: TimeWindow) -> range:
        first, last = minutes_to_slot_range(window.start, window.end, self.granularity_minutes)
        return range(first, last)

    def pairable_units(self, curve: list[int]) -> int:
        """Seats present throughout both the morning and the afternoon window."""
        morning = [curve[i] for i in self._slots(self.pairing.morning) if i < len(curve)]
        afternoon = [curve[i] for i in self._slots(self.pairing.afternoon) if i < len(curve)]
        if not morning or not afternoon:
            return 0
        return max(0, min(min(morning), min(afternoon)))

    def run(self, day: date, curves: dict[str, list[int]]) -> list[Assignment]:
        """Book full-day assignments and remove the covered seats from ``curves``.

        A skill stops pairing at its first unit no full-day employee can
        take; the remaining seats stay in the curve.
        """
        span_start, span_end = self.pairing.span
        covered = self._slots(TimeWindow(span_start, span_end))
        created = []

        for skill_id in sorted(curves):
            curve = curves[skill_id]
            units = self.pairable_units(curve)
            if units <= 0:
                continue
            label = self.engine.label_for(skill_id, span_start)
            preferred = self.engine.preferred_employees(day, span_start, span_end)
            paired = 0
            for _ in range(units):
                employee = self.engine.select_candidate(
                    day, span_start, span_end, skill_id, preferred,
                    tag=WindowTag.FULL, rank_short=False,
                )
                if employee is None:
                    break
                created.append(self.engine.book(employee, day, span_start, span_end, skill_id, label))
                preferred.discard(employee.id)
                for i in covered:
                    if i < len(curve) and curve[i] > 0:
                        curve[i] -= 1
                paired += 1
            logger.debug("Paired %d/%d unit(s) of %s on %s", paired, units, skill_id, day)

        return created

    def tag_for(self, window: Window) -> Optional[WindowTag]:
        """Role of a residual window, or None when it lies in no pairing window."""
        if self.pairing.morning.contains(window.start, window.end):
            return WindowTag.MORNING
        if self.pairing.afternoon.contains(window.start, window.end):
            return WindowTag.AFTERNOON
        if any(w.contains(window.start, window.end) for w in self.pairing.standalone):
            return WindowTag.STANDALONE
        return None
