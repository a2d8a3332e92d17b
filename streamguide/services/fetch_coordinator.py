"""
Fetch Coordination

Owns the current ScheduleTable and applies refresh results with last-writer-wins
semantics: a refresh started later always supersedes one started earlier.
"""
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import asyncio
import logging
from typing import Any

from streamguide.services.fetch_types import EMPTY_SCHEDULE, ScheduleTable


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RefreshOutcome:
    """What happened to one refresh run."""
    generation: int
    applied: bool
    result: Any = None


class ScheduleStore:
    """
    Holds the schedule snapshot consumers read from.

    Each refresh gets a generation number when it starts. When it finishes,
    its table replaces the current one only if no newer refresh has started
    in the meantime; otherwise the result is discarded. The swap is a single
    reference assignment done on the event loop thread, so readers always see
    either the old or the new table, never a mix.
    """

    def __init__(self, schedule: ScheduleTable | None = None):
        """Initialize the store, optionally with a preloaded table."""
        self._schedule: ScheduleTable = schedule if schedule is not None else EMPTY_SCHEDULE
        self._latest_generation = 0
        self._applied_generation = 0
        self._in_flight: set[int] = set()
        self.progress = 0.0
        # held while the applied table is written to the disk cache
        self.save_lock = asyncio.Lock()

    @property
    def schedule(self) -> ScheduleTable:
        return self._schedule

    def replace(self, schedule: ScheduleTable) -> None:
        """Swap in a table outside the refresh cycle (e.g. loaded from cache)."""
        self._schedule = schedule

    def report_progress(self, generation: int, value: float) -> None:
        """Progress sink for a refresh; values from superseded runs are ignored."""
        if generation == self._latest_generation:
            self.progress = value

    async def refresh(
        self,
        refresh_func: Callable[[Callable[[float], None]], Awaitable[tuple[ScheduleTable | None, Any]]]
    ) -> RefreshOutcome:
        """
        Run a refresh and apply its table unless a newer refresh started meanwhile.

        Args:
            refresh_func: Async function taking a progress callback and returning
                (schedule_table, result_payload); a None table means nothing
                usable was produced and the current table is kept

        Returns:
            RefreshOutcome telling whether the table was applied

        Raises:
            Any exception raised by refresh_func
        """
        self._latest_generation += 1
        generation = self._latest_generation
        self._in_flight.add(generation)
        self.progress = 0.0

        def on_progress(value: float) -> None:
            self.report_progress(generation, value)

        try:
            schedule, result = await refresh_func(on_progress)
        finally:
            self._in_flight.discard(generation)

        if generation != self._latest_generation:
            logger.warning(
                "Discarding schedule from refresh #%s: superseded by refresh #%s",
                generation,
                self._latest_generation,
            )
            return RefreshOutcome(generation=generation, applied=False, result=result)

        if schedule is None:
            logger.warning("Refresh #%s produced no schedule; keeping the current one", generation)
            return RefreshOutcome(generation=generation, applied=False, result=result)

        self._schedule = schedule
        self._applied_generation = generation
        logger.info("Applied schedule from refresh #%s (%s channels)", generation, len(schedule))
        return RefreshOutcome(generation=generation, applied=True, result=result)

    def is_fetching(self) -> bool:
        """
        Check if a refresh operation is currently in progress.

        Returns:
            True if a refresh is running, False otherwise
        """
        return bool(self._in_flight)

    @property
    def applied_generation(self) -> int:
        return self._applied_generation


# Global singleton instance
_store: ScheduleStore | None = None


def get_schedule_store() -> ScheduleStore:
    """
    Get or create the global schedule store singleton.

    Returns:
        The global ScheduleStore instance
    """
    global _store
    if _store is None:
        _store = ScheduleStore()
    return _store


def reset_schedule_store() -> None:
    """
    Reset the schedule store (mainly for testing).

    WARNING: Only use this in test environments!
    """
    global _store
    _store = None
