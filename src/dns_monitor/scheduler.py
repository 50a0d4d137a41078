"""
Interval scheduler for periodic validation passes.

Runs an async callback every ``interval_seconds`` until stopped. A pass
that raises is logged and the loop keeps going.
"""

import asyncio
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

if TYPE_CHECKING:
    from .audit_logger import AuditLogger


@dataclass
class ScheduleRun:
    """Outcome of one scheduled pass."""

    started_at: datetime
    success: bool
    error: Optional[str] = None


class ValidationScheduler:
    """
    Fixed-interval scheduler for validation passes.

    Only the most recent ``history_limit`` runs are kept in ``history``.
    """

    DEFAULT_HISTORY_LIMIT = 100

    def __init__(
        self,
        interval_seconds: float,
        callback: Callable[[], Awaitable[object]],
        logger: Optional["AuditLogger"] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        self._interval_seconds = interval_seconds
        self._callback = callback
        self._logger = logger
        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._history: deque[ScheduleRun] = deque(maxlen=history_limit)

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def history(self) -> list[ScheduleRun]:
        return list(self._history)

    async def run_once(self) -> ScheduleRun:
        """Execute one pass, recording and logging any failure."""
        started_at = datetime.now(timezone.utc)
        try:
            await self._callback()
        except Exception as e:
            run = ScheduleRun(started_at=started_at, success=False, error=str(e))
            if self._logger:
                self._logger.log_error(
                    "ValidationScheduler",
                    "Scheduled validation pass failed",
                    e,
                    {"started_at": started_at.isoformat()},
                )
        else:
            run = ScheduleRun(started_at=started_at, success=True)
        self._history.append(run)
        return run

    async def run(
        self,
        stop_event: Optional[asyncio.Event] = None,
        max_runs: Optional[int] = None,
    ) -> None:
        """
        Run the scheduler loop.

        Args:
            stop_event: Optional event to signal the scheduler to stop
            max_runs: Optional number of passes after which the loop ends
        """
        self._stop_event = stop_event or asyncio.Event()
        self._running = True
        runs = 0

        if self._logger:
            self._logger.info(
                "ValidationScheduler",
                "Scheduler started",
                {"interval_seconds": self._interval_seconds},
            )

        try:
            while self._running and not self._stop_event.is_set():
                await self.run_once()
                runs += 1
                if max_runs is not None and runs >= max_runs:
                    break

                # Sleep until the next pass, waking early on stop
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval_seconds)
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
            if self._logger:
                self._logger.info("ValidationScheduler", "Scheduler stopped", {"runs": runs})

    def stop(self) -> None:
        """Signal the scheduler to stop."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()

    def is_running(self) -> bool:
        return self._running
