"""
Recurring and on-demand triggers for the refresh pipeline.

The recurring trigger fires at a fixed minute of every hour (minute 0 by
default). Both triggers call the same pipeline entry point; the only
difference is the provenance string passed along for logging.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .models import RunResult, RunSucceeded
from .pipeline import RefreshPipeline

logger = logging.getLogger(__name__)


def next_run_after(now: datetime, minute: int = 0) -> datetime:
    """The first instant strictly after `now` whose minute is `minute` (seconds zeroed)."""
    candidate = now.replace(minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(hours=1)
    return candidate


class RefreshScheduler:
    def __init__(
        self,
        pipeline: RefreshPipeline,
        minute: int = 0,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        if not 0 <= minute <= 59:
            raise ValueError("minute must be between 0 and 59")
        self._pipeline = pipeline
        self._minute = minute
        self._clock = clock

    @property
    def cron(self) -> str:
        return f"{self._minute} * * * *"

    def trigger_now(self) -> RunResult:
        logger.info("[Manual Trigger] Starting task refresh workflow...")
        result = self._pipeline.run(provenance="manual")
        self._log_result("Manual Trigger", result)
        return result

    def run_scheduled(self) -> RunResult:
        result = self._pipeline.run(provenance="scheduled")
        self._log_result("Scheduled", result)
        return result

    def run_forever(self, stop_event: Optional[threading.Event] = None, max_runs: Optional[int] = None) -> int:
        """
        Block, running the pipeline at every scheduled instant until stop_event
        is set (or max_runs runs have happened). Returns the number of runs.
        """
        stop_event = stop_event or threading.Event()
        runs = 0
        logger.info("Task refresh scheduled with cron %r.", self.cron)

        while not stop_event.is_set():
            if max_runs is not None and runs >= max_runs:
                break
            now = self._clock()
            due = next_run_after(now, self._minute)
            wait_seconds = max(0.0, (due - now).total_seconds())
            logger.info("Next task refresh at %s.", due.isoformat())
            if stop_event.wait(wait_seconds):
                break
            self.run_scheduled()
            runs += 1

        return runs

    @staticmethod
    def _log_result(label: str, result: RunResult) -> None:
        if isinstance(result, RunSucceeded):
            logger.info("[%s] %s", label, result.summary.message)
        else:
            logger.error("[%s] Workflow execution failed: %s", label, result.cause)
