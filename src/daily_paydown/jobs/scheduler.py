"""In-process interval scheduler for the job families."""
import asyncio
import contextlib
import logging

from daily_paydown.config import Settings
from daily_paydown.jobs.tasks import JobFamily, JobRunner

logger = logging.getLogger(__name__)


def intervals_from_settings(settings: Settings) -> dict[JobFamily, float]:
    return {
        JobFamily.TRANSACTION_SYNC: settings.transaction_sync_interval_seconds,
        JobFamily.BALANCE_SYNC: settings.balance_sync_interval_seconds,
        JobFamily.REPORTS: settings.report_interval_seconds,
        JobFamily.NOTIFICATIONS: settings.notification_interval_seconds,
        JobFamily.DEVICE_CLEANUP: settings.device_cleanup_interval_seconds,
    }


class JobScheduler:
    """One asyncio loop per job family.

    A loop awaits its run before sleeping, so a family never overlaps itself.
    stop() sets a shared event: loops exit and batches stop between users.
    """

    def __init__(self, runner: JobRunner, intervals: dict[JobFamily, float]) -> None:
        self._runner = runner
        self._intervals = intervals
        self._stop_event = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        """Start every family loop on the running event loop."""
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._tasks = [
            asyncio.create_task(self._loop(family, interval), name=f"job:{family.value}")
            for family, interval in self._intervals.items()
        ]
        logger.info("Scheduler started with %d job families", len(self._tasks))

    async def stop(self, timeout: float = 30.0) -> None:
        """Signal all loops to stop and wait for in-flight runs to finish."""
        self._stop_event.set()
        if not self._tasks:
            return
        done, pending = await asyncio.wait(self._tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        for task in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.info("Scheduler stopped (%d finished, %d cancelled)", len(done), len(pending))
        self._tasks = []

    async def _loop(self, family: JobFamily, interval: float) -> None:
        while not self._stop_event.is_set():
            try:
                await self._runner.run(family, stop_event=self._stop_event)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Job %s crashed", family.value)
            # Sleep for the interval, waking early on stop
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
