"""Job families and the per-user batch runner.

Each family runs its service over every user. One user's failure is logged
and counted; it never aborts the batch.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from daily_paydown.db import LedgerStore
from daily_paydown.services import (BalanceSyncService, DailyReportService,
                                    DeviceCleanupService,
                                    NotificationDispatcher,
                                    TransactionSyncService)

logger = logging.getLogger(__name__)


class JobFamily(str, Enum):
    TRANSACTION_SYNC = "sync-transactions"
    BALANCE_SYNC = "sync-balances"
    REPORTS = "compute-reports"
    NOTIFICATIONS = "send-notifications"
    DEVICE_CLEANUP = "cleanup-devices"


@dataclass(frozen=True)
class BatchResult:
    processed: int = 0
    failed: int = 0
    skipped: int = 0


async def run_for_users(
    user_ids: Iterable[int],
    func: Callable[[int], Awaitable[object]],
    concurrency: int = 5,
    stop_event: asyncio.Event | None = None,
) -> BatchResult:
    """Run func for each user with bounded concurrency.

    Args:
        user_ids: Users to process.
        func: Async callable(user_id).
        concurrency: Maximum users in flight at once.
        stop_event: When set, users that have not started yet are skipped.
            A user already in progress always finishes.

    Returns:
        Counts of processed, failed and skipped users.
    """
    semaphore = asyncio.Semaphore(concurrency)

    async def _one(user_id: int) -> str:
        async with semaphore:
            if stop_event is not None and stop_event.is_set():
                return "skipped"
            try:
                await func(user_id)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Job step failed for user %s", user_id)
                return "failed"
            return "processed"

    outcomes = await asyncio.gather(*(_one(user_id) for user_id in user_ids))
    return BatchResult(
        processed=outcomes.count("processed"),
        failed=outcomes.count("failed"),
        skipped=outcomes.count("skipped"),
    )


class JobRunner:
    """Runs one job family, for all users or a chosen subset."""

    def __init__(
        self,
        store: LedgerStore,
        transaction_sync: TransactionSyncService,
        balance_sync: BalanceSyncService,
        reports: DailyReportService,
        dispatcher: NotificationDispatcher,
        device_cleanup: DeviceCleanupService,
        *,
        concurrency: int = 5,
    ) -> None:
        self._store = store
        self._transaction_sync = transaction_sync
        self._balance_sync = balance_sync
        self._reports = reports
        self._dispatcher = dispatcher
        self._device_cleanup = device_cleanup
        self._concurrency = concurrency

    async def run(
        self,
        family: JobFamily,
        user_ids: list[int] | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> BatchResult:
        """Run one family once.

        Args:
            family: Which job to run.
            user_ids: Restrict to these users; defaults to every user.
            stop_event: Cancellation signal checked between users.
        """
        if family is JobFamily.DEVICE_CLEANUP:
            result = await self._device_cleanup.run(stop_event)
            return BatchResult(processed=result.checked)

        steps: dict[JobFamily, Callable[[int], Awaitable[object]]] = {
            JobFamily.TRANSACTION_SYNC: self._transaction_sync.sync_user,
            JobFamily.BALANCE_SYNC: self._balance_sync.sync_user,
            JobFamily.REPORTS: self._compute_recent_reports,
            JobFamily.NOTIFICATIONS: self._dispatcher.dispatch_user,
        }
        ids = user_ids if user_ids is not None else self._store.list_user_ids()
        result = await run_for_users(ids, steps[family], self._concurrency, stop_event)
        log = logger.warning if result.failed else logger.info
        log(
            "Job %s finished: %d processed, %d failed, %d skipped",
            family.value, result.processed, result.failed, result.skipped,
        )
        return result

    async def _compute_recent_reports(self, user_id: int) -> None:
        user = self._store.get_user(user_id)
        if user is None or not user.timezone:
            return
        selection = self._store.get_selection(user_id)
        if selection is None or not selection.spend_account_id:
            return
        for key in self._reports.recent_date_keys(user):
            self._reports.compute_report(user_id, key)
