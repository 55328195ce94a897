"""Service layer: sync engines, reporting, notifications and linking."""
from daily_paydown.services.balance_sync import BalanceSyncService
from daily_paydown.services.daily_reports import DailyReportService
from daily_paydown.services.device_cleanup import (CleanupResult,
                                                   DeviceCleanupService)
from daily_paydown.services.item_resolver import (ItemResolver,
                                                  LinkedAccount,
                                                  ResolvedCredential)
from daily_paydown.services.linking import LinkService
from daily_paydown.services.notifications import (DispatchOutcome,
                                                  NotificationDispatcher)
from daily_paydown.services.run_guard import RunGuard
from daily_paydown.services.transaction_sync import (SyncResult, SyncStatus,
                                                     TransactionSyncService)

__all__ = [
    "BalanceSyncService",
    "CleanupResult",
    "DailyReportService",
    "DeviceCleanupService",
    "DispatchOutcome",
    "ItemResolver",
    "LinkedAccount",
    "LinkService",
    "NotificationDispatcher",
    "ResolvedCredential",
    "RunGuard",
    "SyncResult",
    "SyncStatus",
    "TransactionSyncService",
]
