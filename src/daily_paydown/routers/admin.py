"""Admin routes: row counts and manual job triggers.

Every route requires the X-Admin-Key header.
"""
import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from daily_paydown.deps import (BalanceSyncDep, DispatcherDep, JobRunnerDep,
                                ReportsDep, StoreDep, TransactionSyncDep,
                                require_admin)
from daily_paydown.exceptions import NoAccountSelectedError, UserNotFoundError
from daily_paydown.jobs import JobFamily
from daily_paydown.providers.core import ProviderErrorMapper
from daily_paydown.schemas import DailyReportOut, SyncStatus

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

_errors = ProviderErrorMapper(resource_name="Report")


def _require_user(store: StoreDep, user_id: int) -> None:
    if store.get_user(user_id) is None:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")


@router.get("/sync-status", response_model=SyncStatus)
def sync_status(store: StoreDep) -> SyncStatus:
    """Row counts across the ledger."""
    return SyncStatus(
        users=len(store.list_user_ids()),
        linked_items=store.count_items(),
        transactions=store.count_transactions(),
        balance_snapshots=store.count_balance_snapshots(),
        daily_reports=store.count_reports(),
        devices=len(store.list_devices()),
    )


@router.post("/trigger-sync/{user_id}")
async def trigger_sync(user_id: int, store: StoreDep, sync: TransactionSyncDep) -> dict:
    """Run the transaction sync for one user now."""
    _require_user(store, user_id)
    result = await sync.sync_user(user_id)
    logger.info("Admin triggered sync for user %s: %s", user_id, result.status.value)
    return {**asdict(result), "status": result.status.value}


@router.post("/trigger-balance-sync/{user_id}")
async def trigger_balance_sync(user_id: int, store: StoreDep, balances: BalanceSyncDep) -> dict:
    _require_user(store, user_id)
    return {"snapshots": await balances.sync_user(user_id)}


@router.post("/trigger-report/{user_id}", response_model=DailyReportOut)
def trigger_report(
    user_id: int,
    store: StoreDep,
    reports: ReportsDep,
    date: str | None = None,
) -> DailyReportOut:
    """Recompute one user's report for ``date`` (default: today)."""
    _require_user(store, user_id)
    try:
        report = reports.compute_report(user_id, date)
    except (NoAccountSelectedError, UserNotFoundError, ValueError) as e:
        _errors.raise_http(e)
    user = store.get_user(user_id)
    return reports.to_out(report, reports.timezone_for(user))


@router.post("/trigger-notification/{user_id}")
async def trigger_notification(user_id: int, store: StoreDep, dispatcher: DispatcherDep) -> dict:
    """Send today's summary now, ignoring the notification window (dedup still applies)."""
    _require_user(store, user_id)
    outcome = await dispatcher.dispatch_user(user_id, force=True)
    return {"outcome": outcome.value}


@router.post("/run/{family}")
async def run_job(family: JobFamily, runner: JobRunnerDep) -> dict:
    """Run one job family for every user."""
    result = await runner.run(family)
    return {"family": family.value, **asdict(result)}
