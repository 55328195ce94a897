"""Today's spend routes: summary, transactions and mark-paid."""
import logging

from fastapi import APIRouter

from daily_paydown.deps import CurrentUser, ReportsDep
from daily_paydown.exceptions import NoAccountSelectedError, UserNotFoundError
from daily_paydown.providers.core import ProviderErrorMapper
from daily_paydown.schemas import (DailyReportOut, MarkPaidRequest,
                                   TodaySummary, TransactionOut)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/today", tags=["today"])

_errors = ProviderErrorMapper(resource_name="Report")
# Service errors we map to HTTP; all others propagate.
_REPORT_EXCEPTIONS: tuple[type[Exception], ...] = (
    NoAccountSelectedError,
    UserNotFoundError,
    ValueError,
)


@router.get("", response_model=TodaySummary)
def get_today(user: CurrentUser, reports: ReportsDep) -> TodaySummary:
    """Get today's spend total, count and coverage balance.

    Returns 400 when no spend account is selected.
    """
    try:
        return reports.today_summary(user.id)
    except _REPORT_EXCEPTIONS as e:
        _errors.raise_http(e)


@router.get("/transactions", response_model=list[TransactionOut])
def get_today_transactions(user: CurrentUser, reports: ReportsDep) -> list[TransactionOut]:
    """List today's spend-account transactions, newest first."""
    try:
        return reports.today_transactions(user.id)
    except _REPORT_EXCEPTIONS as e:
        _errors.raise_http(e)


@router.post("/mark-paid", response_model=DailyReportOut)
def mark_paid(
    user: CurrentUser,
    reports: ReportsDep,
    payload: MarkPaidRequest | None = None,
) -> DailyReportOut:
    """Mark a day (default: today) as paid down.

    Args:
        payload: Optional body with ``date`` (YYYY-MM-DD in the user's timezone).

    Returns:
        The recomputed report with marked_paid_at set.
    """
    day = payload.date if payload is not None else None
    try:
        report = reports.mark_paid(user.id, day)
    except _REPORT_EXCEPTIONS as e:
        _errors.raise_http(e)
    logger.info("User %s marked %s as paid", user.id, day or "today")
    return reports.to_out(report, reports.timezone_for(user))
