"""Daily report history route."""
from fastapi import APIRouter, Query

from daily_paydown.deps import CurrentUser, ReportsDep
from daily_paydown.schemas import DailyReportOut

router = APIRouter(prefix="/history", tags=["history"])


@router.get("", response_model=list[DailyReportOut])
def get_history(
    user: CurrentUser,
    reports: ReportsDep,
    limit: int = Query(default=30, ge=1, le=365, description="Number of days to return"),
) -> list[DailyReportOut]:
    """Get stored daily reports, newest first."""
    return reports.history(user.id, limit)
