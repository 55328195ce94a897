"""Daily spend aggregation, mark-paid and today/history views.

A transaction belongs to a local day when its date key, computed in the
user's timezone, equals that day's key. The UTC range query is only a coarse
pre-filter.
"""
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from daily_paydown.db import DailyReport, LedgerStore, Transaction, User
from daily_paydown.exceptions import NoAccountSelectedError, UserNotFoundError
from daily_paydown.schemas import DailyReportOut, TodaySummary, TransactionOut
from daily_paydown.utils import (DayBounds, bounds_for_date_key, date_key,
                                 round2, transaction_date_key, utcnow)

logger = logging.getLogger(__name__)


class DailyReportService:
    """Compute and read per-day spend reports for the selected spend account."""

    def __init__(
        self,
        store: LedgerStore,
        *,
        default_timezone: str = "America/New_York",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._default_timezone = default_timezone
        self._clock = clock

    # ---- Lookups ----
    def _user(self, user_id: int) -> User:
        user = self._store.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def timezone_for(self, user: User) -> str:
        return user.timezone or self._default_timezone

    def _spend_account(self, user_id: int) -> str:
        selection = self._store.get_selection(user_id)
        if selection is None or not selection.spend_account_id:
            raise NoAccountSelectedError(user_id)
        return selection.spend_account_id

    def _bounds(self, tz_name: str, key: str | None) -> DayBounds:
        if key is None:
            key = date_key(self._clock(), tz_name)
        return bounds_for_date_key(key, tz_name)

    def day_transactions(
        self, user_id: int, account_id: str, bounds: DayBounds, tz_name: str
    ) -> list[Transaction]:
        """Transactions of one account whose local date key is bounds.date_key."""
        start, end = bounds.prefilter_range()
        candidates = self._store.transactions_between(user_id, account_id, start, end)
        return [
            tx
            for tx in candidates
            if transaction_date_key(tx.date, tx.is_date_only, tz_name) == bounds.date_key
        ]

    # ---- Reports ----
    def compute_report(self, user_id: int, date_key: str | None = None) -> DailyReport:
        """Recompute totals for one local day and upsert the report.

        Args:
            user_id: Report owner.
            date_key: YYYY-MM-DD in the user's timezone; defaults to today.

        Returns:
            The upserted DailyReport. marked_paid_at and push_sent_at are left as they were.

        Raises:
            UserNotFoundError: Unknown user.
            NoAccountSelectedError: No spend account selected.
            ValueError: Malformed date_key.
        """
        return self._upsert(user_id, date_key, mark_paid=False)

    def mark_paid(self, user_id: int, date_key: str | None = None) -> DailyReport:
        """Recompute the day's totals and stamp marked_paid_at with the current time.

        Marking an already-paid day again recomputes and re-stamps it.
        """
        return self._upsert(user_id, date_key, mark_paid=True)

    def _upsert(self, user_id: int, key: str | None, *, mark_paid: bool) -> DailyReport:
        user = self._user(user_id)
        account_id = self._spend_account(user_id)
        tz_name = self.timezone_for(user)
        bounds = self._bounds(tz_name, key)

        transactions = self.day_transactions(user_id, account_id, bounds, tz_name)
        total = round2(sum(tx.amount for tx in transactions)) or 0.0
        now = self._clock()
        report = self._store.upsert_report_totals(
            user_id,
            bounds.start_utc,
            total_amount=total,
            transaction_count=len(transactions),
            computed_at=now,
            marked_paid_at=now if mark_paid else None,
        )
        logger.debug(
            "Report for user %s on %s: %.2f across %d transactions%s",
            user_id, bounds.date_key, total, len(transactions), " (marked paid)" if mark_paid else "",
        )
        return report

    def today_report(self, user_id: int) -> DailyReport | None:
        """Stored report for the user's current local day, if any."""
        user = self._user(user_id)
        bounds = self._bounds(self.timezone_for(user), None)
        return self._store.get_report(user_id, bounds.start_utc)

    def recent_date_keys(self, user: User) -> list[str]:
        """Yesterday's and today's keys in the user's timezone."""
        tz_name = self.timezone_for(user)
        now = self._clock()
        return [date_key(now - timedelta(days=1), tz_name), date_key(now, tz_name)]

    # ---- Read views ----
    def today_summary(self, user_id: int) -> TodaySummary:
        user = self._user(user_id)
        account_id = self._spend_account(user_id)
        tz_name = self.timezone_for(user)
        bounds = self._bounds(tz_name, None)

        transactions = self.day_transactions(user_id, account_id, bounds, tz_name)
        selection = self._store.get_selection(user_id)
        coverage = None
        if selection is not None and selection.coverage_account_id:
            snapshot = self._store.latest_balance(user_id, selection.coverage_account_id)
            if snapshot is not None:
                coverage = snapshot.available
        last_updated = self._store.latest_transaction_update(user_id, account_id)
        report = self._store.get_report(user_id, bounds.start_utc)

        return TodaySummary(
            date=bounds.date_key,
            total=round2(sum(tx.amount for tx in transactions)) or 0.0,
            count=len(transactions),
            last_updated=last_updated,
            coverage_available=coverage,
            marked_paid=report is not None and report.marked_paid_at is not None,
        )

    def today_transactions(self, user_id: int) -> list[TransactionOut]:
        user = self._user(user_id)
        account_id = self._spend_account(user_id)
        tz_name = self.timezone_for(user)
        bounds = self._bounds(tz_name, None)
        return [
            TransactionOut(
                id=tx.external_id,
                name=tx.name,
                amount=tx.amount,
                date=tx.date,
                pending=tx.pending,
            )
            for tx in self.day_transactions(user_id, account_id, bounds, tz_name)
        ]

    def history(self, user_id: int, limit: int = 30) -> list[DailyReportOut]:
        """Stored reports, newest first."""
        user = self._user(user_id)
        tz_name = self.timezone_for(user)
        return [self.to_out(report, tz_name) for report in self._store.list_reports(user_id, limit)]

    @staticmethod
    def to_out(report: DailyReport, tz_name: str) -> DailyReportOut:
        return DailyReportOut(
            date=date_key(report.date, tz_name),
            total_amount=report.total_amount,
            transaction_count=report.transaction_count,
            last_computed_at=report.last_computed_at,
            marked_paid_at=report.marked_paid_at,
            push_sent_at=report.push_sent_at,
        )
