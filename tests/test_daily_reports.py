"""Tests for local-day aggregation, mark-paid and the read views."""
from datetime import datetime, timezone

import pytest

from daily_paydown.db import TransactionRecord
from daily_paydown.exceptions import NoAccountSelectedError, UserNotFoundError
from daily_paydown.services import DailyReportService

from conftest import COVERAGE_ACCOUNT, SPEND_ACCOUNT, make_user


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def record(tx_id: str, when: datetime, amount: float, *, account_id: str = SPEND_ACCOUNT,
           date_only: bool = False) -> TransactionRecord:
    return TransactionRecord(
        account_id=account_id,
        external_id=tx_id,
        date=when,
        name=f"Merchant {tx_id}",
        amount=amount,
        is_date_only=date_only,
    )


@pytest.fixture
def reports(store, clock):
    return DailyReportService(store, default_timezone="America/New_York", clock=clock)


class TestComputeReport:
    def test_sums_spend_account_for_local_day(self, store, reports, linked_user):
        store.upsert_transactions(linked_user.id, [
            record("t1", utc(2025, 3, 10, 14, 0), 10.50),
            record("t2", utc(2025, 3, 10, 22, 0), 25.75),
            record("t3", utc(2025, 3, 10, 15, 0), 99.0, account_id=COVERAGE_ACCOUNT),
        ])

        report = reports.compute_report(linked_user.id, "2025-03-10")

        assert report.total_amount == 36.25
        assert report.transaction_count == 2
        # Local midnight in New York (EDT) as naive UTC
        assert report.date == utc(2025, 3, 10, 4, 0)

    def test_local_day_boundary(self, store, reports, linked_user):
        store.upsert_transactions(linked_user.id, [
            # 2025-03-10 23:30 in New York
            record("late", utc(2025, 3, 11, 3, 30), 12.0),
            # 2025-03-11 00:15 in New York
            record("early", utc(2025, 3, 11, 4, 15), 8.0),
        ])

        assert reports.compute_report(linked_user.id, "2025-03-10").total_amount == 12.0
        assert reports.compute_report(linked_user.id, "2025-03-11").total_amount == 8.0

    def test_date_only_transaction_keeps_its_calendar_day(self, store, reports, linked_user):
        store.upsert_transactions(linked_user.id, [
            record("posted", utc(2025, 3, 10), 20.0, date_only=True),
        ])

        assert reports.compute_report(linked_user.id, "2025-03-10").transaction_count == 1
        assert reports.compute_report(linked_user.id, "2025-03-09").transaction_count == 0

    def test_refunds_reduce_total(self, store, reports, linked_user):
        store.upsert_transactions(linked_user.id, [
            record("buy", utc(2025, 3, 10, 14, 0), 40.0),
            record("refund", utc(2025, 3, 10, 15, 0), -15.0),
        ])

        report = reports.compute_report(linked_user.id, "2025-03-10")
        assert report.total_amount == 25.0
        assert report.transaction_count == 2

    def test_defaults_to_today_in_user_timezone(self, store, reports, linked_user):
        # Clock is 2025-03-10 20:00 in New York
        store.upsert_transactions(linked_user.id, [record("t1", utc(2025, 3, 10, 18, 0), 7.0)])

        report = reports.compute_report(linked_user.id)

        assert report.date == utc(2025, 3, 10, 4, 0)
        assert report.total_amount == 7.0

    def test_recompute_updates_single_row(self, store, reports, linked_user):
        reports.compute_report(linked_user.id, "2025-03-10")
        store.upsert_transactions(linked_user.id, [record("t1", utc(2025, 3, 10, 18, 0), 5.0)])
        reports.compute_report(linked_user.id, "2025-03-10")

        assert store.count_reports(linked_user.id) == 1
        assert store.list_reports(linked_user.id)[0].total_amount == 5.0

    def test_empty_day_yields_zero_report(self, reports, linked_user):
        report = reports.compute_report(linked_user.id, "2025-03-10")
        assert report.total_amount == 0.0
        assert report.transaction_count == 0

    def test_requires_spend_account(self, store, reports):
        user = make_user(store)
        with pytest.raises(NoAccountSelectedError):
            reports.compute_report(user.id)

    def test_unknown_user(self, reports):
        with pytest.raises(UserNotFoundError):
            reports.compute_report(999)

    def test_malformed_date_key(self, reports, linked_user):
        with pytest.raises(ValueError):
            reports.compute_report(linked_user.id, "03/10/2025")

    def test_falls_back_to_default_timezone(self, store, clock, linked_user):
        store.update_user(linked_user.id, timezone=None)
        service = DailyReportService(store, default_timezone="Asia/Tokyo", clock=clock)

        report = service.compute_report(linked_user.id, "2025-03-10")

        assert report.date == utc(2025, 3, 9, 15, 0)


class TestMarkPaid:
    def test_stamps_and_recomputes(self, store, reports, clock, linked_user):
        store.upsert_transactions(linked_user.id, [record("t1", utc(2025, 3, 10, 18, 0), 9.99)])

        report = reports.mark_paid(linked_user.id)

        assert report.marked_paid_at == utc(2025, 3, 11, 0, 0)
        assert report.total_amount == 9.99

    def test_marking_twice_keeps_one_row_and_restamps(self, store, reports, clock, linked_user):
        reports.mark_paid(linked_user.id, "2025-03-10")
        clock.set(utc(2025, 3, 11, 1, 0))
        report = reports.mark_paid(linked_user.id, "2025-03-10")

        assert store.count_reports(linked_user.id) == 1
        assert report.marked_paid_at == utc(2025, 3, 11, 1, 0)

    def test_recompute_keeps_paid_and_push_stamps(self, store, reports, linked_user):
        paid = reports.mark_paid(linked_user.id, "2025-03-10")
        store.mark_push_sent(paid.id, utc(2025, 3, 11, 0, 0))

        report = reports.compute_report(linked_user.id, "2025-03-10")

        assert report.marked_paid_at is not None
        assert report.push_sent_at == utc(2025, 3, 11, 0, 0)


class TestReadViews:
    def test_today_summary(self, store, reports, linked_user):
        store.upsert_transactions(linked_user.id, [
            record("t1", utc(2025, 3, 10, 14, 0), 10.50),
            record("t2", utc(2025, 3, 10, 22, 0), 25.75),
        ])
        store.add_balance_snapshot(
            linked_user.id, COVERAGE_ACCOUNT, available=500.0, current=510.0, as_of=utc(2025, 3, 10, 23, 0)
        )

        summary = reports.today_summary(linked_user.id)

        assert summary.date == "2025-03-10"
        assert summary.total == 36.25
        assert summary.count == 2
        assert summary.coverage_available == 500.0
        assert summary.last_updated is not None
        assert summary.last_updated.tzinfo is not None
        assert summary.marked_paid is False

    def test_today_summary_reflects_mark_paid(self, reports, linked_user):
        reports.mark_paid(linked_user.id)
        assert reports.today_summary(linked_user.id).marked_paid is True

    def test_today_summary_without_data(self, reports, linked_user):
        summary = reports.today_summary(linked_user.id)
        assert summary.total == 0.0
        assert summary.count == 0
        assert summary.last_updated is None
        assert summary.coverage_available is None

    def test_today_transactions_newest_first(self, store, reports, linked_user):
        store.upsert_transactions(linked_user.id, [
            record("t1", utc(2025, 3, 10, 14, 0), 1.0),
            record("t2", utc(2025, 3, 10, 22, 0), 2.0),
            record("old", utc(2025, 3, 9, 14, 0), 3.0),
        ])

        items = reports.today_transactions(linked_user.id)

        assert [item.id for item in items] == ["t2", "t1"]
        assert items[0].date == utc(2025, 3, 10, 22, 0)

    def test_history_newest_first_with_local_keys(self, reports, linked_user):
        reports.compute_report(linked_user.id, "2025-03-08")
        reports.compute_report(linked_user.id, "2025-03-10")
        reports.mark_paid(linked_user.id, "2025-03-09")

        history = reports.history(linked_user.id, limit=2)

        assert [entry.date for entry in history] == ["2025-03-10", "2025-03-09"]
        assert history[1].marked_paid_at is not None

    def test_recent_date_keys(self, reports, store, linked_user):
        user = store.get_user(linked_user.id)
        assert reports.recent_date_keys(user) == ["2025-03-09", "2025-03-10"]
