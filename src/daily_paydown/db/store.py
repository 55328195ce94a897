"""Persistence boundary for the ledger.

LedgerStore offers unique-keyed upserts (transactions, daily reports, linked
items, devices, account selections) and append-only inserts (balance
snapshots). Each call runs in its own session, so every state transition is a
single write.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlmodel import col, select

from daily_paydown.db.models import (AccountSelection, BalanceSnapshot,
                                     DailyReport, Device, ItemStatus,
                                     LinkedItem, Transaction, User)
from daily_paydown.db.sessions import Database
from daily_paydown.utils import as_utc, utcnow

_UNSET: Any = object()


@dataclass(frozen=True)
class TransactionRecord:
    """Provider transaction normalized for the ledger."""

    account_id: str
    external_id: str
    date: datetime
    name: str
    amount: float
    pending: bool = False
    is_date_only: bool = False


@dataclass(frozen=True)
class UpsertCounts:
    inserted: int = 0
    updated: int = 0

    @property
    def total(self) -> int:
        return self.inserted + self.updated


class LedgerStore:
    """Repository over the Database for every ledger entity."""

    def __init__(self, database: Database) -> None:
        self._db = database

    # ---- Users ----
    def create_user(
        self,
        email: str,
        *,
        timezone: str | None = None,
        notification_time: str | None = None,
        goal: str | None = None,
    ) -> User:
        user = User(
            email=email,
            timezone=timezone,
            notification_time=notification_time,
            goal=goal,
        )
        with self._db.session() as session:
            session.add(user)
            session.flush()
            session.refresh(user)
        return user

    def get_user(self, user_id: int) -> User | None:
        with self._db.session() as session:
            return session.get(User, user_id)

    def list_user_ids(self) -> list[int]:
        with self._db.session() as session:
            return list(session.exec(select(User.id).order_by(User.id)).all())

    def update_user(self, user_id: int, **fields: Any) -> User | None:
        """Set the given User columns; returns None when the user does not exist."""
        with self._db.session() as session:
            user = session.get(User, user_id)
            if user is None:
                return None
            for name, value in fields.items():
                setattr(user, name, value)
            session.add(user)
            return user

    # ---- Account selection ----
    def get_selection(self, user_id: int) -> AccountSelection | None:
        with self._db.session() as session:
            return session.exec(
                select(AccountSelection).where(AccountSelection.user_id == user_id)
            ).first()

    def upsert_selection(
        self,
        user_id: int,
        *,
        spend_account_id: str | None = _UNSET,
        coverage_account_id: str | None = _UNSET,
    ) -> AccountSelection:
        """Create or update the user's selection; omitted fields are left unchanged."""
        with self._db.session() as session:
            selection = session.exec(
                select(AccountSelection).where(AccountSelection.user_id == user_id)
            ).first()
            if selection is None:
                selection = AccountSelection(user_id=user_id)
            if spend_account_id is not _UNSET:
                selection.spend_account_id = spend_account_id
            if coverage_account_id is not _UNSET:
                selection.coverage_account_id = coverage_account_id
            selection.updated_at = utcnow()
            session.add(selection)
            session.flush()
            session.refresh(selection)
            return selection

    # ---- Linked items ----
    def list_items(self, user_id: int) -> list[LinkedItem]:
        with self._db.session() as session:
            return list(
                session.exec(
                    select(LinkedItem)
                    .where(LinkedItem.user_id == user_id)
                    .order_by(LinkedItem.id)
                ).all()
            )

    def get_item(self, item_pk: int) -> LinkedItem | None:
        with self._db.session() as session:
            return session.get(LinkedItem, item_pk)

    def get_item_by_external_id(self, item_id: str) -> LinkedItem | None:
        with self._db.session() as session:
            return session.exec(select(LinkedItem).where(LinkedItem.item_id == item_id)).first()

    def get_user_item(self, user_id: int, item_id: str) -> LinkedItem | None:
        """The item with this external id, only if user_id owns it."""
        with self._db.session() as session:
            return session.exec(
                select(LinkedItem)
                .where(LinkedItem.user_id == user_id)
                .where(LinkedItem.item_id == item_id)
            ).first()

    def delete_item(self, item_pk: int) -> bool:
        with self._db.session() as session:
            item = session.get(LinkedItem, item_pk)
            if item is None:
                return False
            session.delete(item)
            return True

    def upsert_item(
        self,
        user_id: int,
        item_id: str,
        access_token_encrypted: str,
        *,
        institution_name: str | None = None,
    ) -> LinkedItem:
        """Store a freshly exchanged credential; re-linking reactivates the item."""
        now = utcnow()
        with self._db.session() as session:
            item = session.exec(select(LinkedItem).where(LinkedItem.item_id == item_id)).first()
            if item is None:
                item = LinkedItem(
                    user_id=user_id,
                    item_id=item_id,
                    access_token_encrypted=access_token_encrypted,
                )
            item.user_id = user_id
            item.access_token_encrypted = access_token_encrypted
            if institution_name is not None:
                item.institution_name = institution_name
            item.status = ItemStatus.ACTIVE
            item.last_error = None
            item.updated_at = now
            session.add(item)
            session.flush()
            session.refresh(item)
            return item

    def update_item(self, item_pk: int, **fields: Any) -> LinkedItem | None:
        """Set the given LinkedItem columns and bump updated_at."""
        with self._db.session() as session:
            item = session.get(LinkedItem, item_pk)
            if item is None:
                return None
            for name, value in fields.items():
                setattr(item, name, value)
            item.updated_at = utcnow()
            session.add(item)
            return item

    def set_item_status(
        self, item_pk: int, status: ItemStatus, last_error: str | None
    ) -> LinkedItem | None:
        return self.update_item(item_pk, status=status, last_error=last_error)

    def save_cursor(self, item_pk: int, cursor: str | None) -> None:
        self.update_item(item_pk, sync_cursor=cursor)

    def count_items(self, *, exclude_status: ItemStatus | None = None) -> int:
        stmt = select(func.count()).select_from(LinkedItem)
        if exclude_status is not None:
            stmt = stmt.where(LinkedItem.status != exclude_status)
        with self._db.session() as session:
            return session.exec(stmt).one()

    # ---- Transactions ----
    def upsert_transactions(self, user_id: int, records: list[TransactionRecord]) -> UpsertCounts:
        """Insert or update rows keyed by external_id within one session."""
        if not records:
            return UpsertCounts()
        now = utcnow()
        inserted = updated = 0
        with self._db.session() as session:
            external_ids = [r.external_id for r in records]
            existing = {
                tx.external_id: tx
                for tx in session.exec(
                    select(Transaction).where(col(Transaction.external_id).in_(external_ids))
                ).all()
            }
            for record in records:
                tx = existing.get(record.external_id)
                if tx is None:
                    tx = Transaction(
                        user_id=user_id,
                        account_id=record.account_id,
                        external_id=record.external_id,
                        date=as_utc(record.date),
                        is_date_only=record.is_date_only,
                        name=record.name,
                        amount=record.amount,
                        pending=record.pending,
                        created_at=now,
                        updated_at=now,
                    )
                    existing[record.external_id] = tx
                    inserted += 1
                else:
                    tx.date = as_utc(record.date)
                    tx.is_date_only = record.is_date_only
                    tx.name = record.name
                    tx.amount = record.amount
                    tx.pending = record.pending
                    tx.updated_at = now
                    updated += 1
                session.add(tx)
        return UpsertCounts(inserted=inserted, updated=updated)

    def delete_transactions(self, external_ids: list[str]) -> int:
        if not external_ids:
            return 0
        with self._db.session() as session:
            rows = session.exec(
                select(Transaction).where(col(Transaction.external_id).in_(external_ids))
            ).all()
            for row in rows:
                session.delete(row)
            return len(rows)

    def transactions_between(
        self, user_id: int, account_id: str, start: datetime, end: datetime
    ) -> list[Transaction]:
        """Rows with start <= date < end (UTC), newest first."""
        with self._db.session() as session:
            return list(
                session.exec(
                    select(Transaction)
                    .where(Transaction.user_id == user_id)
                    .where(Transaction.account_id == account_id)
                    .where(Transaction.date >= as_utc(start))
                    .where(Transaction.date < as_utc(end))
                    .order_by(col(Transaction.date).desc())
                ).all()
            )

    def latest_transaction_update(self, user_id: int, account_id: str) -> datetime | None:
        with self._db.session() as session:
            return session.exec(
                select(func.max(Transaction.updated_at))
                .where(Transaction.user_id == user_id)
                .where(Transaction.account_id == account_id)
            ).one()

    def count_transactions(self, user_id: int | None = None) -> int:
        stmt = select(func.count()).select_from(Transaction)
        if user_id is not None:
            stmt = stmt.where(Transaction.user_id == user_id)
        with self._db.session() as session:
            return session.exec(stmt).one()

    # ---- Balances ----
    def add_balance_snapshot(
        self,
        user_id: int,
        account_id: str,
        *,
        available: float | None,
        current: float | None,
        as_of: datetime,
    ) -> BalanceSnapshot:
        snapshot = BalanceSnapshot(
            user_id=user_id,
            account_id=account_id,
            available=available,
            current=current,
            as_of=as_utc(as_of),
        )
        with self._db.session() as session:
            session.add(snapshot)
            session.flush()
            session.refresh(snapshot)
        return snapshot

    def latest_balance(self, user_id: int, account_id: str) -> BalanceSnapshot | None:
        with self._db.session() as session:
            return session.exec(
                select(BalanceSnapshot)
                .where(BalanceSnapshot.user_id == user_id)
                .where(BalanceSnapshot.account_id == account_id)
                .order_by(col(BalanceSnapshot.as_of).desc(), col(BalanceSnapshot.id).desc())
            ).first()

    def list_balance_snapshots(self, user_id: int, account_id: str) -> list[BalanceSnapshot]:
        with self._db.session() as session:
            return list(
                session.exec(
                    select(BalanceSnapshot)
                    .where(BalanceSnapshot.user_id == user_id)
                    .where(BalanceSnapshot.account_id == account_id)
                    .order_by(BalanceSnapshot.as_of, BalanceSnapshot.id)
                ).all()
            )

    def count_balance_snapshots(self) -> int:
        with self._db.session() as session:
            return session.exec(select(func.count()).select_from(BalanceSnapshot)).one()

    # ---- Daily reports ----
    def get_report(self, user_id: int, day_start: datetime) -> DailyReport | None:
        with self._db.session() as session:
            return session.exec(
                select(DailyReport)
                .where(DailyReport.user_id == user_id)
                .where(DailyReport.date == as_utc(day_start))
            ).first()

    def upsert_report_totals(
        self,
        user_id: int,
        day_start: datetime,
        *,
        total_amount: float,
        transaction_count: int,
        computed_at: datetime,
        marked_paid_at: datetime | None = None,
    ) -> DailyReport:
        """Create or refresh the (user, day) report totals.

        push_sent_at is never touched; marked_paid_at only when given.
        """
        stamp = as_utc(computed_at)
        with self._db.session() as session:
            report = session.exec(
                select(DailyReport)
                .where(DailyReport.user_id == user_id)
                .where(DailyReport.date == as_utc(day_start))
            ).first()
            if report is None:
                report = DailyReport(user_id=user_id, date=as_utc(day_start), created_at=stamp)
            report.total_amount = total_amount
            report.transaction_count = transaction_count
            report.last_computed_at = stamp
            if marked_paid_at is not None:
                report.marked_paid_at = as_utc(marked_paid_at)
            report.updated_at = stamp
            session.add(report)
            session.flush()
            session.refresh(report)
            return report

    def mark_push_sent(self, report_id: int, sent_at: datetime) -> DailyReport | None:
        with self._db.session() as session:
            report = session.get(DailyReport, report_id)
            if report is None:
                return None
            report.push_sent_at = as_utc(sent_at)
            report.updated_at = as_utc(sent_at)
            session.add(report)
            return report

    def list_reports(self, user_id: int, limit: int = 30) -> list[DailyReport]:
        with self._db.session() as session:
            return list(
                session.exec(
                    select(DailyReport)
                    .where(DailyReport.user_id == user_id)
                    .order_by(col(DailyReport.date).desc())
                    .limit(limit)
                ).all()
            )

    def count_reports(self, user_id: int | None = None) -> int:
        stmt = select(func.count()).select_from(DailyReport)
        if user_id is not None:
            stmt = stmt.where(DailyReport.user_id == user_id)
        with self._db.session() as session:
            return session.exec(stmt).one()

    # ---- Devices ----
    def upsert_device(self, user_id: int, push_token: str) -> Device:
        """Register a token; an existing token moves to this user."""
        now = utcnow()
        with self._db.session() as session:
            device = session.exec(select(Device).where(Device.push_token == push_token)).first()
            if device is None:
                device = Device(user_id=user_id, push_token=push_token, created_at=now)
            device.user_id = user_id
            device.updated_at = now
            session.add(device)
            session.flush()
            session.refresh(device)
            return device

    def list_devices(self, user_id: int | None = None) -> list[Device]:
        stmt = select(Device).order_by(Device.id)
        if user_id is not None:
            stmt = stmt.where(Device.user_id == user_id)
        with self._db.session() as session:
            return list(session.exec(stmt).all())

    def delete_device(self, device_id: int) -> bool:
        with self._db.session() as session:
            device = session.get(Device, device_id)
            if device is None:
                return False
            session.delete(device)
            return True
