"""Database models for the daily spend ledger.

Datetime columns are timezone aware and always hold UTC. DailyReport.date is
the UTC instant of local midnight for the user's timezone.
"""
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, UniqueConstraint
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel

from daily_paydown.utils import as_utc, utcnow


class UTCDateTime(TypeDecorator):
    """DateTime(timezone=True) that binds and loads aware UTC values.

    Naive input is taken as UTC. SQLite drops the offset on storage, so
    loaded values get UTC attached again.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else as_utc(value)

    def process_result_value(self, value, dialect):
        return None if value is None else as_utc(value)


class ItemStatus(str, Enum):
    """Lifecycle of a linked provider item."""

    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"
    ERROR = "error"


class User(SQLModel, table=True):
    """Account holder with notification preferences."""

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)
    timezone: str | None = None  # IANA name, e.g. America/New_York
    notification_time: str | None = None  # HH:MM local time
    goal: str | None = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class LinkedItem(SQLModel, table=True):
    """One provider credential bundle; may expose several accounts."""

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    item_id: str = Field(unique=True, index=True)
    access_token_encrypted: str
    institution_name: str | None = None
    status: ItemStatus = Field(default=ItemStatus.ACTIVE)
    sync_cursor: str | None = None
    last_error: str | None = None
    last_webhook_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class AccountSelection(SQLModel, table=True):
    """The user's chosen spend (credit) and coverage (checking) accounts."""

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True, index=True)
    spend_account_id: str | None = None
    coverage_account_id: str | None = None
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class Transaction(SQLModel, table=True):
    """Ledger row; external_id is the provider's transaction id."""

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    account_id: str = Field(index=True)
    external_id: str = Field(unique=True, index=True)
    date: datetime = Field(sa_type=UTCDateTime, index=True)
    is_date_only: bool = False
    name: str
    amount: float
    pending: bool = False
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class BalanceSnapshot(SQLModel, table=True):
    """Point-in-time balance; append-only."""

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    account_id: str = Field(index=True)
    available: float | None = None
    current: float | None = None
    as_of: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, index=True)


class DailyReport(SQLModel, table=True):
    """Aggregated spend for one user on one local calendar day."""

    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_daily_report_user_date"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    date: datetime = Field(sa_type=UTCDateTime)
    total_amount: float = 0.0
    transaction_count: int = 0
    last_computed_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    marked_paid_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    push_sent_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class Device(SQLModel, table=True):
    """Registered push endpoint; one user per token."""

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    push_token: str = Field(unique=True, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
