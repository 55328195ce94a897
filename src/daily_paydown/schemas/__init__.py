"""Pydantic schemas for API and runtime use. Not persisted to DB."""
from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from daily_paydown.utils import parse_hhmm


# ---- Provider DTOs ----
class ProviderBalances(BaseModel):
    available: float | None = None
    current: float | None = None


class ProviderAccount(BaseModel):
    """One account exposed by a linked item."""

    account_id: str
    name: str | None = None
    mask: str | None = None
    type: str | None = None
    subtype: str | None = None
    balances: ProviderBalances = Field(default_factory=ProviderBalances)


class ProviderTransaction(BaseModel):
    """Provider transaction.

    ``date`` is the posted calendar date; ``timestamp`` is set only when the
    provider reports the exact instant.
    """

    transaction_id: str
    account_id: str
    name: str
    amount: float  # positive = money out
    date: date
    timestamp: datetime | None = None
    pending: bool = False

    @property
    def is_date_only(self) -> bool:
        return self.timestamp is None


class TransactionPage(BaseModel):
    """One page of incremental transaction sync."""

    transactions: list[ProviderTransaction] = Field(default_factory=list)
    removed_ids: list[str] = Field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False


class ExchangedItem(BaseModel):
    access_token: str
    item_id: str


# ---- API payloads ----
class TodaySummary(BaseModel):
    """Today's spend on the selected spend account."""

    date: str
    total: float
    count: int
    last_updated: datetime | None = None
    coverage_available: float | None = None
    marked_paid: bool = False


class TransactionOut(BaseModel):
    id: str
    name: str
    amount: float
    date: datetime
    pending: bool


class DailyReportOut(BaseModel):
    date: str
    total_amount: float
    transaction_count: int
    last_computed_at: datetime | None = None
    marked_paid_at: datetime | None = None
    push_sent_at: datetime | None = None


class MarkPaidRequest(BaseModel):
    date: str | None = None  # YYYY-MM-DD, defaults to today

    @field_validator("date")
    @classmethod
    def _valid_date(cls, value: str | None) -> str | None:
        if value is not None:
            date.fromisoformat(value)
        return value


class SettingsOut(BaseModel):
    email: str
    timezone: str | None = None
    notification_time: str | None = None
    goal: str | None = None
    spend_account_id: str | None = None
    coverage_account_id: str | None = None


class SettingsUpdate(BaseModel):
    """Partial settings update; only fields that are sent are applied."""

    timezone: str | None = None
    notification_time: str | None = None
    goal: str | None = None
    spend_account_id: str | None = None
    coverage_account_id: str | None = None

    @field_validator("timezone")
    @classmethod
    def _valid_timezone(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                ZoneInfo(value)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("notification_time")
    @classmethod
    def _valid_time(cls, value: str | None) -> str | None:
        if value is not None:
            parse_hhmm(value)
        return value


class DeviceRegistration(BaseModel):
    push_token: str = Field(min_length=1)


class DeviceOut(BaseModel):
    id: int
    push_token: str


class PublicTokenExchange(BaseModel):
    public_token: str = Field(min_length=1)
    institution_name: str | None = None


class LinkedItemOut(BaseModel):
    item_id: str
    institution_name: str | None = None
    status: str


class LinkedAccountOut(BaseModel):
    """An account exposed by one of the user's active items."""

    item_id: str
    institution_name: str | None = None
    account_id: str
    name: str | None = None
    mask: str | None = None
    type: str | None = None
    subtype: str | None = None


class SyncStatus(BaseModel):
    """Row counts for the admin status view."""

    users: int
    linked_items: int
    transactions: int
    balance_snapshots: int
    daily_reports: int
    devices: int


__all__ = [
    "DailyReportOut",
    "DeviceOut",
    "DeviceRegistration",
    "ExchangedItem",
    "LinkedAccountOut",
    "LinkedItemOut",
    "MarkPaidRequest",
    "ProviderAccount",
    "ProviderBalances",
    "ProviderTransaction",
    "PublicTokenExchange",
    "SettingsOut",
    "SettingsUpdate",
    "SyncStatus",
    "TodaySummary",
    "TransactionPage",
    "TransactionOut",
]
