"""Shared fixtures: in-memory database, fake provider and push transports, fixed clock."""
from datetime import datetime, timezone

import pytest

from daily_paydown.db import Database, LedgerStore, LinkedItem, User
from daily_paydown.providers.core import FinancialDataProviderABC
from daily_paydown.push import (PushDelivery, PushMessage, PushProviderABC,
                                PushResult)
from daily_paydown.schemas import (ExchangedItem, ProviderAccount,
                                   ProviderBalances, TransactionPage)
from daily_paydown.vault import CredentialVault

TEST_KEY_HEX = "0123456789abcdef" * 4
SPEND_ACCOUNT = "acc-credit"
COVERAGE_ACCOUNT = "acc-checking"


class FakeProvider(FinancialDataProviderABC):
    """In-memory provider. Configure accounts, pages and errors per test."""

    def __init__(self) -> None:
        self.accounts: dict[str, list[ProviderAccount]] = {}  # access token -> accounts
        self.account_errors: dict[str, Exception] = {}  # access token -> error
        self.pages: dict[str | None, TransactionPage] = {}  # request cursor -> page
        self.page_errors: dict[str | None, Exception] = {}  # request cursor -> error
        self.balances: dict[str, ProviderBalances] = {}
        self.balance_errors: dict[str, Exception] = {}  # account id -> error
        self.exchange_item_id = "item-new"
        self.calls: list[tuple] = []

    async def list_accounts(self, access_token: str) -> list[ProviderAccount]:
        self.calls.append(("list_accounts", access_token))
        if access_token in self.account_errors:
            raise self.account_errors[access_token]
        return list(self.accounts.get(access_token, []))

    async def list_transactions(self, access_token, start_date, end_date, account_ids, cursor=None):
        self.calls.append(("list_transactions", cursor))
        if cursor in self.page_errors:
            raise self.page_errors[cursor]
        return self.pages.get(cursor, TransactionPage())

    async def get_balances(self, access_token, account_ids):
        self.calls.append(("get_balances", tuple(account_ids)))
        for account_id in account_ids:
            if account_id in self.balance_errors:
                raise self.balance_errors[account_id]
        return [
            ProviderAccount(account_id=a, balances=self.balances[a])
            for a in account_ids
            if a in self.balances
        ]

    async def exchange_public_token(self, public_token: str) -> ExchangedItem:
        self.calls.append(("exchange_public_token", public_token))
        return ExchangedItem(access_token=f"access-{public_token}", item_id=self.exchange_item_id)


class FakePushProvider(PushProviderABC):
    """Records sends; per-token scripted results (PushResult or exception), default 200."""

    def __init__(self) -> None:
        self.scripts: dict[str, list] = {}
        self.sent: list[tuple[str, PushMessage]] = []

    async def send(self, token: str, message: PushMessage) -> PushResult:
        self.sent.append((token, message))
        script = self.scripts.get(token)
        if script:
            result = script.pop(0) if len(script) > 1 else script[0]
            if isinstance(result, Exception):
                raise result
            return result
        return PushResult(status_code=200)


class Clock:
    """Settable clock returning aware UTC datetimes."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.init()
    yield db
    db.dispose()


@pytest.fixture
def store(database):
    return LedgerStore(database)


@pytest.fixture
def vault():
    return CredentialVault.from_hex(TEST_KEY_HEX)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def push_provider():
    return FakePushProvider()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep


@pytest.fixture
def delivery(push_provider, store, fake_sleep):
    return PushDelivery(push_provider, store, sleep=fake_sleep)


@pytest.fixture
def clock():
    # 2025-03-10 20:00 in New York (EDT, UTC-4)
    return Clock(datetime(2025, 3, 11, 0, 0, tzinfo=timezone.utc))


def make_user(store: LedgerStore, email: str = "user@example.com", **kwargs) -> User:
    kwargs.setdefault("timezone", "America/New_York")
    return store.create_user(email, **kwargs)


def link_item(
    store: LedgerStore,
    vault: CredentialVault,
    user_id: int,
    item_id: str = "item-1",
    access_token: str = "access-sandbox-1",
) -> LinkedItem:
    return store.upsert_item(user_id, item_id, vault.encrypt(access_token))


def account(account_id: str, available: float | None = None, current: float | None = None) -> ProviderAccount:
    return ProviderAccount(
        account_id=account_id,
        balances=ProviderBalances(available=available, current=current),
    )


@pytest.fixture
def linked_user(store, vault, provider):
    """User with a spend and coverage account on one active item."""
    user = make_user(store)
    link_item(store, vault, user.id)
    store.upsert_selection(user.id, spend_account_id=SPEND_ACCOUNT, coverage_account_id=COVERAGE_ACCOUNT)
    provider.accounts["access-sandbox-1"] = [account(SPEND_ACCOUNT), account(COVERAGE_ACCOUNT)]
    return user
