"""Request models for the Plaid provider."""
from pydantic import BaseModel


class PlaidBalanceOptions(BaseModel):
    account_ids: list[str]


class PlaidAccountsRequest(BaseModel):
    """Body for /accounts/get and /accounts/balance/get (credentials added at call site)."""

    access_token: str
    options: PlaidBalanceOptions | None = None


class PlaidSyncOptions(BaseModel):
    account_id: str | None = None


class PlaidSyncRequest(BaseModel):
    """Body for /transactions/sync. A missing cursor starts from the beginning."""

    access_token: str
    cursor: str | None = None
    count: int = 100
    options: PlaidSyncOptions | None = None
