"""Plaid financial data provider."""
import logging
from datetime import date
from typing import Any

import httpx

from daily_paydown.providers.core import (FinancialDataProviderABC,
                                          TransientProviderError)
from daily_paydown.providers.core.exceptions import \
    provider_error_from_payload
from daily_paydown.providers.plaid.models import (PlaidAccountsRequest,
                                                  PlaidBalanceOptions,
                                                  PlaidSyncOptions,
                                                  PlaidSyncRequest)
from daily_paydown.schemas import (ExchangedItem, ProviderAccount,
                                   ProviderTransaction, TransactionPage)
from daily_paydown.utils import mask_token

logger = logging.getLogger(__name__)

PLAID_ENVIRONMENTS = {
    "sandbox": "https://sandbox.plaid.com",
    "development": "https://development.plaid.com",
    "production": "https://production.plaid.com",
}


class PlaidProvider(FinancialDataProviderABC):
    """Account, transaction and balance data via the Plaid REST API.

    Every request carries client_id/secret in the JSON body. Plaid error bodies
    are turned into CredentialExpiredError or TransientProviderError; timeouts
    and transport failures are always transient.
    """

    SYNC_PAGE_SIZE = 500

    def __init__(
        self,
        client_id: str | None,
        secret: str | None,
        environment: str = "sandbox",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Plaid provider.

        Args:
            client_id: Plaid client id.
            secret: Plaid secret for the chosen environment.
            environment: One of sandbox, development, production.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        if environment not in PLAID_ENVIRONMENTS:
            raise ValueError(
                f"Unknown Plaid environment '{environment}'. "
                f"Expected one of: {', '.join(PLAID_ENVIRONMENTS)}"
            )
        self._client_id = client_id or ""
        self._secret = secret or ""
        self.environment = environment
        self._client = httpx.AsyncClient(
            base_url=PLAID_ENVIRONMENTS[environment],
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        body = {"client_id": self._client_id, "secret": self._secret, **payload}
        try:
            response = await self._client.post(path, json=body)
        except httpx.TimeoutException as exc:
            raise TransientProviderError("TIMEOUT", f"{path} timed out") from exc
        except httpx.TransportError as exc:
            raise TransientProviderError("NETWORK_ERROR", str(exc) or type(exc).__name__) from exc

        if response.is_error:
            try:
                error_body = response.json()
            except ValueError:
                error_body = None
            if not isinstance(error_body, dict):
                error_body = {"error_code": f"HTTP_{response.status_code}"}
            raise provider_error_from_payload(error_body, response.status_code)
        return response.json()

    async def list_accounts(self, access_token: str) -> list[ProviderAccount]:
        data = await self._post(
            "/accounts/get",
            PlaidAccountsRequest(access_token=access_token).model_dump(exclude_none=True),
        )
        return [self._account_from_raw(raw) for raw in data.get("accounts", [])]

    async def list_transactions(
        self,
        access_token: str,
        start_date: date,
        end_date: date,
        account_ids: list[str],
        cursor: str | None = None,
    ) -> TransactionPage:
        """Fetch one /transactions/sync page.

        /transactions/sync has no date range, so the window and account
        filter are applied to the page's added and modified rows. Removed ids
        are passed through unfiltered.
        """
        options = PlaidSyncOptions(account_id=account_ids[0]) if len(account_ids) == 1 else None
        request = PlaidSyncRequest(
            access_token=access_token,
            cursor=cursor,
            count=self.SYNC_PAGE_SIZE,
            options=options,
        )
        logger.debug(
            "Plaid /transactions/sync token=%s cursor=%s", mask_token(access_token), cursor
        )
        data = await self._post("/transactions/sync", request.model_dump(exclude_none=True))

        wanted = set(account_ids)
        transactions = [
            tx
            for tx in (
                self._transaction_from_raw(raw)
                for raw in [*data.get("added", []), *data.get("modified", [])]
            )
            if tx.account_id in wanted and start_date <= tx.date <= end_date
        ]
        return TransactionPage(
            transactions=transactions,
            removed_ids=[r["transaction_id"] for r in data.get("removed", []) if r.get("transaction_id")],
            next_cursor=data.get("next_cursor") or None,
            has_more=bool(data.get("has_more")),
        )

    async def get_balances(
        self, access_token: str, account_ids: list[str]
    ) -> list[ProviderAccount]:
        request = PlaidAccountsRequest(
            access_token=access_token,
            options=PlaidBalanceOptions(account_ids=account_ids),
        )
        data = await self._post("/accounts/balance/get", request.model_dump(exclude_none=True))
        return [self._account_from_raw(raw) for raw in data.get("accounts", [])]

    async def exchange_public_token(self, public_token: str) -> ExchangedItem:
        data = await self._post("/item/public_token/exchange", {"public_token": public_token})
        return ExchangedItem(access_token=data["access_token"], item_id=data["item_id"])

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    @staticmethod
    def _account_from_raw(raw: dict[str, Any]) -> ProviderAccount:
        balances = raw.get("balances") or {}
        return ProviderAccount.model_validate(
            {
                "account_id": raw["account_id"],
                "name": raw.get("name"),
                "mask": raw.get("mask"),
                "type": raw.get("type"),
                "subtype": raw.get("subtype"),
                "balances": {
                    "available": balances.get("available"),
                    "current": balances.get("current"),
                },
            }
        )

    @staticmethod
    def _transaction_from_raw(raw: dict[str, Any]) -> ProviderTransaction:
        return ProviderTransaction.model_validate(
            {
                "transaction_id": raw["transaction_id"],
                "account_id": raw["account_id"],
                "name": raw.get("merchant_name") or raw.get("name") or "Unknown",
                "amount": raw["amount"],
                "date": raw["date"],
                "timestamp": raw.get("datetime") or raw.get("authorized_datetime"),
                "pending": bool(raw.get("pending")),
            }
        )
