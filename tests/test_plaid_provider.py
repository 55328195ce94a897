"""Tests for the Plaid REST client and provider error classification."""
import json
from datetime import date, datetime, timezone

import httpx
import pytest
from fastapi import HTTPException

from daily_paydown.exceptions import NoAccountSelectedError, UserNotFoundError
from daily_paydown.providers.core import (CredentialExpiredError, ErrorKind,
                                          ProviderErrorMapper,
                                          TransientProviderError,
                                          classify_provider_error)
from daily_paydown.providers.plaid import PlaidProvider


def make_provider(handler) -> PlaidProvider:
    return PlaidProvider(
        "client-id", "secret", "sandbox", timeout=5.0, transport=httpx.MockTransport(handler)
    )


def plaid_error(status: int, code: str, error_type: str = "ITEM_ERROR") -> httpx.Response:
    return httpx.Response(
        status,
        json={"error_code": code, "error_type": error_type, "error_message": "nope"},
    )


def raw_tx(tx_id: str, account_id: str = "acc-credit", day: str = "2025-03-10", **extra) -> dict:
    return {
        "transaction_id": tx_id,
        "account_id": account_id,
        "name": "Coffee",
        "amount": 4.5,
        "date": day,
        "datetime": None,
        "pending": False,
        **extra,
    }


class TestPlaidRequests:
    async def test_list_accounts_sends_credentials_and_parses_balances(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "accounts": [
                        {
                            "account_id": "acc-credit",
                            "name": "Card",
                            "type": "credit",
                            "balances": {"available": None, "current": 120.5},
                        }
                    ]
                },
            )

        async with make_provider(handler) as provider:
            accounts = await provider.list_accounts("access-1")

        assert seen["url"] == "https://sandbox.plaid.com/accounts/get"
        assert seen["body"] == {"client_id": "client-id", "secret": "secret", "access_token": "access-1"}
        assert accounts[0].account_id == "acc-credit"
        assert accounts[0].balances.current == 120.5
        assert accounts[0].balances.available is None

    async def test_transactions_page_filters_account_and_window(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "added": [
                        raw_tx("t1"),
                        raw_tx("t2", account_id="acc-other"),
                        raw_tx("t3", day="2024-12-01"),
                        raw_tx("t4", datetime="2025-03-11T03:30:00Z"),
                    ],
                    "modified": [raw_tx("t5", merchant_name="Bakery")],
                    "removed": [{"transaction_id": "t-old"}],
                    "next_cursor": "cursor-2",
                    "has_more": True,
                },
            )

        async with make_provider(handler) as provider:
            page = await provider.list_transactions(
                "access-1", date(2025, 2, 9), date(2025, 3, 12), ["acc-credit"], cursor="cursor-1"
            )

        assert seen["body"]["cursor"] == "cursor-1"
        assert seen["body"]["options"] == {"account_id": "acc-credit"}
        assert [tx.transaction_id for tx in page.transactions] == ["t1", "t4", "t5"]
        assert page.transactions[0].is_date_only
        assert page.transactions[1].timestamp == datetime(2025, 3, 11, 3, 30, tzinfo=timezone.utc)
        assert page.transactions[2].name == "Bakery"
        assert page.removed_ids == ["t-old"]
        assert page.next_cursor == "cursor-2"
        assert page.has_more is True

    async def test_first_page_omits_cursor(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"added": [], "next_cursor": "", "has_more": False})

        async with make_provider(handler) as provider:
            page = await provider.list_transactions(
                "access-1", date(2025, 2, 9), date(2025, 3, 12), ["acc-credit"]
            )

        assert "cursor" not in seen["body"]
        assert page.next_cursor is None
        assert page.has_more is False

    async def test_balances_request_names_accounts(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={"accounts": [{"account_id": "acc-checking", "balances": {"available": 900.0, "current": 950.0}}]},
            )

        async with make_provider(handler) as provider:
            accounts = await provider.get_balances("access-1", ["acc-checking"])

        assert seen["path"] == "/accounts/balance/get"
        assert seen["body"]["options"] == {"account_ids": ["acc-checking"]}
        assert accounts[0].balances.available == 900.0

    async def test_exchange_public_token(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert json.loads(request.content)["public_token"] == "public-sandbox-1"
            return httpx.Response(200, json={"access_token": "access-1", "item_id": "item-1"})

        async with make_provider(handler) as provider:
            exchanged = await provider.exchange_public_token("public-sandbox-1")

        assert exchanged.access_token == "access-1"
        assert exchanged.item_id == "item-1"

    def test_unknown_environment_rejected(self):
        with pytest.raises(ValueError):
            PlaidProvider("id", "secret", "staging")


class TestPlaidErrors:
    @pytest.mark.parametrize(
        "code",
        ["ITEM_LOGIN_REQUIRED", "INVALID_ACCESS_TOKEN", "ACCESS_TOKEN_NOT_FOUND", "ITEM_NOT_FOUND"],
    )
    async def test_expiry_codes_raise_credential_expired(self, code):
        async with make_provider(lambda request: plaid_error(400, code)) as provider:
            with pytest.raises(CredentialExpiredError) as info:
                await provider.list_accounts("access-1")
        assert info.value.code == code
        assert info.value.status_code == 400
        assert classify_provider_error(info.value) is ErrorKind.CREDENTIAL_EXPIRED

    async def test_item_error_with_login_required_type_is_expiry(self):
        handler = lambda request: plaid_error(400, "ITEM_ERROR", "ITEM_LOGIN_REQUIRED")  # noqa: E731
        async with make_provider(handler) as provider:
            with pytest.raises(CredentialExpiredError):
                await provider.list_accounts("access-1")

    async def test_rate_limit_is_transient(self):
        handler = lambda request: plaid_error(429, "RATE_LIMIT_EXCEEDED", "RATE_LIMIT_EXCEEDED")  # noqa: E731
        async with make_provider(handler) as provider:
            with pytest.raises(TransientProviderError) as info:
                await provider.list_accounts("access-1")
        assert info.value.code == "RATE_LIMIT_EXCEEDED"

    async def test_non_json_error_body_is_transient(self):
        async with make_provider(lambda request: httpx.Response(502, text="bad gateway")) as provider:
            with pytest.raises(TransientProviderError) as info:
                await provider.list_accounts("access-1")
        assert info.value.code == "HTTP_502"

    async def test_timeout_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_provider(handler) as provider:
            with pytest.raises(TransientProviderError) as info:
                await provider.list_accounts("access-1")
        assert info.value.code == "TIMEOUT"

    async def test_connect_error_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with make_provider(handler) as provider:
            with pytest.raises(TransientProviderError) as info:
                await provider.list_accounts("access-1")
        assert info.value.code == "NETWORK_ERROR"

    def test_unclassified_exceptions_are_transient(self):
        assert classify_provider_error(RuntimeError("boom")) is ErrorKind.TRANSIENT


class TestProviderErrorMapper:
    @pytest.mark.parametrize(
        "exc, status",
        [
            (NoAccountSelectedError(1), 400),
            (UserNotFoundError(1), 404),
            (CredentialExpiredError("ITEM_LOGIN_REQUIRED"), 409),
            (TransientProviderError("RATE_LIMIT_EXCEEDED"), 502),
            (TransientProviderError("TIMEOUT"), 504),
            (TimeoutError(), 504),
            (ValueError("Invalid isoformat string"), 400),
            (RuntimeError("boom"), 500),
        ],
    )
    def test_status_codes(self, exc, status):
        assert ProviderErrorMapper().to_http(exc)[0] == status

    def test_raise_http(self):
        with pytest.raises(HTTPException) as info:
            ProviderErrorMapper().raise_http(NoAccountSelectedError(1))
        assert info.value.status_code == 400
