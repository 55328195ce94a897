"""Financial data providers.

All providers implement FinancialDataProviderABC and return the unified
ProviderAccount / TransactionPage schemas:

- PlaidProvider: accounts, transactions and balances via the Plaid REST API

Example:
    async with PlaidProvider(client_id, secret, "sandbox") as provider:
        accounts = await provider.list_accounts(access_token)
"""
from daily_paydown.providers.core import (CredentialExpiredError,
                                          FinancialDataProviderABC,
                                          ProviderError, ProviderErrorMapper,
                                          TransientProviderError)
from daily_paydown.providers.plaid import PlaidProvider

__all__ = [
    "CredentialExpiredError",
    "FinancialDataProviderABC",
    "PlaidProvider",
    "ProviderError",
    "ProviderErrorMapper",
    "TransientProviderError",
]
