"""Abstract base class for financial data providers."""
from abc import ABC, abstractmethod
from datetime import date

from daily_paydown.schemas import (ExchangedItem, ProviderAccount,
                                   TransactionPage)


class FinancialDataProviderABC(ABC):
    """Base interface for account, transaction and balance providers.

    Implementations raise CredentialExpiredError or TransientProviderError
    (see providers.core.exceptions) instead of transport-specific errors.
    """

    @abstractmethod
    async def list_accounts(self, access_token: str) -> list[ProviderAccount]:
        """List the accounts reachable with an access token.

        Args:
            access_token: Decrypted item access token.

        Returns:
            Accounts of the item, with whatever balances the listing carries.
        """

    @abstractmethod
    async def list_transactions(
        self,
        access_token: str,
        start_date: date,
        end_date: date,
        account_ids: list[str],
        cursor: str | None = None,
    ) -> TransactionPage:
        """Fetch one page of transactions.

        Args:
            access_token: Decrypted item access token.
            start_date: First calendar date to include.
            end_date: Last calendar date to include.
            account_ids: Only transactions for these accounts are returned.
            cursor: Opaque resume position from a previous page, or None to start over.

        Returns:
            A TransactionPage; callers continue while has_more is set.
        """

    @abstractmethod
    async def get_balances(
        self, access_token: str, account_ids: list[str]
    ) -> list[ProviderAccount]:
        """Fetch live balances for the given accounts."""

    @abstractmethod
    async def exchange_public_token(self, public_token: str) -> ExchangedItem:
        """Exchange a short-lived public token for an access token and item id."""

    async def close(self) -> None:
        """Clean up resources (connections, clients).

        Override in subclasses if cleanup is needed.
        """

    async def __aenter__(self) -> "FinancialDataProviderABC":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.close()
