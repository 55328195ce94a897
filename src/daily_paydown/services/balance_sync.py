"""Balance snapshots for the selected spend and coverage accounts."""
import logging

from daily_paydown.db import ItemStatus, LedgerStore
from daily_paydown.providers.core import (CredentialExpiredError,
                                          FinancialDataProviderABC)
from daily_paydown.services.item_resolver import (ItemResolver,
                                                  ResolvedCredential)
from daily_paydown.utils import round2, utcnow

logger = logging.getLogger(__name__)


class BalanceSyncService:
    """Append one BalanceSnapshot per selected account per run."""

    def __init__(
        self,
        store: LedgerStore,
        resolver: ItemResolver,
        provider: FinancialDataProviderABC,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._provider = provider

    async def sync_user(self, user_id: int) -> int:
        """Snapshot the spend and coverage accounts of one user.

        Returns:
            Number of snapshots written. Failures on one account do not stop the other.
        """
        selection = self._store.get_selection(user_id)
        if selection is None:
            return 0
        account_ids = list(
            dict.fromkeys(a for a in (selection.spend_account_id, selection.coverage_account_id) if a)
        )
        if not account_ids:
            return 0

        credentials = await self._resolver.resolve_many(user_id, account_ids)
        written = 0
        for account_id in account_ids:
            credential = credentials.get(account_id)
            if credential is None:
                logger.info("No credential for user %s account %s; balance skipped", user_id, account_id)
                continue
            try:
                if await self._snapshot(user_id, account_id, credential):
                    written += 1
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Balance sync failed for user %s account %s: %s", user_id, account_id, exc)
        return written

    async def snapshot_account(self, user_id: int, account_id: str) -> bool:
        """Resolve and snapshot a single account. Returns whether a snapshot was written."""
        credential = await self._resolver.resolve(user_id, account_id)
        if credential is None:
            return False
        return await self._snapshot(user_id, account_id, credential)

    async def _snapshot(self, user_id: int, account_id: str, credential: ResolvedCredential) -> bool:
        try:
            accounts = await self._provider.get_balances(credential.access_token, [account_id])
        except CredentialExpiredError as exc:
            self._store.set_item_status(credential.item.id, ItemStatus.EXPIRED, exc.code)
            logger.warning("Item %s expired during balance sync: %s", credential.item.item_id, exc.code)
            return False

        account = next((a for a in accounts if a.account_id == account_id), None)
        if account is None:
            logger.warning("Balance response for user %s lacks account %s", user_id, account_id)
            return False
        self._store.add_balance_snapshot(
            user_id,
            account_id,
            available=round2(account.balances.available),
            current=round2(account.balances.current),
            as_of=utcnow(),
        )
        return True
