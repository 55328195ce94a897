"""Find which linked item (credential) owns a given provider account."""
import logging
from dataclasses import dataclass

from daily_paydown.db import ItemStatus, LedgerStore, LinkedItem
from daily_paydown.providers.core import (CredentialExpiredError,
                                          FinancialDataProviderABC)
from daily_paydown.schemas import ProviderAccount
from daily_paydown.vault import CredentialVault, DecryptionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedCredential:
    item: LinkedItem
    access_token: str


@dataclass(frozen=True)
class LinkedAccount:
    item: LinkedItem
    account: ProviderAccount


class ItemResolver:
    """Probe a user's linked items until one exposes the wanted account.

    Only active items are probed. A probe that reports an expired credential
    marks that item expired; any other probe failure only skips the item for
    this attempt.
    """

    def __init__(
        self,
        store: LedgerStore,
        vault: CredentialVault,
        provider: FinancialDataProviderABC,
    ) -> None:
        self._store = store
        self._vault = vault
        self._provider = provider

    async def resolve(self, user_id: int, account_id: str) -> ResolvedCredential | None:
        """Credential for the item holding account_id, or None when no usable item has it."""
        resolved = await self.resolve_many(user_id, [account_id])
        return resolved.get(account_id)

    async def resolve_many(
        self, user_id: int, account_ids: list[str]
    ) -> dict[str, ResolvedCredential]:
        """Resolve several accounts in one probing pass.

        Args:
            user_id: Owner of the linked items.
            account_ids: Provider account ids to locate.

        Returns:
            Mapping of each found account id to its credential; accounts that
            no usable item exposes are absent.
        """
        wanted = {a for a in account_ids if a}
        found: dict[str, ResolvedCredential] = {}
        if not wanted:
            return found

        for item in self._store.list_items(user_id):
            probed = await self._probe(item)
            if probed is None:
                continue
            credential, accounts = probed
            for account in accounts:
                if account.account_id in wanted and account.account_id not in found:
                    found[account.account_id] = credential
            if wanted.issubset(found):
                break

        missing = wanted.difference(found)
        if missing:
            logger.info("No usable item for user %s accounts %s", user_id, sorted(missing))
        return found

    async def list_accounts(self, user_id: int) -> list[LinkedAccount]:
        """Every account exposed by the user's active items, in item order."""
        listed: list[LinkedAccount] = []
        for item in self._store.list_items(user_id):
            probed = await self._probe(item)
            if probed is not None:
                listed.extend(LinkedAccount(item=item, account=a) for a in probed[1])
        return listed

    async def item_accounts(self, item: LinkedItem) -> list[ProviderAccount] | None:
        """Accounts of a single item, or None when the item cannot be probed."""
        probed = await self._probe(item)
        return None if probed is None else probed[1]

    async def _probe(
        self, item: LinkedItem
    ) -> tuple[ResolvedCredential, list[ProviderAccount]] | None:
        if item.status != ItemStatus.ACTIVE:
            return None
        try:
            access_token = self._vault.decrypt(item.access_token_encrypted)
        except DecryptionError as exc:
            logger.error("Cannot decrypt credential for item %s: %s", item.item_id, exc)
            return None
        try:
            accounts = await self._provider.list_accounts(access_token)
        except CredentialExpiredError as exc:
            self._store.set_item_status(item.id, ItemStatus.EXPIRED, exc.code)
            logger.warning("Item %s expired while probing accounts: %s", item.item_id, exc.code)
            return None
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Skipping item %s after probe failure: %s", item.item_id, exc)
            return None
        return ResolvedCredential(item=item, access_token=access_token), accounts
