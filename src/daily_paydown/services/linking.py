"""Link and unlink provider items."""
import logging

from daily_paydown.db import LedgerStore, LinkedItem
from daily_paydown.exceptions import ItemNotFoundError, UserNotFoundError
from daily_paydown.providers.core import FinancialDataProviderABC
from daily_paydown.services.item_resolver import ItemResolver
from daily_paydown.vault import CredentialVault

logger = logging.getLogger(__name__)


class LinkService:
    def __init__(
        self,
        store: LedgerStore,
        vault: CredentialVault,
        provider: FinancialDataProviderABC,
        resolver: ItemResolver | None = None,
    ) -> None:
        self._store = store
        self._vault = vault
        self._provider = provider
        self._resolver = resolver or ItemResolver(store, vault, provider)

    async def link_item(
        self, user_id: int, public_token: str, institution_name: str | None = None
    ) -> LinkedItem:
        """Exchange a public token and store the encrypted access token.

        Re-linking an existing item reactivates it and keeps its sync cursor.

        Raises:
            UserNotFoundError: Unknown user.
            ProviderError: The exchange failed.
        """
        if self._store.get_user(user_id) is None:
            raise UserNotFoundError(user_id)
        exchanged = await self._provider.exchange_public_token(public_token)
        item = self._store.upsert_item(
            user_id,
            exchanged.item_id,
            self._vault.encrypt(exchanged.access_token),
            institution_name=institution_name,
        )
        logger.info("Linked item %s for user %s", item.item_id, user_id)
        return item

    async def unlink_item(self, user_id: int, item_id: str) -> None:
        """Delete one of the user's items and drop selections that point into it.

        Selected accounts the item exposes are cleared. When the item's
        accounts cannot be listed, both selections are cleared. Stored
        transactions, balances and reports are kept.

        Raises:
            ItemNotFoundError: The user has no item with this id.
        """
        item = self._store.get_user_item(user_id, item_id)
        if item is None:
            raise ItemNotFoundError(item_id)

        selection = self._store.get_selection(user_id)
        if selection is not None and (selection.spend_account_id or selection.coverage_account_id):
            accounts = await self._resolver.item_accounts(item)
            if accounts is None:
                logger.warning("Cannot list accounts of item %s; clearing selection for user %s", item_id, user_id)
                self._store.upsert_selection(user_id, spend_account_id=None, coverage_account_id=None)
            else:
                owned = {a.account_id for a in accounts}
                cleared = {}
                if selection.spend_account_id in owned:
                    cleared["spend_account_id"] = None
                if selection.coverage_account_id in owned:
                    cleared["coverage_account_id"] = None
                if cleared:
                    self._store.upsert_selection(user_id, **cleared)

        self._store.delete_item(item.id)
        logger.info("Unlinked item %s for user %s", item_id, user_id)
