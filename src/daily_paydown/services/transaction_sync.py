"""Incremental transaction sync for the selected spend account.

Pages are applied strictly in order and the provider cursor is persisted after
each page, so an interrupted run resumes from the last completed page.
"""
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from enum import Enum

from daily_paydown.db import (ItemStatus, LedgerStore, LinkedItem,
                              TransactionRecord)
from daily_paydown.providers.core import (ErrorKind, FinancialDataProviderABC,
                                          TransientProviderError,
                                          classify_provider_error)
from daily_paydown.schemas import ProviderTransaction
from daily_paydown.services.balance_sync import BalanceSyncService
from daily_paydown.services.item_resolver import ItemResolver
from daily_paydown.services.run_guard import RunGuard
from daily_paydown.utils import as_utc, utcnow

logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    NO_ACCOUNT = "no_account"
    NOT_CONNECTED = "not_connected"
    BUSY = "busy"
    EXPIRED = "expired"
    FAILED = "failed"
    COMPLETED = "completed"


_SNAPSHOT_AFTER = (SyncStatus.COMPLETED, SyncStatus.EXPIRED)


@dataclass(frozen=True)
class SyncResult:
    status: SyncStatus
    item_id: str | None = None
    pages: int = 0
    upserted: int = 0
    removed: int = 0


def to_record(tx: ProviderTransaction) -> TransactionRecord:
    """Normalize a provider transaction for the ledger.

    Date-only values are stored as UTC midnight of their calendar date.
    """
    if tx.timestamp is not None:
        when = as_utc(tx.timestamp)
    else:
        when = datetime.combine(tx.date, time.min, tzinfo=timezone.utc)
    return TransactionRecord(
        account_id=tx.account_id,
        external_id=tx.transaction_id,
        date=when,
        name=tx.name,
        amount=tx.amount,
        pending=tx.pending,
        is_date_only=tx.is_date_only,
    )


class TransactionSyncService:
    """Pull new, modified and removed transactions into the ledger."""

    def __init__(
        self,
        store: LedgerStore,
        resolver: ItemResolver,
        provider: FinancialDataProviderABC,
        balance_sync: BalanceSyncService | None = None,
        *,
        window_days: int = 30,
        guard: RunGuard | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._provider = provider
        self._balance_sync = balance_sync
        self._window_days = window_days
        self._guard = guard or RunGuard()
        self._clock = clock

    async def sync_user(self, user_id: int) -> SyncResult:
        """Sync the user's spend account.

        Args:
            user_id: User to sync.

        Returns:
            SyncResult; never raises for provider failures.
        """
        selection = self._store.get_selection(user_id)
        if selection is None or not selection.spend_account_id:
            logger.debug("User %s has no spend account selected", user_id)
            return SyncResult(SyncStatus.NO_ACCOUNT)
        spend_account_id = selection.spend_account_id

        credential = await self._resolver.resolve(user_id, spend_account_id)
        if credential is None:
            logger.warning("No usable item holds spend account for user %s", user_id)
            return SyncResult(SyncStatus.NOT_CONNECTED)

        item = credential.item
        with self._guard.hold((user_id, item.id)) as acquired:
            if not acquired:
                logger.info("Sync already running for user %s item %s; skipping", user_id, item.item_id)
                return SyncResult(SyncStatus.BUSY, item_id=item.item_id)
            result = await self._paginate(user_id, spend_account_id, credential.access_token, item)

        # The coverage account may live on a different, healthy item
        if result.status in _SNAPSHOT_AFTER and selection.coverage_account_id and self._balance_sync:
            try:
                await self._balance_sync.snapshot_account(user_id, selection.coverage_account_id)
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Coverage balance snapshot failed for user %s: %s", user_id, exc)
        return result

    async def _paginate(
        self, user_id: int, account_id: str, access_token: str, item: LinkedItem
    ) -> SyncResult:
        # Resume from the fresh stored cursor; a webhook may have reset it
        stored = self._store.get_item(item.id)
        cursor = stored.sync_cursor if stored is not None else item.sync_cursor
        today = self._clock().date()
        # One day past today (UTC) so no timezone ahead of UTC is cut off
        end_date = today + timedelta(days=1)
        start_date = today - timedelta(days=self._window_days)

        pages = upserted = removed = 0
        try:
            while True:
                sent_cursor = cursor
                page = await self._provider.list_transactions(
                    access_token, start_date, end_date, [account_id], cursor=cursor
                )
                pages += 1
                counts = self._store.upsert_transactions(
                    user_id, [to_record(tx) for tx in page.transactions]
                )
                upserted += counts.total
                removed += self._store.delete_transactions(page.removed_ids)

                if page.has_more and page.next_cursor and page.next_cursor == sent_cursor:
                    raise TransientProviderError(
                        "CURSOR_NOT_ADVANCING", f"provider returned cursor {sent_cursor!r} again"
                    )

                if page.next_cursor:
                    cursor = page.next_cursor
                    self._store.save_cursor(item.id, cursor)
                if not page.has_more:
                    if not page.next_cursor:
                        self._store.save_cursor(item.id, None)
                    break
                if not page.next_cursor:
                    logger.warning("Provider reported more pages without a cursor for item %s", item.item_id)
                    break
        except Exception as exc:  # pylint: disable=broad-except
            if classify_provider_error(exc) is ErrorKind.CREDENTIAL_EXPIRED:
                code = getattr(exc, "code", type(exc).__name__)
                self._store.set_item_status(item.id, ItemStatus.EXPIRED, code)
                logger.warning("Item %s expired during sync for user %s: %s", item.item_id, user_id, code)
                return SyncResult(SyncStatus.EXPIRED, item.item_id, pages, upserted, removed)
            logger.error(
                "Transaction sync failed for user %s item %s after %d pages: %s",
                user_id, item.item_id, pages, exc,
            )
            return SyncResult(SyncStatus.FAILED, item.item_id, pages, upserted, removed)

        logger.info(
            "Synced user %s item %s: %d pages, %d upserted, %d removed",
            user_id, item.item_id, pages, upserted, removed,
        )
        return SyncResult(SyncStatus.COMPLETED, item.item_id, pages, upserted, removed)
