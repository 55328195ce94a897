"""Plaid webhook verification and handling.

Webhooks only adjust item lifecycle state and sync cursors; transaction data
itself always arrives through the scheduled sync.
"""
import hashlib
import hmac
import logging
from enum import Enum
from typing import Any

from daily_paydown.db import ItemStatus, LedgerStore, LinkedItem
from daily_paydown.providers.core import is_credential_expired
from daily_paydown.utils import utcnow

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "Plaid-Signature"


class WebhookAction(str, Enum):
    """What handling a webhook did; returned for logging and tests."""

    IGNORED = "ignored"
    CURSOR_RESET = "cursor_reset"
    TRANSACTIONS_REMOVED = "transactions_removed"
    ITEM_ERROR = "item_error"
    ITEM_EXPIRED = "item_expired"
    PENDING_EXPIRATION = "pending_expiration"
    ITEM_REVOKED = "item_revoked"
    ITEM_REPAIRED = "item_repaired"
    NOTED = "noted"


def verify_signature(body: bytes, signature: str | None, secret: str | None) -> bool:
    """Check a hex HMAC-SHA256 of the raw body in constant time.

    A missing secret or signature never verifies.
    """
    if not secret or not signature:
        return False
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature.strip().lower())


class WebhookHandler:
    """Apply verified Plaid webhooks to stored items."""

    def __init__(self, store: LedgerStore) -> None:
        self._store = store

    def handle(self, payload: dict[str, Any]) -> WebhookAction:
        """Handle one decoded webhook body.

        Args:
            payload: JSON body with webhook_type, webhook_code and item_id.

        Returns:
            The WebhookAction taken.
        """
        webhook_type = payload.get("webhook_type")
        webhook_code = payload.get("webhook_code")
        item_id = payload.get("item_id")
        logger.info("Plaid webhook %s/%s for item %s", webhook_type, webhook_code, item_id)

        item = self._store.get_item_by_external_id(item_id) if item_id else None
        if item is None:
            logger.warning("Webhook for unknown Plaid item %s", item_id)
            return WebhookAction.IGNORED

        self._store.update_item(item.id, last_webhook_at=utcnow())

        if webhook_type == "TRANSACTIONS":
            return self._handle_transactions(item, webhook_code, payload)
        if webhook_type == "ITEM":
            return self._handle_item(item, webhook_code, payload)
        logger.debug("Unhandled webhook type %s (%s)", webhook_type, webhook_code)
        return WebhookAction.NOTED

    def _handle_transactions(
        self, item: LinkedItem, code: str | None, payload: dict[str, Any]
    ) -> WebhookAction:
        if code in ("INITIAL_UPDATE", "HISTORICAL_UPDATE"):
            # Next sync starts from the beginning of the window
            self._store.save_cursor(item.id, None)
            logger.info(
                "Cursor cleared for item %s after %s (%s new)",
                item.item_id, code, payload.get("new_transactions"),
            )
            return WebhookAction.CURSOR_RESET
        if code == "TRANSACTIONS_REMOVED":
            removed = [str(tx_id) for tx_id in payload.get("removed_transactions") or []]
            deleted = self._store.delete_transactions(removed)
            logger.info("Removed %d of %d transactions for item %s", deleted, len(removed), item.item_id)
            return WebhookAction.TRANSACTIONS_REMOVED
        logger.debug("Transactions webhook %s for item %s", code, item.item_id)
        return WebhookAction.NOTED

    def _handle_item(
        self, item: LinkedItem, code: str | None, payload: dict[str, Any]
    ) -> WebhookAction:
        if code == "ERROR":
            error = payload.get("error") or {}
            error_code = error.get("error_code") or error.get("error_message") or "Unknown error"
            if is_credential_expired(error.get("error_code"), error.get("error_type")):
                self._store.set_item_status(item.id, ItemStatus.EXPIRED, error_code)
                logger.warning("Item %s expired via webhook: %s", item.item_id, error_code)
                return WebhookAction.ITEM_EXPIRED
            self._store.set_item_status(item.id, ItemStatus.ERROR, error_code)
            logger.error("Item %s error via webhook: %s", item.item_id, error_code)
            return WebhookAction.ITEM_ERROR
        if code == "PENDING_EXPIRATION":
            self._store.update_item(item.id, last_error="PENDING_EXPIRATION")
            logger.warning("Item %s pending expiration", item.item_id)
            return WebhookAction.PENDING_EXPIRATION
        if code == "USER_PERMISSION_REVOKED":
            self._store.set_item_status(item.id, ItemStatus.REVOKED, "USER_PERMISSION_REVOKED")
            logger.warning("User revoked permission for item %s", item.item_id)
            return WebhookAction.ITEM_REVOKED
        if code == "LOGIN_REPAIRED":
            self._store.set_item_status(item.id, ItemStatus.ACTIVE, None)
            logger.info("Item %s login repaired", item.item_id)
            return WebhookAction.ITEM_REPAIRED
        logger.debug("Item webhook %s for item %s", code, item.item_id)
        return WebhookAction.NOTED
