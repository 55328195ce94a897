"""Tests for public token exchange and item linking."""
import pytest

from daily_paydown.db import ItemStatus
from daily_paydown.exceptions import ItemNotFoundError, UserNotFoundError
from daily_paydown.services import LinkService

from conftest import (COVERAGE_ACCOUNT, SPEND_ACCOUNT, account, link_item,
                      make_user)


class TestLinkService:
    async def test_links_item_with_encrypted_token(self, store, vault, provider):
        user = make_user(store)

        item = await LinkService(store, vault, provider).link_item(user.id, "public-1", "Bank")

        assert item.item_id == "item-new"
        assert item.institution_name == "Bank"
        assert vault.decrypt(item.access_token_encrypted) == "access-public-1"

    async def test_relinking_reactivates_expired_item(self, store, vault, provider):
        user = make_user(store)
        service = LinkService(store, vault, provider)
        item = await service.link_item(user.id, "public-1")
        store.set_item_status(item.id, ItemStatus.EXPIRED, "ITEM_LOGIN_REQUIRED")

        relinked = await service.link_item(user.id, "public-2")

        assert relinked.id == item.id
        assert relinked.status == ItemStatus.ACTIVE
        assert vault.decrypt(relinked.access_token_encrypted) == "access-public-2"

    async def test_unknown_user(self, store, vault, provider):
        with pytest.raises(UserNotFoundError):
            await LinkService(store, vault, provider).link_item(42, "public-1")
        assert provider.calls == []

    async def test_unlink_keeps_selection_for_other_items(self, store, vault, provider):
        user = make_user(store)
        link_item(store, vault, user.id, "item-card", "access-card")
        link_item(store, vault, user.id, "item-bank", "access-bank")
        provider.accounts["access-card"] = [account(SPEND_ACCOUNT)]
        store.upsert_selection(user.id, spend_account_id=SPEND_ACCOUNT, coverage_account_id=COVERAGE_ACCOUNT)

        await LinkService(store, vault, provider).unlink_item(user.id, "item-bank")

        assert [item.item_id for item in store.list_items(user.id)] == ["item-card"]
        selection = store.get_selection(user.id)
        assert (selection.spend_account_id, selection.coverage_account_id) == (SPEND_ACCOUNT, COVERAGE_ACCOUNT)

    async def test_unlink_without_selection_skips_provider(self, store, vault, provider):
        user = make_user(store)
        link_item(store, vault, user.id)

        await LinkService(store, vault, provider).unlink_item(user.id, "item-1")

        assert store.list_items(user.id) == []
        assert provider.calls == []

    async def test_unlink_requires_ownership(self, store, vault, provider):
        owner = make_user(store)
        intruder = make_user(store, "intruder@example.com")
        link_item(store, vault, owner.id)

        with pytest.raises(ItemNotFoundError):
            await LinkService(store, vault, provider).unlink_item(intruder.id, "item-1")
        assert len(store.list_items(owner.id)) == 1
