"""Tests for invalid device token cleanup."""
import asyncio

import httpx

from daily_paydown.push import PushDelivery, PushKind, PushResult
from daily_paydown.services import DeviceCleanupService

from conftest import make_user


def register(store, user_id: int, count: int) -> list[str]:
    tokens = [f"token-{i:02d}" for i in range(count)]
    for token in tokens:
        store.upsert_device(user_id, token)
    return tokens


class TestDeviceCleanup:
    async def test_removes_only_invalid_tokens(self, store, delivery, push_provider, fake_sleep):
        user = make_user(store)
        register(store, user.id, 3)
        push_provider.scripts["token-00"] = [PushResult(410, "Unregistered")]
        push_provider.scripts["token-01"] = [PushResult(400, "BadDeviceToken")]

        result = await DeviceCleanupService(store, delivery, sleep=fake_sleep).run()

        assert result.checked == 3
        assert result.removed == 2
        assert [d.push_token for d in store.list_devices()] == ["token-02"]
        assert all(message.kind is PushKind.PROBE for _, message in push_provider.sent)

    async def test_failed_probes_keep_the_device(self, store, delivery, push_provider, fake_sleep):
        user = make_user(store)
        register(store, user.id, 2)
        push_provider.scripts["token-00"] = [PushResult(500)]
        push_provider.scripts["token-01"] = [httpx.ConnectError("refused")]

        result = await DeviceCleanupService(store, delivery, sleep=fake_sleep).run()

        assert result.removed == 0
        assert len(store.list_devices()) == 2

    async def test_crashing_probe_does_not_abort_the_batch(self, store, delivery, push_provider, fake_sleep):
        user = make_user(store)
        register(store, user.id, 2)
        push_provider.scripts["token-00"] = [KeyError("missing field")]
        push_provider.scripts["token-01"] = [PushResult(410, "Unregistered")]

        result = await DeviceCleanupService(store, delivery, sleep=fake_sleep).run()

        assert result.checked == 2
        assert result.removed == 1
        assert [d.push_token for d in store.list_devices()] == ["token-00"]

    async def test_pauses_between_batches(self, store, push_provider):
        user = make_user(store)
        register(store, user.id, 25)
        pauses = []

        async def record_pause(seconds: float) -> None:
            pauses.append(seconds)

        # Delivery retries never happen here, so every recorded sleep is a batch pause
        delivery = PushDelivery(push_provider, store, sleep=record_pause)
        result = await DeviceCleanupService(
            store, delivery, batch_size=10, pause_seconds=1.0, sleep=record_pause
        ).run()

        assert result.checked == 25
        assert pauses == [1.0, 1.0]

    async def test_stop_event_halts_between_batches(self, store, delivery, fake_sleep):
        user = make_user(store)
        register(store, user.id, 5)
        stop = asyncio.Event()
        stop.set()

        result = await DeviceCleanupService(store, delivery, batch_size=2, sleep=fake_sleep).run(stop)

        assert result.checked == 0
        assert len(store.list_devices()) == 5

    async def test_skipped_when_push_not_configured(self, store):
        user = make_user(store)
        register(store, user.id, 1)

        result = await DeviceCleanupService(store, PushDelivery(None, store)).run()

        assert result.checked == 0
        assert len(store.list_devices()) == 1
