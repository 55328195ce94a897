"""Remove devices whose push tokens APNs reports as permanently invalid."""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from daily_paydown.db import LedgerStore
from daily_paydown.push import DeliveryOutcome, PushDelivery
from daily_paydown.utils import mask_token

logger = logging.getLogger(__name__)

BATCH_SIZE = 10
BATCH_PAUSE_SECONDS = 1.0


@dataclass(frozen=True)
class CleanupResult:
    checked: int = 0
    removed: int = 0


class DeviceCleanupService:
    """Probe every device in small batches and delete invalid tokens.

    Devices whose probe merely failed are kept.
    """

    def __init__(
        self,
        store: LedgerStore,
        delivery: PushDelivery,
        *,
        batch_size: int = BATCH_SIZE,
        pause_seconds: float = BATCH_PAUSE_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._delivery = delivery
        self._batch_size = batch_size
        self._pause = pause_seconds
        self._sleep = sleep

    async def run(self, stop_event: asyncio.Event | None = None) -> CleanupResult:
        if not self._delivery.enabled:
            logger.info("Push not configured; device cleanup skipped")
            return CleanupResult()

        devices = self._store.list_devices()
        checked = removed = 0
        for start in range(0, len(devices), self._batch_size):
            if stop_event is not None and stop_event.is_set():
                break
            if start > 0:
                await self._sleep(self._pause)
            batch = devices[start:start + self._batch_size]
            outcomes = await asyncio.gather(
                *(self._delivery.probe(device.push_token) for device in batch)
            )
            checked += len(batch)
            for device, outcome in zip(batch, outcomes):
                if outcome is DeliveryOutcome.INVALID_TOKEN:
                    self._store.delete_device(device.id)
                    removed += 1
                    logger.info("Removed invalid device %s for user %s", mask_token(device.push_token), device.user_id)

        logger.info("Device cleanup checked %d devices, removed %d", checked, removed)
        return CleanupResult(checked=checked, removed=removed)
