"""Retrying push delivery on top of a PushProviderABC."""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from daily_paydown.db import LedgerStore
from daily_paydown.push.models import DeliveryOutcome, PushMessage
from daily_paydown.push.push_provider_abc import PushProviderABC
from daily_paydown.utils import mask_token

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BASE_DELAY_SECONDS = 1.0


class PushDelivery:
    """Deliver messages to device tokens with bounded retries.

    Invalid tokens are reported immediately and never retried. Any other
    failure is retried with exponential backoff (1 s, then 2 s).
    """

    def __init__(
        self,
        provider: PushProviderABC | None,
        store: LedgerStore,
        *,
        max_attempts: int = MAX_ATTEMPTS,
        base_delay: float = BASE_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._store = store
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._sleep = sleep

    @property
    def enabled(self) -> bool:
        return self._provider is not None

    async def deliver(self, token: str, message: PushMessage) -> DeliveryOutcome:
        """Deliver one message to one token.

        Args:
            token: Device push token.
            message: The message (alert or probe).

        Returns:
            DELIVERED, INVALID_TOKEN (no retry), or FAILED after all attempts.
        """
        if self._provider is None:
            logger.warning("Push not configured; dropping %s push to %s", message.kind.value, mask_token(token))
            return DeliveryOutcome.FAILED

        for attempt in range(1, self._max_attempts + 1):
            try:
                result = await self._provider.send(token, message)
            except httpx.HTTPError as exc:
                logger.warning(
                    "Push transport error for %s (attempt %d/%d): %s",
                    mask_token(token), attempt, self._max_attempts, exc,
                )
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning(
                    "Unexpected push error for %s (attempt %d/%d): %r",
                    mask_token(token), attempt, self._max_attempts, exc,
                )
            else:
                if result.ok:
                    if attempt > 1:
                        logger.info("Push to %s delivered after %d attempts", mask_token(token), attempt)
                    return DeliveryOutcome.DELIVERED
                if result.invalid_token:
                    logger.info(
                        "Push token %s is invalid (%s %s)",
                        mask_token(token), result.status_code, result.reason,
                    )
                    return DeliveryOutcome.INVALID_TOKEN
                logger.warning(
                    "Push to %s failed (attempt %d/%d): %s %s",
                    mask_token(token), attempt, self._max_attempts,
                    result.status_code, result.reason,
                )
            if attempt < self._max_attempts:
                await self._sleep(self._base_delay * 2 ** (attempt - 1))

        logger.error("Push to %s failed after %d attempts", mask_token(token), self._max_attempts)
        return DeliveryOutcome.FAILED

    async def send(
        self, token: str, title: str, body: str, data: dict[str, Any] | None = None
    ) -> bool:
        """Send an alert; True when delivered."""
        message = PushMessage(title=title, body=body, data=data or {})
        return await self.deliver(token, message) is DeliveryOutcome.DELIVERED

    async def probe(self, token: str) -> DeliveryOutcome:
        """Send a silent background push to test whether a token is still valid."""
        return await self.deliver(token, PushMessage.probe())

    async def send_to_user(self, user_id: int, message: PushMessage) -> bool:
        """Fan a message out to every device of a user.

        Returns:
            True if at least one device received it.
        """
        devices = self._store.list_devices(user_id)
        if not devices:
            logger.info("User %s has no registered devices", user_id)
            return False
        outcomes = await asyncio.gather(
            *(self.deliver(device.push_token, message) for device in devices)
        )
        delivered = sum(1 for outcome in outcomes if outcome is DeliveryOutcome.DELIVERED)
        logger.info("Push for user %s delivered to %d/%d devices", user_id, delivered, len(devices))
        return delivered > 0
