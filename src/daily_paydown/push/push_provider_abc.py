"""Abstract base class for push notification transports."""
from abc import ABC, abstractmethod

from daily_paydown.push.models import PushMessage, PushResult


class PushProviderABC(ABC):
    """One push attempt to one device token.

    Implementations return a PushResult for any response the push service
    gives and raise only for transport failures (connect errors, timeouts).
    Retrying is the caller's job.
    """

    @abstractmethod
    async def send(self, token: str, message: PushMessage) -> PushResult:
        """Send one message to one device token."""

    async def close(self) -> None:
        """Clean up resources (connections, clients)."""

    async def __aenter__(self) -> "PushProviderABC":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.close()
