"""Push message and delivery result types."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PushKind(str, Enum):
    ALERT = "alert"
    PROBE = "probe"  # silent background push used to test token validity


class DeliveryOutcome(str, Enum):
    DELIVERED = "delivered"
    INVALID_TOKEN = "invalid_token"
    FAILED = "failed"


# APNs reasons meaning the token will never work again.
INVALID_TOKEN_REASONS = frozenset({"BadDeviceToken", "Unregistered", "DeviceTokenNotForTopic"})


@dataclass(frozen=True)
class PushMessage:
    """A notification to deliver to one device."""

    title: str = ""
    body: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    kind: PushKind = PushKind.ALERT

    @classmethod
    def probe(cls) -> "PushMessage":
        return cls(kind=PushKind.PROBE)

    def to_payload(self) -> dict[str, Any]:
        """APNs JSON payload: custom data at the top level next to ``aps``."""
        if self.kind is PushKind.PROBE:
            aps: dict[str, Any] = {"content-available": 1}
        else:
            aps = {
                "alert": {"title": self.title, "body": self.body},
                "sound": "default",
                "badge": 1,
            }
        return {**self.data, "aps": aps}


@dataclass(frozen=True)
class PushResult:
    """Raw transport result of one push attempt."""

    status_code: int | None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300

    @property
    def invalid_token(self) -> bool:
        return self.status_code == 410 or self.reason in INVALID_TOKEN_REASONS
