"""Push notification delivery (APNs)."""
from daily_paydown.push.apns import ApnsPushProvider, build_push_provider
from daily_paydown.push.delivery import PushDelivery
from daily_paydown.push.models import (DeliveryOutcome, PushKind, PushMessage,
                                       PushResult)
from daily_paydown.push.push_provider_abc import PushProviderABC

__all__ = [
    "ApnsPushProvider",
    "DeliveryOutcome",
    "PushDelivery",
    "PushKind",
    "PushMessage",
    "PushProviderABC",
    "PushResult",
    "build_push_provider",
]
