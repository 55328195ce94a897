"""Plaid provider and webhook handling."""
from daily_paydown.providers.plaid.provider import (PLAID_ENVIRONMENTS,
                                                    PlaidProvider)
from daily_paydown.providers.plaid.webhooks import (SIGNATURE_HEADER,
                                                    WebhookAction,
                                                    WebhookHandler,
                                                    verify_signature)

__all__ = [
    "PLAID_ENVIRONMENTS",
    "PlaidProvider",
    "SIGNATURE_HEADER",
    "WebhookAction",
    "WebhookHandler",
    "verify_signature",
]
