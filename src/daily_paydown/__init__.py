"""Daily credit-card spend tracking: Plaid sync, daily reports and push reminders."""

__version__ = "0.1.0"
