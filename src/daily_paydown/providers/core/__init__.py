"""Core provider abstractions."""
from daily_paydown.providers.core.error_mapper import ProviderErrorMapper
from daily_paydown.providers.core.exceptions import (CredentialExpiredError,
                                                     ErrorKind, ProviderError,
                                                     TransientProviderError,
                                                     classify_provider_error,
                                                     is_credential_expired)
from daily_paydown.providers.core.financial_provider_abc import \
    FinancialDataProviderABC

__all__ = [
    "CredentialExpiredError",
    "ErrorKind",
    "FinancialDataProviderABC",
    "ProviderError",
    "ProviderErrorMapper",
    "TransientProviderError",
    "classify_provider_error",
    "is_credential_expired",
]
