"""Provider error taxonomy and classification.

Every failure coming out of a financial-data provider is either a credential
expiry (the linked item needs re-authentication) or transient (retry on the
next scheduled run). Transient errors never change credential state.
"""
from enum import Enum

# Provider error codes meaning the stored access token can no longer be used.
CREDENTIAL_EXPIRED_CODES = frozenset(
    {
        "ITEM_LOGIN_REQUIRED",
        "INVALID_ACCESS_TOKEN",
        "ACCESS_TOKEN_NOT_FOUND",
        "ITEM_NOT_FOUND",
    }
)


class ErrorKind(str, Enum):
    CREDENTIAL_EXPIRED = "credential_expired"
    TRANSIENT = "transient"


class ProviderError(Exception):
    """Base class for classified provider failures."""

    kind: ErrorKind = ErrorKind.TRANSIENT

    def __init__(
        self,
        code: str,
        message: str = "",
        *,
        error_type: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(f"{code}: {message}" if message else code)
        self.code = code
        self.message = message
        self.error_type = error_type
        self.status_code = status_code


class CredentialExpiredError(ProviderError):
    """The item must be re-linked before it can be used again."""

    kind = ErrorKind.CREDENTIAL_EXPIRED


class TransientProviderError(ProviderError):
    """Network, rate-limit or upstream failure; safe to retry later."""

    kind = ErrorKind.TRANSIENT


def is_credential_expired(code: str | None, error_type: str | None = None) -> bool:
    """Whether a provider error code means the credential has expired."""
    if code in CREDENTIAL_EXPIRED_CODES:
        return True
    return code == "ITEM_ERROR" and error_type == "ITEM_LOGIN_REQUIRED"


def provider_error_from_payload(payload: dict, status_code: int | None = None) -> ProviderError:
    """Build the matching ProviderError subclass from a provider error body.

    Args:
        payload: Decoded JSON error body (error_code, error_type, error_message).
        status_code: HTTP status of the failed response, if any.

    Returns:
        CredentialExpiredError or TransientProviderError.
    """
    code = payload.get("error_code") or "UNKNOWN_ERROR"
    error_type = payload.get("error_type")
    message = payload.get("error_message") or payload.get("display_message") or ""
    cls = CredentialExpiredError if is_credential_expired(code, error_type) else TransientProviderError
    return cls(code, message, error_type=error_type, status_code=status_code)


def classify_provider_error(exc: BaseException) -> ErrorKind:
    """Map any exception raised around a provider call to an ErrorKind.

    Unclassified exceptions (timeouts, transport errors, bugs) are transient.
    """
    if isinstance(exc, ProviderError):
        return exc.kind
    return ErrorKind.TRANSIENT
