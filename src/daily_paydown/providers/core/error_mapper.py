"""Domain concept for mapping provider and service exceptions to HTTP responses."""
import asyncio
from dataclasses import dataclass

import httpx
from fastapi import HTTPException

from daily_paydown.exceptions import (ItemNotFoundError, NoAccountSelectedError,
                                     UserNotFoundError)
from daily_paydown.providers.core.exceptions import (CredentialExpiredError,
                                                     ProviderError)


@dataclass(frozen=True)
class ProviderErrorMapper:
    """Maps provider/service exceptions to HTTP (status_code, detail).

    Routers hold one instance per upstream so details name the right API.
    """

    resource_name: str = "Resource"
    api_name: str = "Plaid"

    def to_http(self, exc: Exception) -> tuple[int, str]:
        """Map an exception to (status_code, detail) for HTTP responses.

        Args:
            exc: The exception raised by the provider or service.

        Returns:
            (status_code, detail) suitable for HTTPException(status_code=..., detail=...).
        """
        if isinstance(exc, NoAccountSelectedError):
            return (400, "No spend account selected")
        if isinstance(exc, (UserNotFoundError, ItemNotFoundError)):
            return (404, str(exc))
        if isinstance(exc, CredentialExpiredError):
            return (409, f"{self.api_name} login required ({exc.code})")
        if isinstance(exc, ProviderError):
            if exc.code == "TIMEOUT":
                return (504, f"Request to {self.api_name} timed out")
            return (502, f"{self.api_name} error ({exc.code})")
        if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
            return (504, f"Request to {self.api_name} timed out")
        if isinstance(exc, httpx.HTTPError):
            return (502, f"{self.api_name} error")
        if isinstance(exc, ValueError):
            return (400, str(exc) or f"Invalid {self.resource_name.lower()}")
        return (500, "Internal server error")

    def raise_http(self, exc: Exception) -> None:
        """Map exception to HTTP and raise HTTPException. Never returns."""
        status_code, detail = self.to_http(exc)
        raise HTTPException(status_code=status_code, detail=detail) from exc
