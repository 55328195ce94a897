"""Apple Push Notification service (APNs) transport over HTTP/2."""
import logging
import time
from collections.abc import Callable
from pathlib import Path

import httpx
import jwt

from daily_paydown.config import Settings
from daily_paydown.push.models import PushKind, PushMessage, PushResult
from daily_paydown.push.push_provider_abc import PushProviderABC
from daily_paydown.utils import mask_token

logger = logging.getLogger(__name__)

APNS_PRODUCTION_URL = "https://api.push.apple.com"
APNS_SANDBOX_URL = "https://api.sandbox.push.apple.com"

# APNs rejects provider tokens older than an hour.
TOKEN_REFRESH_SECONDS = 50 * 60
ALERT_EXPIRATION_SECONDS = 3600


class ApnsPushProvider(PushProviderABC):
    """Token-based (ES256 JWT) APNs client.

    The provider token is cached and re-signed every 50 minutes.
    """

    def __init__(
        self,
        key_id: str,
        team_id: str,
        bundle_id: str,
        private_key: str,
        *,
        production: bool = False,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the APNs provider.

        Args:
            key_id: Key ID of the .p8 signing key.
            team_id: Apple developer team ID (JWT issuer).
            bundle_id: App bundle id, sent as apns-topic.
            private_key: PEM contents of the .p8 key.
            production: Use the production gateway instead of sandbox.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests use httpx.MockTransport).
            clock: Seconds-since-epoch source used for token issue times.
        """
        self._key_id = key_id
        self._team_id = team_id
        self._bundle_id = bundle_id
        self._private_key = private_key
        self._clock = clock
        self._token: str | None = None
        self._token_issued_at = 0.0
        self._client = httpx.AsyncClient(
            base_url=APNS_PRODUCTION_URL if production else APNS_SANDBOX_URL,
            http2=True,
            timeout=timeout,
            transport=transport,
        )

    def _provider_token(self) -> str:
        now = self._clock()
        if self._token is None or now - self._token_issued_at >= TOKEN_REFRESH_SECONDS:
            self._token = jwt.encode(
                {"iss": self._team_id, "iat": int(now)},
                self._private_key,
                algorithm="ES256",
                headers={"kid": self._key_id},
            )
            self._token_issued_at = now
        return self._token

    async def send(self, token: str, message: PushMessage) -> PushResult:
        headers = {
            "authorization": f"bearer {self._provider_token()}",
            "apns-topic": self._bundle_id,
        }
        if message.kind is PushKind.PROBE:
            headers["apns-push-type"] = "background"
            headers["apns-priority"] = "5"
        else:
            headers["apns-push-type"] = "alert"
            headers["apns-priority"] = "10"
            headers["apns-expiration"] = str(int(self._clock()) + ALERT_EXPIRATION_SECONDS)

        response = await self._client.post(
            f"/3/device/{token}", json=message.to_payload(), headers=headers
        )
        if response.is_success:
            return PushResult(status_code=response.status_code)

        reason = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            reason = body.get("reason")
        logger.debug(
            "APNs rejected %s: %s %s", mask_token(token), response.status_code, reason
        )
        return PushResult(status_code=response.status_code, reason=reason)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()


def build_push_provider(settings: Settings) -> ApnsPushProvider | None:
    """Create the APNs provider, or None when APNs is not fully configured."""
    if not settings.apns_configured:
        logger.warning("APNs not configured; push notifications are disabled")
        return None
    private_key = Path(settings.apns_key_path).read_text(encoding="utf-8")
    return ApnsPushProvider(
        key_id=settings.apns_key_id,
        team_id=settings.apns_team_id,
        bundle_id=settings.apns_bundle_id,
        private_key=private_key,
        production=settings.apns_production,
        timeout=settings.provider_timeout_seconds,
    )
