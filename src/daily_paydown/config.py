"""Runtime configuration loaded from environment variables."""
import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

PLAID_ENVIRONMENTS = ("sandbox", "development", "production")


class ConfigurationError(ValueError):
    """Raised at startup when an environment variable is missing or invalid."""


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _env_str(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return raw.strip()


@dataclass(frozen=True)
class Settings:
    """Service settings. Build with load_settings() or construct directly in tests."""

    database_url: str = "sqlite:///./daily_paydown.db"
    sql_echo: bool = False

    plaid_client_id: str | None = None
    plaid_secret: str | None = None
    plaid_env: str = "sandbox"
    token_encryption_key: str | None = None
    plaid_webhook_secret: str | None = None
    provider_timeout_seconds: float = 10.0

    admin_api_key: str | None = None

    apns_key_id: str | None = None
    apns_team_id: str | None = None
    apns_bundle_id: str | None = None
    apns_key_path: str | None = None
    apns_production: bool = False

    sync_window_days: int = 30
    worker_concurrency: int = 5
    default_timezone: str = "America/New_York"
    notification_tolerance_minutes: int = 1

    scheduler_enabled: bool = True
    transaction_sync_interval_seconds: float = 15 * 60
    balance_sync_interval_seconds: float = 60 * 60
    report_interval_seconds: float = 60 * 60
    notification_interval_seconds: float = 60
    device_cleanup_interval_seconds: float = 7 * 24 * 60 * 60

    log_level: str = "INFO"

    @property
    def apns_configured(self) -> bool:
        """True when every APNs setting needed to sign provider tokens is present."""
        return all(
            (self.apns_key_id, self.apns_team_id, self.apns_bundle_id, self.apns_key_path)
        )

    def validate(self) -> "Settings":
        """Check cross-field constraints; raise ConfigurationError on the first problem."""
        if self.plaid_env not in PLAID_ENVIRONMENTS:
            raise ConfigurationError(
                f"PLAID_ENV must be one of: {', '.join(PLAID_ENVIRONMENTS)}, got: {self.plaid_env}"
            )
        try:
            ZoneInfo(self.default_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigurationError(
                f"DEFAULT_TIMEZONE is not a known IANA timezone: {self.default_timezone}"
            ) from exc
        if self.sync_window_days < 1:
            raise ConfigurationError("SYNC_WINDOW_DAYS must be at least 1")
        if self.worker_concurrency < 1:
            raise ConfigurationError("WORKER_CONCURRENCY must be at least 1")
        if self.notification_tolerance_minutes < 0:
            raise ConfigurationError("NOTIFICATION_TOLERANCE_MINUTES must not be negative")
        return self


def load_settings() -> Settings:
    """Read Settings from the process environment and validate them."""
    defaults = Settings()
    settings = Settings(
        database_url=os.getenv("DATABASE_URL", defaults.database_url),
        sql_echo=_env_bool("SQL_ECHO", defaults.sql_echo),
        plaid_client_id=_env_str("PLAID_CLIENT_ID"),
        plaid_secret=_env_str("PLAID_SECRET"),
        plaid_env=(os.getenv("PLAID_ENV") or defaults.plaid_env).strip().lower(),
        token_encryption_key=_env_str("PLAID_TOKEN_ENCRYPTION_KEY"),
        plaid_webhook_secret=_env_str("PLAID_WEBHOOK_SECRET"),
        provider_timeout_seconds=_env_float(
            "PROVIDER_TIMEOUT_SECONDS", defaults.provider_timeout_seconds
        ),
        admin_api_key=_env_str("ADMIN_API_KEY"),
        apns_key_id=_env_str("APNS_KEY_ID"),
        apns_team_id=_env_str("APNS_TEAM_ID"),
        apns_bundle_id=_env_str("APNS_BUNDLE_ID"),
        apns_key_path=_env_str("APNS_KEY_PATH"),
        apns_production=_env_bool("APNS_PRODUCTION", defaults.apns_production),
        sync_window_days=_env_int("SYNC_WINDOW_DAYS", defaults.sync_window_days),
        worker_concurrency=_env_int("WORKER_CONCURRENCY", defaults.worker_concurrency),
        default_timezone=os.getenv("DEFAULT_TIMEZONE", defaults.default_timezone),
        notification_tolerance_minutes=_env_int(
            "NOTIFICATION_TOLERANCE_MINUTES", defaults.notification_tolerance_minutes
        ),
        scheduler_enabled=_env_bool("SCHEDULER_ENABLED", defaults.scheduler_enabled),
        transaction_sync_interval_seconds=_env_float(
            "TRANSACTION_SYNC_INTERVAL_SECONDS", defaults.transaction_sync_interval_seconds
        ),
        balance_sync_interval_seconds=_env_float(
            "BALANCE_SYNC_INTERVAL_SECONDS", defaults.balance_sync_interval_seconds
        ),
        report_interval_seconds=_env_float(
            "REPORT_INTERVAL_SECONDS", defaults.report_interval_seconds
        ),
        notification_interval_seconds=_env_float(
            "NOTIFICATION_INTERVAL_SECONDS", defaults.notification_interval_seconds
        ),
        device_cleanup_interval_seconds=_env_float(
            "DEVICE_CLEANUP_INTERVAL_SECONDS", defaults.device_cleanup_interval_seconds
        ),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
    )
    return settings.validate()
