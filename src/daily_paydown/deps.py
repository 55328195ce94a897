"""FastAPI dependency injection: app.state.container holds singletons; Depends() resolves them.

The caller's identity comes from the X-User-Id header set by the upstream
gateway; admin routes additionally require X-Admin-Key.
"""
import hmac
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request

from daily_paydown.config import Settings
from daily_paydown.container import Container
from daily_paydown.db import LedgerStore, User
from daily_paydown.jobs import JobRunner
from daily_paydown.providers.plaid import WebhookHandler
from daily_paydown.services import (BalanceSyncService, DailyReportService,
                                    ItemResolver, LinkService,
                                    NotificationDispatcher,
                                    TransactionSyncService)


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_settings(request: Request) -> Settings:
    return get_container(request).settings()


def get_store(request: Request) -> LedgerStore:
    return get_container(request).store()


def get_reports(request: Request) -> DailyReportService:
    """Resolve the DailyReportService singleton."""
    return get_container(request).reports()


def get_transaction_sync(request: Request) -> TransactionSyncService:
    return get_container(request).transaction_sync()


def get_balance_sync(request: Request) -> BalanceSyncService:
    return get_container(request).balance_sync()


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return get_container(request).dispatcher()


def get_item_resolver(request: Request) -> ItemResolver:
    return get_container(request).item_resolver()


def get_link_service(request: Request) -> LinkService:
    return get_container(request).link_service()


def get_webhook_handler(request: Request) -> WebhookHandler:
    return get_container(request).webhook_handler()


def get_job_runner(request: Request) -> JobRunner:
    return get_container(request).job_runner()


def get_current_user(
    store: Annotated[LedgerStore, Depends(get_store)],
    x_user_id: Annotated[int, Header()],
) -> User:
    """Load the user named by X-User-Id; 404 if it does not exist."""
    user = store.get_user(x_user_id)
    if user is None:
        raise HTTPException(status_code=404, detail=f"User {x_user_id} not found")
    return user


def require_admin(
    settings: Annotated[Settings, Depends(get_settings)],
    x_admin_key: Annotated[str | None, Header()] = None,
) -> None:
    """Reject requests without the configured admin key.

    Admin routes are disabled (503) when ADMIN_API_KEY is not set.
    """
    if not settings.admin_api_key:
        raise HTTPException(status_code=503, detail="Admin API is not configured")
    if not x_admin_key:
        raise HTTPException(status_code=401, detail="Admin API key required")
    if not hmac.compare_digest(x_admin_key, settings.admin_api_key):
        raise HTTPException(status_code=403, detail="Invalid admin API key")


# Type aliases for route injection
CurrentUser = Annotated[User, Depends(get_current_user)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
StoreDep = Annotated[LedgerStore, Depends(get_store)]
ReportsDep = Annotated[DailyReportService, Depends(get_reports)]
TransactionSyncDep = Annotated[TransactionSyncService, Depends(get_transaction_sync)]
BalanceSyncDep = Annotated[BalanceSyncService, Depends(get_balance_sync)]
DispatcherDep = Annotated[NotificationDispatcher, Depends(get_dispatcher)]
ItemResolverDep = Annotated[ItemResolver, Depends(get_item_resolver)]
LinkServiceDep = Annotated[LinkService, Depends(get_link_service)]
WebhookHandlerDep = Annotated[WebhookHandler, Depends(get_webhook_handler)]
JobRunnerDep = Annotated[JobRunner, Depends(get_job_runner)]
