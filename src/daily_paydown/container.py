"""DI container. Build via init_container(); routes resolve services through daily_paydown.deps."""
from dependency_injector import containers, providers

from daily_paydown.config import load_settings
from daily_paydown.db import Database, LedgerStore
from daily_paydown.jobs import JobRunner, JobScheduler, intervals_from_settings
from daily_paydown.providers import PlaidProvider
from daily_paydown.providers.plaid import WebhookHandler
from daily_paydown.push import PushDelivery, build_push_provider
from daily_paydown.services import (BalanceSyncService, DailyReportService,
                                    DeviceCleanupService, ItemResolver,
                                    LinkService, NotificationDispatcher,
                                    RunGuard, TransactionSyncService)
from daily_paydown.vault import CredentialVault


class Container(containers.DeclarativeContainer):
    settings = providers.Singleton(load_settings)

    database = providers.Singleton(
        Database,
        settings.provided.database_url,
        echo=settings.provided.sql_echo,
    )
    store = providers.Singleton(LedgerStore, database)

    vault = providers.Singleton(
        CredentialVault.from_hex, settings.provided.token_encryption_key
    )

    plaid_provider = providers.Singleton(
        PlaidProvider,
        client_id=settings.provided.plaid_client_id,
        secret=settings.provided.plaid_secret,
        environment=settings.provided.plaid_env,
        timeout=settings.provided.provider_timeout_seconds,
    )
    push_provider = providers.Singleton(build_push_provider, settings)

    push_delivery = providers.Singleton(PushDelivery, push_provider, store)

    run_guard = providers.Singleton(RunGuard)
    item_resolver = providers.Singleton(ItemResolver, store, vault, plaid_provider)
    balance_sync = providers.Singleton(
        BalanceSyncService, store, item_resolver, plaid_provider
    )
    transaction_sync = providers.Singleton(
        TransactionSyncService,
        store,
        item_resolver,
        plaid_provider,
        balance_sync,
        window_days=settings.provided.sync_window_days,
        guard=run_guard,
    )
    reports = providers.Singleton(
        DailyReportService,
        store,
        default_timezone=settings.provided.default_timezone,
    )
    dispatcher = providers.Singleton(
        NotificationDispatcher,
        store,
        reports,
        push_delivery,
        tolerance_minutes=settings.provided.notification_tolerance_minutes,
    )
    device_cleanup = providers.Singleton(DeviceCleanupService, store, push_delivery)
    link_service = providers.Singleton(
        LinkService, store, vault, plaid_provider, resolver=item_resolver
    )
    webhook_handler = providers.Singleton(WebhookHandler, store)

    job_runner = providers.Singleton(
        JobRunner,
        store,
        transaction_sync,
        balance_sync,
        reports,
        dispatcher,
        device_cleanup,
        concurrency=settings.provided.worker_concurrency,
    )
    scheduler = providers.Singleton(
        JobScheduler,
        job_runner,
        providers.Callable(intervals_from_settings, settings),
    )


def init_container(**overrides) -> Container:  # noqa: ANN003
    """Create the container; keyword overrides replace providers (e.g. settings in tests)."""
    container = Container()
    for name, value in overrides.items():
        getattr(container, name).override(providers.Object(value))
    return container
