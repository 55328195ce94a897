"""User settings routes: timezone, notification time, goal and account selection."""
import logging

from fastapi import APIRouter

from daily_paydown.db import LedgerStore, User
from daily_paydown.deps import CurrentUser, StoreDep
from daily_paydown.schemas import SettingsOut, SettingsUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/settings", tags=["settings"])

_USER_FIELDS = ("timezone", "notification_time", "goal")
_SELECTION_FIELDS = ("spend_account_id", "coverage_account_id")


def _settings_out(store: LedgerStore, user: User) -> SettingsOut:
    selection = store.get_selection(user.id)
    return SettingsOut(
        email=user.email,
        timezone=user.timezone,
        notification_time=user.notification_time,
        goal=user.goal,
        spend_account_id=selection.spend_account_id if selection else None,
        coverage_account_id=selection.coverage_account_id if selection else None,
    )


@router.get("", response_model=SettingsOut)
def get_settings(user: CurrentUser, store: StoreDep) -> SettingsOut:
    return _settings_out(store, user)


@router.patch("", response_model=SettingsOut)
def update_settings(payload: SettingsUpdate, user: CurrentUser, store: StoreDep) -> SettingsOut:
    """Apply the fields present in the body; absent fields are left unchanged."""
    changes = payload.model_dump(exclude_unset=True)
    user_changes = {k: v for k, v in changes.items() if k in _USER_FIELDS}
    selection_changes = {k: v for k, v in changes.items() if k in _SELECTION_FIELDS}

    if user_changes:
        user = store.update_user(user.id, **user_changes) or user
    if selection_changes:
        store.upsert_selection(user.id, **selection_changes)
    logger.info("User %s updated settings: %s", user.id, sorted(changes))
    return _settings_out(store, user)
