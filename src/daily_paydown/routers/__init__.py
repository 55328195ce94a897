"""API routers.

Includes routes for:
- /today - Today's spend summary, transactions and mark-paid
- /history - Stored daily reports
- /settings - Timezone, notification time, goal and account selection
- /devices - Push token registration
- /plaid - Item linking and the Plaid webhook
- /admin - Row counts and manual job triggers (X-Admin-Key)
"""
from daily_paydown.routers.admin import router as admin_router
from daily_paydown.routers.devices import router as devices_router
from daily_paydown.routers.history import router as history_router
from daily_paydown.routers.plaid import router as plaid_router
from daily_paydown.routers.settings import router as settings_router
from daily_paydown.routers.today import router as today_router

__all__ = [
    "admin_router",
    "devices_router",
    "history_router",
    "plaid_router",
    "settings_router",
    "today_router",
]
