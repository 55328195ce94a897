"""Daily summary push at each user's configured local time.

push_sent_at on the day's report is the only at-most-once guard: it is
stamped after the first successful delivery and checked before every send.
"""
import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from zoneinfo import ZoneInfo

from daily_paydown.db import LedgerStore
from daily_paydown.exceptions import NoAccountSelectedError
from daily_paydown.push import PushDelivery, PushMessage
from daily_paydown.services.daily_reports import DailyReportService
from daily_paydown.utils import minutes_apart, parse_hhmm, utcnow

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Daily Paydown"


class DispatchOutcome(str, Enum):
    NOT_CONFIGURED = "not_configured"
    OUTSIDE_WINDOW = "outside_window"
    ALREADY_SENT = "already_sent"
    NO_ACCOUNT = "no_account"
    NOTHING_SPENT = "nothing_spent"
    DELIVERY_FAILED = "delivery_failed"
    SENT = "sent"


def summary_body(total: float, count: int) -> str:
    noun = "purchase" if count == 1 else "purchases"
    return f"You spent USD {total:.2f} today across {count} {noun}. Tap to review."


class NotificationDispatcher:
    """Send each user's daily summary once, inside their notification window."""

    def __init__(
        self,
        store: LedgerStore,
        reports: DailyReportService,
        delivery: PushDelivery,
        *,
        tolerance_minutes: int = 1,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._reports = reports
        self._delivery = delivery
        self._tolerance = tolerance_minutes
        self._clock = clock

    async def dispatch_user(self, user_id: int, *, force: bool = False) -> DispatchOutcome:
        """Send today's summary to the user's devices if it is due.

        Args:
            user_id: Recipient.
            force: Skip the time-window check (admin trigger). Dedup still applies.

        Returns:
            The DispatchOutcome explaining what happened.
        """
        user = self._store.get_user(user_id)
        if user is None or not user.timezone or not user.notification_time:
            return DispatchOutcome.NOT_CONFIGURED

        if not force:
            try:
                target = parse_hhmm(user.notification_time)
            except ValueError:
                logger.warning("User %s has invalid notification time %r", user_id, user.notification_time)
                return DispatchOutcome.NOT_CONFIGURED
            local_now = self._clock().astimezone(ZoneInfo(user.timezone)).time()
            if minutes_apart(local_now, target) > self._tolerance:
                return DispatchOutcome.OUTSIDE_WINDOW

        report = self._reports.today_report(user_id)
        if report is not None and report.push_sent_at is not None:
            return DispatchOutcome.ALREADY_SENT
        if report is None:
            try:
                report = self._reports.compute_report(user_id)
            except NoAccountSelectedError:
                return DispatchOutcome.NO_ACCOUNT

        if report.total_amount == 0 and report.transaction_count == 0:
            logger.debug("Nothing spent today for user %s; no push", user_id)
            return DispatchOutcome.NOTHING_SPENT

        message = PushMessage(
            title=NOTIFICATION_TITLE,
            body=summary_body(report.total_amount, report.transaction_count),
            data={"type": "daily_summary", "userId": str(user_id)},
        )
        if not await self._delivery.send_to_user(user_id, message):
            logger.warning("Daily summary for user %s was not delivered", user_id)
            return DispatchOutcome.DELIVERY_FAILED

        self._store.mark_push_sent(report.id, self._clock())
        logger.info("Daily summary sent to user %s", user_id)
        return DispatchOutcome.SENT
