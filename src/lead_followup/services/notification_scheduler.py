"""
Follow-up Notification Scheduler.

Polls the user's pending follow-ups on an interval and raises a
notification for every task that is overdue or due today.
"""

import threading
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from lead_followup.config import settings as app_settings
from lead_followup.core import days_until, now_utc
from lead_followup.core.exceptions import InfrastructureError
from lead_followup.infrastructure.http import LeadfollowClient, ScheduledFollowUp
from lead_followup.infrastructure.logging import get_logger
from lead_followup.infrastructure.metrics import get_metrics
from lead_followup.infrastructure.notifier import Notifier
from lead_followup.infrastructure.state import LastCheckStore


logger = get_logger(__name__).with_fields(component="notification-scheduler")


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    ARMED = "armed"
    CHECKING = "checking"


class NotificationKind(str, Enum):
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"


TITLES = {
    NotificationKind.OVERDUE: "Overdue Follow-up: {name}",
    NotificationKind.DUE_TODAY: "Follow-up Due Today: {name}",
}

BODIES = {
    NotificationKind.OVERDUE: "This follow-up is overdue and needs your attention.",
    NotificationKind.DUE_TODAY: "You have a follow-up scheduled for today.",
}


def notification_kind(
    follow_up: ScheduledFollowUp,
    now: datetime,
) -> Optional[NotificationKind]:
    """Which notification a follow-up warrants at `now`, if any."""
    if follow_up.completed:
        return None
    diff_days = days_until(follow_up.due_date, now)
    if diff_days < 0:
        return NotificationKind.OVERDUE
    if diff_days == 0:
        return NotificationKind.DUE_TODAY
    return None


class NotificationScheduler:
    """
    Periodic follow-up reminder loop.

    STOPPED -> ARMED on start() when the notifier is supported, has
    permission and the user has browser notifications switched on.
    Each tick goes ARMED -> CHECKING -> ARMED; a tick that finds a
    check in flight or the cool-down not yet elapsed does nothing.
    stop() returns to STOPPED from any state.

    A permission failure is reported once and makes every later
    start() on this instance a no-op.
    """

    def __init__(
        self,
        client: LeadfollowClient,
        notifier: Notifier,
        last_check_store: Optional[LastCheckStore] = None,
        interval_seconds: Optional[float] = None,
        cooldown_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        config = app_settings.notifications
        self._client = client
        self._notifier = notifier
        self._last_check = last_check_store or LastCheckStore()
        self._interval = interval_seconds if interval_seconds is not None else config.interval_seconds
        self._cooldown = timedelta(
            seconds=cooldown_seconds if cooldown_seconds is not None else config.cooldown_seconds
        )
        self._clock = clock

        self._state = SchedulerState.STOPPED
        self._permission_denied = False
        self._check_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def permission_denied(self) -> bool:
        return self._permission_denied

    def _notifications_enabled(self) -> bool:
        """Read the user's notifyBrowser switch; unreachable API means no."""
        try:
            user_settings = self._client.get_follow_up_settings()
        except InfrastructureError as e:
            logger.error(
                f"Cannot read follow-up settings, not starting: {e}",
                extra={"extra_fields": {"error_type": type(e).__name__}}
            )
            return False
        return bool(user_settings.get("notifyBrowser", False))

    def start(self) -> SchedulerState:
        """
        Arm the scheduler and run a first check.

        Returns:
            The resulting state.
        """
        with self._state_lock:
            if self._state != SchedulerState.STOPPED or self._permission_denied:
                return self._state

            if not self._notifier.is_supported() or not self._notifier.has_permission():
                self._permission_denied = True
                logger.warning(
                    "Notifications are unavailable or not permitted; reminders disabled for this session",
                    extra={"extra_fields": {"supported": self._notifier.is_supported()}}
                )
                return self._state

            if not self._notifications_enabled():
                logger.info("Browser notifications are switched off for this user")
                return self._state

            self._state = SchedulerState.ARMED
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                name="notification-scheduler",
                daemon=True,
            )
            self._thread.start()

        logger.info(
            "Notification scheduler started",
            extra={"extra_fields": {
                "interval_seconds": self._interval,
                "cooldown_seconds": self._cooldown.total_seconds(),
            }}
        )
        self.tick()
        return self._state

    def stop(self) -> None:
        """Cancel the interval and return to STOPPED."""
        with self._state_lock:
            self._state = SchedulerState.STOPPED
            self._stop_event.set()
            thread, self._thread = self._thread, None

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5)

        logger.info("Notification scheduler stopped")

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            self.tick()

    def _cooldown_elapsed(self, now: datetime) -> bool:
        last = self._last_check.get()
        return last is None or now - last >= self._cooldown

    def tick(self) -> bool:
        """
        Run one scan if armed, idle and past the cool-down.

        Any error inside the scan is logged and ends that scan only, so
        the interval thread keeps running.

        Returns:
            True if a scan was executed.
        """
        if self._state != SchedulerState.ARMED:
            return False
        if not self._check_lock.acquire(blocking=False):
            return False

        try:
            now = self._clock()
            if not self._cooldown_elapsed(now):
                logger.debug("Skipping notification check, cool-down not elapsed")
                return False

            with self._state_lock:
                if self._state != SchedulerState.ARMED:
                    return False
                self._state = SchedulerState.CHECKING

            try:
                self._last_check.mark(now)
                self._scan(now)
            except Exception as e:
                get_metrics().notification_scans_total.inc(status="error")
                logger.exception(
                    f"Notification check failed: {e}",
                    extra={"extra_fields": {"error_type": type(e).__name__}}
                )
            return True
        finally:
            with self._state_lock:
                if self._state == SchedulerState.CHECKING:
                    self._state = SchedulerState.ARMED
            self._check_lock.release()

    def _scan(self, now: datetime) -> None:
        """Notify for every overdue or due-today follow-up."""
        metrics = get_metrics()
        try:
            follow_ups = self._client.get_pending_follow_ups()
        except InfrastructureError as e:
            metrics.notification_scans_total.inc(status="error")
            logger.error(
                f"Error checking follow-ups for notifications: {e}",
                extra={"extra_fields": {"error_type": type(e).__name__}}
            )
            return

        shown = 0
        for follow_up in follow_ups:
            kind = notification_kind(follow_up, now)
            if kind is None:
                continue

            self._notifier.show(
                TITLES[kind].format(name=follow_up.prospect_name),
                BODIES[kind],
                tag=f"followup-{follow_up.prospect_id}",
                require_interaction=kind == NotificationKind.OVERDUE,
            )
            metrics.notifications_shown_total.inc(kind=kind.value)
            shown += 1

        metrics.notification_scans_total.inc(status="success")
        logger.info(
            f"Notification check raised {shown} notifications",
            extra={"extra_fields": {
                "pending_count": len(follow_ups),
                "notifications_shown": shown,
            }}
        )
