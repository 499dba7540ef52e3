"""
Follow-up reminder process.

Runs the notification scheduler against the Leadfollow API on behalf of
the user whose session cookie is configured, until interrupted.
"""

import argparse
import signal
import threading
from typing import List, Optional

from lead_followup.config import settings
from lead_followup.core.exceptions import ConfigurationError, NotificationPermissionError
from lead_followup.infrastructure.http import LeadfollowClient
from lead_followup.infrastructure.logging import get_logger
from lead_followup.infrastructure.notifier import LogNotifier
from lead_followup.infrastructure.state import LastCheckStore
from lead_followup.services import NotificationScheduler, SchedulerState


logger = get_logger(__name__)


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="lead-followup-notify",
        description="Show reminders for overdue and due-today follow-ups.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="run a single check and exit",
    )
    parser.add_argument(
        "--state-file",
        default=None,
        help="where the last check time is kept",
    )
    return parser.parse_args(argv)


def _permitted_notifier() -> LogNotifier:
    """
    Raises:
        ConfigurationError: If no session cookie is configured.
        NotificationPermissionError: If notifications are not permitted.
    """
    if not settings.notifications.is_configured:
        raise ConfigurationError(
            "LEADFOLLOW_SESSION_COOKIE",
            "LEADFOLLOW_SESSION_COOKIE must be set to run the notifier",
        )

    notifier = LogNotifier()
    if not notifier.request_permission():
        raise NotificationPermissionError()
    return notifier


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point of lead-followup-notify.

    Returns:
        0 on a clean exit, 1 if the notifier cannot run.
    """
    args = _parse_args(argv)

    try:
        notifier = _permitted_notifier()
    except (ConfigurationError, NotificationPermissionError) as e:
        logger.error(
            f"Cannot start notifier: {e}",
            extra={"extra_fields": {"error_type": type(e).__name__}}
        )
        return 1

    stopped = threading.Event()

    def _shutdown(signum: int, frame) -> None:
        logger.info(
            "Received signal, stopping notifier",
            extra={"extra_fields": {"signal": signum}}
        )
        stopped.set()

    signal.signal(signal.SIGTERM, _shutdown)

    with LeadfollowClient() as client:
        scheduler = NotificationScheduler(
            client,
            notifier,
            last_check_store=LastCheckStore(args.state_file),
        )
        state = scheduler.start()
        if state == SchedulerState.STOPPED:
            logger.info("Notifier not started")
            return 0

        try:
            if not args.once:
                stopped.wait()
        except KeyboardInterrupt:
            logger.info("Interrupted, stopping notifier")
        finally:
            scheduler.stop()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
