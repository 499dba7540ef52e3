"""
Platform notification adapters.

A notifier is whatever surface can show a reminder to the user.
LogNotifier is the one shipped with the service: it writes each
notification as a structured log line and coalesces repeats by tag.
"""

from dataclasses import dataclass
from threading import Lock
from typing import Dict, Optional, Protocol

from lead_followup.infrastructure.logging import get_logger


logger = get_logger(__name__)


class Notifier(Protocol):
    """Platform notification capability."""

    def is_supported(self) -> bool: ...

    def has_permission(self) -> bool: ...

    def request_permission(self) -> bool: ...

    def show(
        self,
        title: str,
        body: str,
        tag: str,
        require_interaction: bool = False,
    ) -> None: ...


@dataclass(frozen=True)
class Notification:
    """A notification currently on screen."""
    title: str
    body: str
    tag: str
    require_interaction: bool


class LogNotifier:
    """
    Notifier that emits notifications as structured log records.

    A notification with the tag of one already shown replaces it
    instead of stacking.
    """

    def __init__(self, permission: str = "default") -> None:
        # "granted", "denied" or "default" (not yet asked)
        self._permission = permission
        self._active: Dict[str, Notification] = {}
        self._lock = Lock()

    def is_supported(self) -> bool:
        return True

    def has_permission(self) -> bool:
        return self._permission == "granted"

    def request_permission(self) -> bool:
        """Grant unless permission was explicitly denied."""
        if self._permission == "default":
            self._permission = "granted"
        return self.has_permission()

    @property
    def active(self) -> Dict[str, Notification]:
        with self._lock:
            return dict(self._active)

    def dismiss(self, tag: str) -> Optional[Notification]:
        with self._lock:
            return self._active.pop(tag, None)

    def show(
        self,
        title: str,
        body: str,
        tag: str,
        require_interaction: bool = False,
    ) -> None:
        if not self.has_permission():
            logger.debug(
                "Cannot show notification without permission",
                extra={"extra_fields": {"tag": tag}}
            )
            return

        notification = Notification(title, body, tag, require_interaction)
        with self._lock:
            replaced = tag in self._active
            if require_interaction:
                self._active[tag] = notification
            else:
                self._active.pop(tag, None)

        logger.info(
            title,
            extra={"extra_fields": {
                "notification_body": body,
                "tag": tag,
                "require_interaction": require_interaction,
                "replaced": replaced,
            }}
        )
