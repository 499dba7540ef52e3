"""
Notification scheduler state persisted across restarts.
"""

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Optional, Union

from lead_followup.config import settings
from lead_followup.infrastructure.logging import get_logger


logger = get_logger(__name__)


class LastCheckStore:
    """
    Timestamp of the last executed notification scan, kept in a JSON file.

    An unreadable or corrupt file counts as "never checked".
    """

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self._path = Path(path or settings.notifications.state_file)
        self._lock = Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> Optional[datetime]:
        with self._lock:
            try:
                data = json.loads(self._path.read_text(encoding="utf-8"))
                return datetime.fromtimestamp(float(data["last_check"]), tz=timezone.utc)
            except FileNotFoundError:
                return None
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.warning(
                    f"Ignoring unreadable notification state: {e}",
                    extra={"extra_fields": {"path": str(self._path)}}
                )
                return None

    def mark(self, when: datetime) -> None:
        """Record `when` as the last scan time."""
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(
                json.dumps({"last_check": when.timestamp()}),
                encoding="utf-8",
            )
            os.replace(tmp_path, self._path)
