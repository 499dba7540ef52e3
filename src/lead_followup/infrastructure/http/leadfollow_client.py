"""
Leadfollow API Client.

Used by the notification scheduler to read the signed-in user's
pending follow-ups and follow-up settings over HTTP.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from lead_followup.config import settings
from lead_followup.core.exceptions import LeadfollowApiError
from lead_followup.core.time_utils import parse_datetime
from lead_followup.infrastructure.circuit_breaker import get_circuit_breaker
from lead_followup.infrastructure.logging import get_logger, log_duration
from lead_followup.infrastructure.metrics import get_metrics


logger = get_logger(__name__)

SESSION_COOKIE_NAME = "session"


@dataclass(frozen=True)
class ScheduledFollowUp:
    """A follow-up as seen by the notification scheduler."""
    follow_up_id: str
    prospect_id: str
    prospect_name: str
    due_date: datetime
    completed: bool = False

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> "ScheduledFollowUp":
        """
        Create from one /api/follow-ups entry.

        Raises:
            ValueError: If the entry is not an object or dueDate is missing
                or not a timestamp.
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        prospect = data.get("prospect")
        if not isinstance(prospect, dict):
            prospect = {}
        due_date = parse_datetime(data.get("dueDate"))
        if due_date is None:
            raise ValueError(f"follow-up {data.get('id')} has no dueDate")

        return cls(
            follow_up_id=str(data.get("id", "")),
            prospect_id=str(prospect.get("id") or data.get("prospectId") or ""),
            prospect_name=prospect.get("name") or "Unknown",
            due_date=due_date,
            completed=bool(data.get("completed", False)),
        )


class LeadfollowClient:
    """
    Client for the Leadfollow HTTP API.

    Authenticates with the user's session cookie. Calls go through a
    shared circuit breaker so a dead API is not polled every tick.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        session_cookie: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> None:
        self._base_url = (base_url or settings.notifications.api_url).rstrip("/")
        self._session_cookie = session_cookie or settings.notifications.session_cookie
        self._timeout = timeout or settings.notifications.timeout_seconds
        self._session: Optional[requests.Session] = None
        self._breaker = get_circuit_breaker("leadfollow-api")

    @property
    def session(self) -> requests.Session:
        """Get or create HTTP session with retry logic."""
        if self._session is None:
            self._session = requests.Session()

            retry_strategy = Retry(
                total=3,
                backoff_factor=0.5,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["GET"],
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)

            self._session.mount("http://", adapter)
            self._session.mount("https://", adapter)

            self._session.headers.update({"Accept": "application/json"})
            if self._session_cookie:
                self._session.cookies.set(SESSION_COOKIE_NAME, self._session_cookie)

        return self._session

    def _get(self, endpoint: str) -> Any:
        """
        GET an API endpoint and decode its JSON body.

        Raises:
            LeadfollowApiError: On timeout, HTTP error or transport failure.
        """
        url = f"{self._base_url}/{endpoint.lstrip('/')}"

        try:
            response = self.session.get(url, timeout=self._timeout)
            response.raise_for_status()
            body = response.json()

        except requests.exceptions.Timeout as e:
            get_metrics().external_requests_total.inc(service="leadfollow", status="timeout")
            logger.error(
                f"Leadfollow API timeout: {endpoint}",
                extra={"extra_fields": {"endpoint": endpoint, "timeout": self._timeout}}
            )
            raise LeadfollowApiError(f"timeout on {endpoint}") from e

        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            get_metrics().external_requests_total.inc(service="leadfollow", status="http_error")
            logger.error(
                f"Leadfollow API HTTP error: {status_code}",
                extra={"extra_fields": {"endpoint": endpoint, "status_code": status_code}}
            )
            raise LeadfollowApiError(f"HTTP {status_code} on {endpoint}", status_code) from e

        except (requests.exceptions.RequestException, ValueError) as e:
            get_metrics().external_requests_total.inc(service="leadfollow", status="error")
            logger.error(
                f"Leadfollow API request failed: {e}",
                extra={"extra_fields": {"endpoint": endpoint, "error_type": type(e).__name__}}
            )
            raise LeadfollowApiError(f"request to {endpoint} failed: {e}") from e

        get_metrics().external_requests_total.inc(service="leadfollow", status="success")
        return body

    @log_duration("fetch_pending_follow_ups")
    def get_pending_follow_ups(self) -> List[ScheduledFollowUp]:
        """
        Pending follow-ups of the signed-in user.

        Entries that cannot be parsed are logged and dropped.

        Raises:
            LeadfollowApiError: If the request fails or the body is not a list.
            CircuitBreakerOpenError: If the API has been failing.
        """
        body = self._breaker.call(self._get, "/api/follow-ups")

        if body is None:
            return []
        if not isinstance(body, list):
            raise LeadfollowApiError(
                f"expected a list from /api/follow-ups, got {type(body).__name__}"
            )

        follow_ups = []
        for entry in body:
            try:
                follow_ups.append(ScheduledFollowUp.from_api_response(entry))
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(
                    f"Skipping malformed follow-up: {e}",
                    extra={"extra_fields": {"follow_up_id": entry.get("id") if isinstance(entry, dict) else None}}
                )
        return follow_ups

    def get_follow_up_settings(self) -> Dict[str, Any]:
        """
        Follow-up settings of the signed-in user.

        Raises:
            LeadfollowApiError: If the request fails.
            CircuitBreakerOpenError: If the API has been failing.
        """
        body = self._breaker.call(self._get, "/api/follow-up-settings")
        if not isinstance(body, dict):
            raise LeadfollowApiError(
                f"expected an object from /api/follow-up-settings, got {type(body).__name__}"
            )
        return body

    def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self) -> "LeadfollowClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
