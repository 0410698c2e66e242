"""
Google Calendar notifier.
"""

import logging
import time
from datetime import datetime
from typing import Any, Optional

import requests

from budgetwatch.config import CalendarConfig
from budgetwatch.exceptions import CalendarError
from .base import CalendarNotifier

logger = logging.getLogger(__name__)


class GoogleCalendarNotifier(CalendarNotifier):
    """Creates reminder events through the Google Calendar v3 API."""

    API_BASE = "https://www.googleapis.com/calendar/v3"

    def __init__(
        self,
        access_token: str,
        calendar_id: str = "primary",
        timezone: str = "America/Sao_Paulo",
        timeout: int = 10,
    ):
        """
        Initialize Google Calendar notifier.

        Args:
            access_token: OAuth access token with the calendar.events scope
            calendar_id: Target calendar
            timezone: IANA timezone attached to event times
            timeout: HTTP timeout in seconds
        """
        self.access_token = access_token
        self.calendar_id = calendar_id
        self.timezone = timezone
        self.timeout = timeout

    def create_event(
        self,
        summary: str,
        description: str,
        start: datetime,
        end: datetime,
    ) -> str:
        """Insert an event and return its ID."""
        payload = self._create_payload(summary, description, start, end)

        try:
            response = self._post_event(payload)
        except requests.exceptions.RequestException as e:
            raise CalendarError(f"Connection error: {e}") from e

        if not response.ok:
            raise CalendarError(f"HTTP {response.status_code}: {response.text}")

        try:
            event_id = response.json()["id"]
        except (ValueError, KeyError, TypeError) as e:
            raise CalendarError(f"Invalid event response: {e}") from e

        logger.info(f"Created calendar event {event_id}: {summary}")
        return event_id

    def _post_event(self, payload: dict[str, Any]) -> requests.Response:
        """Post event with rate limit handling."""
        url = f"{self.API_BASE}/calendars/{self.calendar_id}/events"
        headers = {"Authorization": f"Bearer {self.access_token}"}
        response = requests.post(url, json=payload, headers=headers, timeout=self.timeout)

        # Handle rate limiting
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After", "1")
            time.sleep(float(retry_after))
            response = requests.post(
                url, json=payload, headers=headers, timeout=self.timeout
            )

        return response

    def _create_payload(
        self,
        summary: str,
        description: str,
        start: datetime,
        end: datetime,
    ) -> dict[str, Any]:
        """Create Calendar API event resource."""
        return {
            "summary": summary,
            "description": description,
            "start": {"dateTime": start.isoformat(), "timeZone": self.timezone},
            "end": {"dateTime": end.isoformat(), "timeZone": self.timezone},
        }


def create_calendar_notifier(
    config: CalendarConfig,
    timezone: str,
    timeout: int = 10,
) -> Optional[GoogleCalendarNotifier]:
    """Build the calendar notifier, or None when the calendar is not connected."""
    if not config.enabled or not config.access_token:
        return None
    return GoogleCalendarNotifier(
        access_token=config.access_token,
        calendar_id=config.calendar_id,
        timezone=timezone,
        timeout=timeout,
    )
