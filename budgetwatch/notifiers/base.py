"""
Base notifier classes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from budgetwatch.exceptions import CalendarError


@dataclass
class Reminder:
    """Calendar reminder to top up a client's budget."""

    summary: str
    description: str
    start: datetime
    end: datetime


@dataclass
class NotificationResult:
    """Result of a notification attempt."""

    success: bool
    channel: str
    error: Optional[str] = None
    event_id: Optional[str] = None


class CalendarNotifier(ABC):
    """Abstract base class for calendar reminder channels."""

    channel = "calendar"

    @abstractmethod
    def create_event(
        self,
        summary: str,
        description: str,
        start: datetime,
        end: datetime,
    ) -> str:
        """
        Create a calendar event.

        Args:
            summary: Event title
            description: Event body
            start: Event start
            end: Event end

        Returns:
            ID of the created event

        Raises:
            CalendarError: If the event could not be created
        """
        pass

    def send(self, reminder: Reminder) -> NotificationResult:
        """
        Schedule a reminder.

        Args:
            reminder: Reminder to schedule

        Returns:
            NotificationResult indicating success or failure
        """
        try:
            event_id = self.create_event(
                reminder.summary,
                reminder.description,
                reminder.start,
                reminder.end,
            )
        except CalendarError as e:
            return NotificationResult(
                success=False,
                channel=self.channel,
                error=str(e),
            )
        return NotificationResult(success=True, channel=self.channel, event_id=event_id)
