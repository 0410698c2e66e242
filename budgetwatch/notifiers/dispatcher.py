"""
Critical-budget reminder dispatch.

A client gets at most one reminder attempt per local calendar day. Any log
entry for the client dated today, sent or failed, blocks further attempts
until the day rolls over. Attempts are also remembered in memory for the
current day, so a failed log write does not lead to a second event.
"""

import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional, Sequence

from budgetwatch.database.models import Client, NotificationLogEntry, NotificationStatus
from budgetwatch.database.repository import NotificationLogRepository
from budgetwatch.exceptions import StoreError
from budgetwatch.forecast.engine import HealthStatus, PredictionResult
from .base import CalendarNotifier, Reminder

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Turns CRITICAL predictions into deduplicated calendar reminders."""

    def __init__(
        self,
        notifier: Optional[CalendarNotifier] = None,
        log_repo: Optional[NotificationLogRepository] = None,
        tz: Optional[tzinfo] = None,
        reminder_hour: int = 9,
        duration_minutes: int = 60,
    ):
        """
        Initialize dispatcher.

        Args:
            notifier: Calendar channel, None when no calendar is connected
            log_repo: Store for log entries, used by dispatch()
            tz: Timezone for day boundaries, system local time when None
            reminder_hour: Local hour the next-day reminder starts at
            duration_minutes: Reminder length
        """
        self.notifier = notifier
        self.log_repo = log_repo
        self.tz = tz
        self.reminder_hour = reminder_hour
        self.duration_minutes = duration_minutes
        # Clients attempted today, kept even when the log write fails
        self._attempted_day: Optional[date] = None
        self._attempted: set[str] = set()

    def maybe_notify(
        self,
        client: Client,
        prediction: PredictionResult,
        existing_log: Sequence[NotificationLogEntry],
        calendar_available: bool,
        now: Optional[datetime] = None,
    ) -> Optional[NotificationLogEntry]:
        """
        Emit a reminder for a CRITICAL client unless one was logged today.

        Args:
            client: Client the prediction belongs to
            prediction: Current forecast for the client
            existing_log: Log entries to deduplicate against
            calendar_available: Whether the calendar channel may be used
            now: Reference instant, defaults to the current time

        Returns:
            The new log entry, or None when nothing was attempted
        """
        if prediction.status != HealthStatus.CRITICAL:
            return None

        now = now or datetime.now(timezone.utc)
        if self._already_logged_today(client.id, existing_log, now):
            logger.debug(f"Reminder for {client.company} already logged today")
            return None

        summary = f"TOP UP BUDGET: {client.company}"

        if calendar_available and self.notifier is not None:
            result = self.notifier.send(self._build_reminder(client, prediction, summary, now))
            if result.success:
                status = NotificationStatus.SENT
                message = f'Event added: "{summary}" scheduled for tomorrow.'
            else:
                logger.error(f"Calendar reminder failed for {client.company}: {result.error}")
                status = NotificationStatus.FAILED
                message = f"Failed to create calendar event for {client.company}."
        else:
            status = NotificationStatus.SENT
            message = (
                f'Alert (calendar disconnected): "{summary}" '
                f"would have been scheduled for tomorrow."
            )

        return NotificationLogEntry(
            client_id=client.id,
            client_name=client.company,
            timestamp=now,
            status=status,
            message=message,
        )

    def dispatch(
        self,
        clients: Sequence[Client],
        predictions: Sequence[PredictionResult],
        calendar_available: bool,
        now: Optional[datetime] = None,
    ) -> list[NotificationLogEntry]:
        """
        Notify every CRITICAL client and record the outcomes.

        Args:
            clients: Current client snapshot
            predictions: Forecasts for the snapshot
            calendar_available: Whether the calendar channel may be used
            now: Reference instant, defaults to the current time

        Returns:
            Log entries created during this pass
        """
        now = now or datetime.now(timezone.utc)
        by_id = {client.id: client for client in clients}
        log = self._load_today(now)
        created = []

        for prediction in predictions:
            client = by_id.get(prediction.client_id)
            if client is None:
                continue

            entry = self.maybe_notify(client, prediction, log, calendar_available, now)
            if entry is None:
                continue

            if self.log_repo is not None:
                try:
                    self.log_repo.create(entry)
                except StoreError as e:
                    logger.error(f"Failed to record reminder for {client.company}: {e}")
            self._mark_attempted(client.id, now)
            log.append(entry)
            created.append(entry)

        return created

    def _load_today(self, now: datetime) -> list[NotificationLogEntry]:
        if self.log_repo is None:
            return []
        try:
            return self.log_repo.list_since(self._start_of_day(now))
        except StoreError as e:
            logger.error(f"Failed to load notification log: {e}")
            return []

    def _already_logged_today(
        self,
        client_id: str,
        log: Sequence[NotificationLogEntry],
        now: datetime,
    ) -> bool:
        today = now.astimezone(self.tz).date()
        if self._attempted_day == today and client_id in self._attempted:
            return True
        return any(
            entry.client_id == client_id
            and entry.timestamp.astimezone(self.tz).date() == today
            for entry in log
        )

    def _mark_attempted(self, client_id: str, now: datetime) -> None:
        today = now.astimezone(self.tz).date()
        if self._attempted_day != today:
            self._attempted_day = today
            self._attempted = set()
        self._attempted.add(client_id)

    def _start_of_day(self, now: datetime) -> datetime:
        return now.astimezone(self.tz).replace(hour=0, minute=0, second=0, microsecond=0)

    def _build_reminder(
        self,
        client: Client,
        prediction: PredictionResult,
        summary: str,
        now: datetime,
    ) -> Reminder:
        """Next-day reminder at the configured local hour."""
        start = (now.astimezone(self.tz) + timedelta(days=1)).replace(
            hour=self.reminder_hour, minute=0, second=0, microsecond=0
        )
        return Reminder(
            summary=summary,
            description=(
                f"Current balance is {client.currency} {client.current_balance}. "
                f"Projected to run out in {prediction.days_remaining} days."
            ),
            start=start,
            end=start + timedelta(minutes=self.duration_minutes),
        )
