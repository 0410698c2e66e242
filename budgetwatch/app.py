"""
BudgetWatch application service.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence

from budgetwatch.config import AppConfig
from budgetwatch.database.connection import Database
from budgetwatch.database.models import Client, NotificationLogEntry, Platform
from budgetwatch.database.repository import ClientRepository, NotificationLogRepository
from budgetwatch.exceptions import StoreError, SyncError
from budgetwatch.forecast.engine import (
    PortfolioSummary,
    PredictionEngine,
    PredictionResult,
    as_decimal,
    summarize_portfolio,
)
from budgetwatch.forecast.settlement import SettlementProcessor
from budgetwatch.insights.gemini import Insights, InsightsClient
from budgetwatch.notifiers.base import CalendarNotifier
from budgetwatch.notifiers.dispatcher import NotificationDispatcher
from budgetwatch.platforms.base import AdAccount, AdsPlatform
from budgetwatch.platforms.meta import MetaAdsClient
from budgetwatch.sync.orchestrator import SyncOrchestrator
from budgetwatch.sync.scheduler import SyncScheduler

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BudgetWatchApp:
    """Main BudgetWatch application."""

    def __init__(
        self,
        db: Database,
        config: Optional[AppConfig] = None,
        platform: Optional[AdsPlatform] = None,
        notifier: Optional[CalendarNotifier] = None,
        insights: Optional[InsightsClient] = None,
        dry_run: bool = False,
    ):
        """
        Initialize BudgetWatch app.

        Args:
            db: Database instance
            config: Application configuration, defaults when None
            platform: Ads platform client, Meta Graph API when None
            notifier: Calendar channel, None when no calendar is connected
            insights: Narrative summary client, optional
            dry_run: Never call the calendar, log would-be reminders instead
        """
        self.db = db
        self.config = config or AppConfig()
        self.dry_run = dry_run
        tz = self.config.tz

        # Initialize repositories
        self.client_repo = ClientRepository(db)
        self.log_repo = NotificationLogRepository(db)

        # Initialize services
        self.engine = PredictionEngine(
            critical_days=self.config.forecast.critical_days,
            warning_days=self.config.forecast.warning_days,
            no_spend_days=self.config.forecast.no_spend_days,
        )
        self.settlement = SettlementProcessor(self.client_repo, tz=tz)
        self.dispatcher = NotificationDispatcher(
            notifier=notifier,
            log_repo=self.log_repo,
            tz=tz,
            reminder_hour=self.config.calendar.reminder_hour,
            duration_minutes=self.config.calendar.duration_minutes,
        )
        self.sync = SyncOrchestrator(
            self.client_repo,
            platform
            or MetaAdsClient(
                api_version=self.config.ads_platform.api_version,
                timeout=self.config.advanced.request_timeout_seconds,
            ),
            max_workers=self.config.sync.max_workers,
        )
        self.insights = insights

        self.clients: list[Client] = []
        self.predictions: list[PredictionResult] = []
        self.ads_credential: Optional[str] = None
        self._scheduler: Optional[SyncScheduler] = None
        self._lock = threading.RLock()

    @property
    def calendar_available(self) -> bool:
        return self.dispatcher.notifier is not None and not self.dry_run

    def run_check(self, now: Optional[datetime] = None) -> list[NotificationLogEntry]:
        """Load clients, settle elapsed days, forecast and send reminders."""
        now = now or _now()
        with self._lock:
            try:
                clients = self.client_repo.list_all()
            except StoreError as e:
                logger.error(f"Failed to load clients: {e}")
                return []
            return self._set_clients(self.settlement.settle(clients, now), now)

    def add_client(
        self,
        name: str,
        company: str,
        platform: Platform,
        current_balance: Decimal,
        daily_spend: Decimal,
        currency: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Client:
        """
        Register a new client account.

        Raises:
            StoreError: If the client could not be saved
        """
        now = now or _now()
        client = Client(
            name=name,
            company=company,
            platform=Platform(platform),
            current_balance=as_decimal(current_balance),
            daily_spend=as_decimal(daily_spend),
            currency=currency or self.config.advanced.default_currency,
            last_updated=now,
        )
        with self._lock:
            created = self.client_repo.create(client)
            self._set_clients([*self.clients, created], now)
        return created

    def update_balance(
        self,
        client_id: str,
        new_balance: Decimal,
        now: Optional[datetime] = None,
    ) -> Client:
        """
        Record an operator-entered balance; the client stops being synced.

        Raises:
            StoreError: If the balance could not be saved
            KeyError: If the client does not exist
        """
        now = now or _now()
        new_balance = as_decimal(new_balance)
        with self._lock:
            client = self._find(client_id)
            self.client_repo.set_manual_balance(client_id, new_balance, updated_at=now)
            updated = replace(
                client,
                current_balance=new_balance,
                last_updated=now,
                is_synced=False,
            )
            self._replace_client(updated, now)
        return updated

    def connect_ads(self, credential: str, auto_sync: bool = True) -> None:
        """Hold an ads platform credential and start periodic sync."""
        with self._lock:
            self.ads_credential = credential
            if not auto_sync:
                return
            if self._scheduler is None:
                self._scheduler = SyncScheduler(
                    self.sync_now, interval_seconds=self.config.sync.interval_seconds
                )
            self._scheduler.start()

    def disconnect_ads(self) -> None:
        """Drop the ads credential and cancel periodic sync."""
        scheduler = self._scheduler
        self._scheduler = None
        if scheduler is not None:
            scheduler.stop()
        with self._lock:
            self.ads_credential = None

    def sync_now(self, now: Optional[datetime] = None) -> list[Client]:
        """Reconcile linked clients against the ads platform."""
        now = now or _now()
        with self._lock:
            synced = self.sync.sync_all(self.clients, self.ads_credential, now)
            self._set_clients(synced, now)
            return list(self.clients)

    def list_ad_accounts(self) -> list[AdAccount]:
        """
        List ad accounts visible to the connected credential.

        Raises:
            SyncError: If no credential is held or the platform call fails
        """
        if not self.ads_credential:
            raise SyncError("Ads platform is not connected")
        return self.sync.list_accounts(self.ads_credential)

    def link_account(
        self,
        client_id: str,
        account: AdAccount,
        now: Optional[datetime] = None,
    ) -> Client:
        """Link a client to an ad account; see SyncOrchestrator.link_account."""
        now = now or _now()
        with self._lock:
            linked = self.sync.link_account(self._find(client_id), account, now)
            self._replace_client(linked, now)
        return linked

    def run_analysis(self) -> Optional[Insights]:
        """Narrative summary of the current snapshot, None if unavailable."""
        if self.insights is None:
            logger.info("Insights are not configured")
            return None
        return self.insights.summarize(self.clients)

    def portfolio_summary(self) -> PortfolioSummary:
        return summarize_portfolio(self.clients, self.predictions)

    def notification_history(self, limit: int = 50) -> list[NotificationLogEntry]:
        return self.log_repo.list_recent(limit)

    def close(self) -> None:
        self.disconnect_ads()

    def _set_clients(
        self,
        clients: Sequence[Client],
        now: datetime,
    ) -> list[NotificationLogEntry]:
        """Replace the snapshot, recompute forecasts and dispatch reminders."""
        self.clients = list(clients)
        self.predictions = self.engine.predict(self.clients, now)
        return self.dispatcher.dispatch(
            self.clients, self.predictions, self.calendar_available, now
        )

    def _replace_client(self, client: Client, now: datetime) -> None:
        if any(c.id == client.id for c in self.clients):
            clients = [client if c.id == client.id else c for c in self.clients]
        else:
            clients = [*self.clients, client]
        self._set_clients(clients, now)

    def _find(self, client_id: str) -> Client:
        for client in self.clients:
            if client.id == client_id:
                return client
        client = self.client_repo.get_by_id(client_id)
        if client is None:
            raise KeyError(f"Unknown client: {client_id}")
        return client
