"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from budgetwatch.database.connection import Database
from budgetwatch.database.models import Client, Platform
from budgetwatch.database.repository import ClientRepository, NotificationLogRepository
from budgetwatch.exceptions import CalendarError, SyncError
from budgetwatch.notifiers.base import CalendarNotifier
from budgetwatch.platforms.base import AdAccount, AdsPlatform

SAO_PAULO = ZoneInfo("America/Sao_Paulo")


class FakeCalendar(CalendarNotifier):
    """Records events instead of calling a calendar API."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events = []

    def create_event(self, summary, description, start, end):
        if self.fail:
            raise CalendarError("HTTP 403: Forbidden")
        self.events.append(
            {"summary": summary, "description": description, "start": start, "end": end}
        )
        return f"evt_{len(self.events)}"


class FakeAdsPlatform(AdsPlatform):
    """Serves balances from a dict; IDs in ``failing`` raise SyncError."""

    def __init__(self, balances=None, failing=(), accounts=None):
        self.balances = balances or {}
        self.failing = set(failing)
        self.accounts = accounts or []
        self.calls = []

    def list_accounts(self, credential):
        return list(self.accounts)

    def get_balance(self, account_id, credential):
        self.calls.append((account_id, credential))
        if account_id in self.failing:
            raise SyncError(f"Meta API error: 500 for {account_id}")
        return self.balances[account_id]


@pytest.fixture
def tz():
    """Timezone used for calendar-day boundaries in tests."""
    return SAO_PAULO


@pytest.fixture
def now():
    """Fixed reference instant: 2026-03-10 15:00 in Sao Paulo."""
    return datetime(2026, 3, 10, 15, 0, tzinfo=SAO_PAULO)


@pytest.fixture
def db():
    """In-memory database with schema."""
    db = Database(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def client_repo(db):
    return ClientRepository(db)


@pytest.fixture
def log_repo(db):
    return NotificationLogRepository(db)


@pytest.fixture
def make_client(now):
    """Factory for unsaved clients with sensible defaults."""

    def _make(**overrides):
        fields = {
            "name": "Marketing Team A",
            "company": "Nexus Tech",
            "platform": Platform.GOOGLE_ADS,
            "current_balance": Decimal("1250.50"),
            "daily_spend": Decimal("150.00"),
            "last_updated": now,
            "currency": "BRL",
        }
        fields.update(overrides)
        return Client(**fields)

    return _make


@pytest.fixture
def sample_account():
    """Ad account as returned by the ads platform."""
    return AdAccount(
        id="act_123456789",
        name="Nexus Main Account",
        balance=Decimal("2500.50"),
        currency="BRL",
    )


@pytest.fixture
def calendar():
    """Calendar that accepts every event."""
    return FakeCalendar()


@pytest.fixture
def failing_calendar():
    """Calendar that rejects every event."""
    return FakeCalendar(fail=True)


@pytest.fixture
def ads_platform():
    """Factory for fake ads platforms."""
    return FakeAdsPlatform
