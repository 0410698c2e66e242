"""
Data model tests.
Tests for dataclass models and enums.
"""

from datetime import datetime
from decimal import Decimal

from budgetwatch.database.models import (
    Client,
    NotificationLogEntry,
    NotificationStatus,
    Platform,
)


class TestPlatform:
    """Test Platform enum."""

    def test_platform_values(self):
        """Should expose display names as values."""
        assert Platform.GOOGLE_ADS.value == "Google Ads"
        assert Platform.META_ADS.value == "Meta Ads"
        assert Platform.TIKTOK_ADS.value == "TikTok Ads"
        assert Platform.LINKEDIN_ADS.value == "LinkedIn Ads"

    def test_platform_from_value(self):
        """Should look up platform by display name."""
        assert Platform("Meta Ads") is Platform.META_ADS


class TestClientModel:
    """Test Client model."""

    def test_create_client(self, now):
        """Should create a client with defaults for optional fields."""
        client = Client(
            name="Social Lead",
            company="Modern Retail",
            platform=Platform.TIKTOK_ADS,
            current_balance=Decimal("50.00"),
            daily_spend=Decimal("45.00"),
            last_updated=now,
        )
        assert client.id is None
        assert client.currency == "BRL"
        assert client.meta_account_id is None
        assert client.is_synced is False

    def test_negative_balance_allowed(self, make_client):
        """Should accept a negative balance."""
        client = make_client(current_balance=Decimal("-120.00"))
        assert client.current_balance < 0


class TestNotificationLogEntryModel:
    """Test NotificationLogEntry model."""

    def test_create_entry(self):
        """Should default channel to calendar."""
        entry = NotificationLogEntry(
            client_id="abc",
            client_name="Nexus Tech",
            timestamp=datetime.now(),
            status=NotificationStatus.SENT,
            message="Event added",
        )
        assert entry.channel == "calendar"
        assert entry.id is None
        assert entry.status == NotificationStatus.SENT
