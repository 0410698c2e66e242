"""
Database layer tests.
Tests for SQLite connection, schema creation, and CRUD operations.
"""

import sqlite3
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from budgetwatch.database.connection import Database
from budgetwatch.database.models import NotificationLogEntry, NotificationStatus, Platform
from budgetwatch.database.repository import (
    ClientRepository,
    NotificationLogRepository,
    client_to_row,
    row_to_client,
)
from budgetwatch.exceptions import StoreError


class TestDatabaseConnection:
    """Test database connection and initialization."""

    def test_create_in_memory_database(self):
        """Should create an in-memory SQLite database."""
        db = Database(":memory:")
        assert db.connection is not None

    def test_create_file_database(self, tmp_path: Path):
        """Should create a file-based SQLite database in a new directory."""
        db_path = tmp_path / "nested" / "test.db"
        Database(str(db_path))
        assert db_path.exists()

    def test_initialize_schema(self, db):
        """Should create all required tables on initialization."""
        cursor = db.connection.cursor()
        cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
        tables = {row[0] for row in cursor.fetchall()}

        assert {"clients", "notification_log"}.issubset(tables)

    def test_initialize_is_repeatable(self, db):
        """Should not fail when schema already exists."""
        db.initialize()

    def test_close_connection(self):
        """Should properly close database connection."""
        db = Database(":memory:")
        db.close()
        with pytest.raises(sqlite3.ProgrammingError):
            db.connection.execute("SELECT 1")


class TestClientMapping:
    """Test row <-> Client mapping."""

    def test_client_to_row_uses_column_names(self, make_client):
        """Should produce snake_case columns with text amounts."""
        client = make_client(meta_account_id="act_1", is_synced=True)
        client.id = "abc"
        row = client_to_row(client)

        assert row["current_balance"] == "1250.50"
        assert row["daily_spend"] == "150.00"
        assert row["platform"] == "Google Ads"
        assert row["meta_account_id"] == "act_1"
        assert row["is_synced"] == 1
        assert row["last_updated"].endswith("+00:00")

    def test_row_to_client_restores_types(self, make_client):
        """Should restore Decimal, enum, bool and aware datetime."""
        client = make_client()
        client.id = "abc"
        restored = row_to_client(client_to_row(client))

        assert restored == client
        assert isinstance(restored.current_balance, Decimal)
        assert restored.platform is Platform.GOOGLE_ADS
        assert restored.last_updated.tzinfo is not None


class TestClientRepository:
    """Test Client CRUD operations."""

    def test_create_client(self, client_repo: ClientRepository, make_client):
        """Should create a client and assign a string ID."""
        created = client_repo.create(make_client())

        assert isinstance(created.id, str)
        assert created.id

    def test_get_client_by_id(self, client_repo: ClientRepository, make_client):
        """Should retrieve client by ID."""
        created = client_repo.create(make_client(company="Green Energy Co."))

        found = client_repo.get_by_id(created.id)
        assert found is not None
        assert found.company == "Green Energy Co."
        assert found.current_balance == Decimal("1250.50")

    def test_get_nonexistent_client(self, client_repo: ClientRepository):
        """Should return None for unknown ID."""
        assert client_repo.get_by_id("missing") is None

    def test_list_all_clients(self, client_repo: ClientRepository, make_client):
        """Should list all clients ordered by company."""
        client_repo.create(make_client(company="Varejo Moderno"))
        client_repo.create(make_client(company="Blue Chip Corp"))

        companies = [c.company for c in client_repo.list_all()]
        assert companies == ["Blue Chip Corp", "Varejo Moderno"]

    def test_update_balance(self, client_repo: ClientRepository, make_client, now):
        """Should store the new balance and timestamp."""
        created = client_repo.create(make_client())
        later = now + timedelta(days=2)

        client_repo.update_balance(created.id, Decimal("950.50"), updated_at=later)

        found = client_repo.get_by_id(created.id)
        assert found.current_balance == Decimal("950.50")
        assert found.last_updated == later

    def test_update_balance_keeps_sync_flag(self, client_repo: ClientRepository, make_client):
        """Should not touch the synced flag."""
        created = client_repo.create(make_client(meta_account_id="act_1", is_synced=True))

        client_repo.update_balance(created.id, Decimal("10"))

        assert client_repo.get_by_id(created.id).is_synced is True

    def test_update_unknown_client_raises(self, client_repo: ClientRepository):
        """Should raise StoreError when no row was updated."""
        with pytest.raises(StoreError):
            client_repo.update_balance("missing", Decimal("1"))

    def test_set_manual_balance_clears_sync(self, client_repo: ClientRepository, make_client):
        """Should mark the client as no longer synced."""
        created = client_repo.create(make_client(meta_account_id="act_1", is_synced=True))

        client_repo.set_manual_balance(created.id, Decimal("300"))

        found = client_repo.get_by_id(created.id)
        assert found.current_balance == Decimal("300")
        assert found.is_synced is False
        assert found.meta_account_id == "act_1"

    def test_link_account(self, client_repo: ClientRepository, make_client):
        """Should store account ID, sync flag and adopted balance."""
        created = client_repo.create(make_client())

        client_repo.link_account(created.id, "act_987654321", Decimal("450.00"))

        found = client_repo.get_by_id(created.id)
        assert found.meta_account_id == "act_987654321"
        assert found.is_synced is True
        assert found.current_balance == Decimal("450.00")

    def test_write_failure_raises_store_error(self, make_client):
        """Should wrap sqlite errors in StoreError."""
        db = MagicMock()
        db.connection.execute.side_effect = sqlite3.OperationalError("disk I/O error")
        repo = ClientRepository(db)

        with pytest.raises(StoreError):
            repo.update_balance("abc", Decimal("1"))

    def test_create_failure_leaves_id_unset(self, make_client):
        """Should not leave a phantom ID on a client that was not saved."""
        db = MagicMock()
        db.connection.execute.side_effect = sqlite3.OperationalError("database is locked")
        client = make_client()

        with pytest.raises(StoreError):
            ClientRepository(db).create(client)
        assert client.id is None


class TestNotificationLogRepository:
    """Test notification log storage."""

    @pytest.fixture
    def client_id(self, client_repo, make_client):
        return client_repo.create(make_client()).id

    def _entry(self, client_id, timestamp, status=NotificationStatus.SENT):
        return NotificationLogEntry(
            client_id=client_id,
            client_name="Nexus Tech",
            timestamp=timestamp,
            status=status,
            message="Event added",
        )

    def test_create_entry(self, log_repo: NotificationLogRepository, client_id, now):
        """Should assign an ID to new entries."""
        created = log_repo.create(self._entry(client_id, now))
        assert created.id is not None

    def test_list_recent_newest_first(self, log_repo, client_id, now):
        """Should return entries newest first."""
        log_repo.create(self._entry(client_id, now - timedelta(days=2)))
        log_repo.create(self._entry(client_id, now, NotificationStatus.FAILED))
        log_repo.create(self._entry(client_id, now - timedelta(days=1)))

        entries = log_repo.list_recent()
        assert [e.timestamp for e in entries] == [
            now,
            now - timedelta(days=1),
            now - timedelta(days=2),
        ]
        assert entries[0].status == NotificationStatus.FAILED

    def test_list_recent_limit(self, log_repo, client_id, now):
        """Should honour the limit."""
        for i in range(5):
            log_repo.create(self._entry(client_id, now - timedelta(hours=i)))

        assert len(log_repo.list_recent(limit=3)) == 3

    def test_list_since(self, log_repo, client_id, now):
        """Should only return entries at or after the cutoff."""
        log_repo.create(self._entry(client_id, now - timedelta(days=1)))
        log_repo.create(self._entry(client_id, now))

        entries = log_repo.list_since(now - timedelta(hours=1))
        assert len(entries) == 1
        assert entries[0].timestamp == now

    def test_list_since_compares_across_offsets(self, log_repo, client_id, now):
        """Should compare instants, not local wall-clock strings."""
        log_repo.create(self._entry(client_id, now))

        cutoff = (now - timedelta(minutes=1)).astimezone(timezone.utc)
        assert len(log_repo.list_since(cutoff)) == 1
        assert log_repo.list_since(now + timedelta(minutes=1)) == []

    def test_entry_timestamp_roundtrip(self, log_repo, client_id):
        """Should preserve the instant of the entry."""
        ts = datetime(2026, 3, 10, 23, 30, tzinfo=timezone.utc)
        log_repo.create(self._entry(client_id, ts))

        assert log_repo.list_recent()[0].timestamp == ts
