"""
Repository classes for CRUD operations.

Rows use snake_case columns with Decimal amounts stored as text and timestamps
stored as UTC ISO-8601. The mapping between rows and domain models lives in
``client_to_row``/``row_to_client`` and is the only place that knows the
column layout.
"""

import sqlite3
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from budgetwatch.exceptions import StoreError
from .connection import Database
from .models import Client, NotificationLogEntry, NotificationStatus, Platform


def _to_iso(value: datetime) -> str:
    """Serialize a timestamp as UTC ISO-8601."""
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def client_to_row(client: Client) -> dict[str, Any]:
    """Convert a Client into column values."""
    return {
        "id": client.id,
        "name": client.name,
        "company": client.company,
        "platform": Platform(client.platform).value,
        "current_balance": str(client.current_balance),
        "daily_spend": str(client.daily_spend),
        "currency": client.currency,
        "last_updated": _to_iso(client.last_updated),
        "meta_account_id": client.meta_account_id,
        "is_synced": 1 if client.is_synced else 0,
    }


def row_to_client(row) -> Client:
    """Convert a database row into a Client."""
    return Client(
        id=row["id"],
        name=row["name"],
        company=row["company"],
        platform=Platform(row["platform"]),
        current_balance=Decimal(row["current_balance"]),
        daily_spend=Decimal(row["daily_spend"]),
        currency=row["currency"],
        last_updated=datetime.fromisoformat(row["last_updated"]),
        meta_account_id=row["meta_account_id"],
        is_synced=bool(row["is_synced"]),
    )


class ClientRepository:
    """CRUD operations for clients."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, client: Client) -> Client:
        """Create a new client and assign its ID."""
        client.id = uuid.uuid4().hex
        row = client_to_row(client)
        try:
            self.db.connection.execute(
                """
                INSERT INTO clients
                (id, name, company, platform, current_balance, daily_spend,
                 currency, last_updated, meta_account_id, is_synced)
                VALUES
                (:id, :name, :company, :platform, :current_balance, :daily_spend,
                 :currency, :last_updated, :meta_account_id, :is_synced)
                """,
                row,
            )
            self.db.connection.commit()
        except sqlite3.Error as e:
            client.id = None
            raise StoreError(f"Failed to create client {client.company}: {e}") from e
        return client

    def get_by_id(self, client_id: str) -> Optional[Client]:
        """Get client by ID."""
        try:
            cursor = self.db.connection.execute(
                "SELECT * FROM clients WHERE id = ?", (client_id,)
            )
            row = cursor.fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read client {client_id}: {e}") from e
        if row is None:
            return None
        return row_to_client(row)

    def list_all(self) -> list[Client]:
        """List all clients."""
        try:
            cursor = self.db.connection.execute(
                "SELECT * FROM clients ORDER BY company, id"
            )
            return [row_to_client(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to list clients: {e}") from e

    def update_balance(
        self,
        client_id: str,
        new_balance: Decimal,
        updated_at: Optional[datetime] = None,
    ) -> None:
        """Store a new balance and refresh the last-updated timestamp."""
        updated_at = updated_at or datetime.now(timezone.utc)
        self._update(
            client_id,
            "current_balance = ?, last_updated = ?",
            (str(new_balance), _to_iso(updated_at)),
        )

    def set_manual_balance(
        self,
        client_id: str,
        new_balance: Decimal,
        updated_at: Optional[datetime] = None,
    ) -> None:
        """Store an operator-entered balance; the client is no longer synced."""
        updated_at = updated_at or datetime.now(timezone.utc)
        self._update(
            client_id,
            "current_balance = ?, last_updated = ?, is_synced = 0",
            (str(new_balance), _to_iso(updated_at)),
        )

    def link_account(
        self,
        client_id: str,
        account_id: str,
        balance: Decimal,
        updated_at: Optional[datetime] = None,
    ) -> None:
        """Link a client to an ads account and adopt its balance."""
        updated_at = updated_at or datetime.now(timezone.utc)
        self._update(
            client_id,
            "meta_account_id = ?, is_synced = 1, current_balance = ?, last_updated = ?",
            (account_id, str(balance), _to_iso(updated_at)),
        )

    def _update(self, client_id: str, assignments: str, params: tuple) -> None:
        try:
            cursor = self.db.connection.execute(
                f"UPDATE clients SET {assignments} WHERE id = ?",
                (*params, client_id),
            )
            self.db.connection.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to update client {client_id}: {e}") from e
        if cursor.rowcount == 0:
            raise StoreError(f"Client not found: {client_id}")


class NotificationLogRepository:
    """Append-only storage for notification log entries."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, entry: NotificationLogEntry) -> NotificationLogEntry:
        """Append a log entry."""
        entry.id = entry.id or uuid.uuid4().hex
        try:
            self.db.connection.execute(
                """
                INSERT INTO notification_log
                (id, client_id, client_name, channel, timestamp, status, message)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.id,
                    entry.client_id,
                    entry.client_name,
                    entry.channel,
                    _to_iso(entry.timestamp),
                    NotificationStatus(entry.status).value,
                    entry.message,
                ),
            )
            self.db.connection.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to record notification: {e}") from e
        return entry

    def list_recent(self, limit: int = 50) -> list[NotificationLogEntry]:
        """Get the most recent entries, newest first."""
        try:
            cursor = self.db.connection.execute(
                """
                SELECT * FROM notification_log
                ORDER BY timestamp DESC
                LIMIT ?
                """,
                (limit,),
            )
            return [self._row_to_entry(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read notification log: {e}") from e

    def list_since(self, since: datetime) -> list[NotificationLogEntry]:
        """Get entries at or after ``since``, oldest first."""
        try:
            cursor = self.db.connection.execute(
                """
                SELECT * FROM notification_log
                WHERE timestamp >= ?
                ORDER BY timestamp
                """,
                (_to_iso(since),),
            )
            return [self._row_to_entry(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read notification log: {e}") from e

    def _row_to_entry(self, row) -> NotificationLogEntry:
        """Convert database row to NotificationLogEntry."""
        return NotificationLogEntry(
            id=row["id"],
            client_id=row["client_id"],
            client_name=row["client_name"],
            channel=row["channel"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            status=NotificationStatus(row["status"]),
            message=row["message"],
        )
