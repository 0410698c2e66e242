"""
Daily settlement of manually maintained balances.
"""

import logging
from dataclasses import replace
from datetime import date, datetime, tzinfo
from typing import Optional, Sequence

from budgetwatch.database.models import Client
from budgetwatch.database.repository import ClientRepository
from budgetwatch.exceptions import StoreError

logger = logging.getLogger(__name__)


def local_date(value: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of ``value`` in ``tz`` (system local time when None)."""
    return value.astimezone(tz).date()


def elapsed_days(since: datetime, now: datetime, tz: Optional[tzinfo] = None) -> int:
    """Number of local calendar-day boundaries crossed between two instants."""
    return (local_date(now, tz) - local_date(since, tz)).days


class SettlementProcessor:
    """Deducts daily spend for days a client went without a balance update."""

    def __init__(self, client_repo: ClientRepository, tz: Optional[tzinfo] = None):
        """
        Initialize settlement processor.

        Args:
            client_repo: Store used to persist settled balances
            tz: Timezone for day boundaries, system local time when None
        """
        self.client_repo = client_repo
        self.tz = tz

    def settle(self, clients: Sequence[Client], now: datetime) -> list[Client]:
        """
        Apply elapsed-day deductions to every non-synced client.

        Args:
            clients: Current client snapshot
            now: Settlement instant

        Returns:
            New snapshot; clients whose write failed are left as they were
        """
        return [self._settle_client(client, now) for client in clients]

    def _settle_client(self, client: Client, now: datetime) -> Client:
        # Synced balances come straight from the ads platform
        if client.is_synced:
            return client

        days = elapsed_days(client.last_updated, now, self.tz)
        if days <= 0:
            return client

        deduction = client.daily_spend * days
        new_balance = client.current_balance - deduction
        logger.info(
            f"Settling {client.company}: {days} day(s) since last update, "
            f"deduction {deduction}, new balance {new_balance}"
        )

        try:
            self.client_repo.update_balance(client.id, new_balance, updated_at=now)
        except StoreError as e:
            logger.error(f"Failed to settle {client.company}: {e}")
            return client

        return replace(client, current_balance=new_balance, last_updated=now)
