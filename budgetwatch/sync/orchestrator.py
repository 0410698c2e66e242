"""
Reconciliation of linked clients against live ads platform balances.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence

from budgetwatch.database.models import Client
from budgetwatch.database.repository import ClientRepository
from budgetwatch.exceptions import StoreError, SyncError
from budgetwatch.platforms.base import AdAccount, AdsPlatform

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Pulls balances of API-linked clients from the ads platform."""

    def __init__(
        self,
        client_repo: ClientRepository,
        platform: AdsPlatform,
        max_workers: int = 5,
    ):
        self.client_repo = client_repo
        self.platform = platform
        self.max_workers = max_workers

    def list_accounts(self, credential: str) -> list[AdAccount]:
        """List ad accounts available for linking."""
        return self.platform.list_accounts(credential)

    def sync_all(
        self,
        clients: Sequence[Client],
        credential: Optional[str],
        now: Optional[datetime] = None,
    ) -> list[Client]:
        """
        Refresh balances of every synced, linked client.

        Fetches run concurrently; writes happen on the calling thread once all
        fetches are in. A failure for one client leaves that client unchanged.

        Args:
            clients: Current client snapshot
            credential: Ads platform access token; nothing is synced without one
            now: Sync instant, defaults to the current time

        Returns:
            New snapshot in input order
        """
        if not credential:
            return list(clients)

        now = now or datetime.now(timezone.utc)
        linked = {
            index: client
            for index, client in enumerate(clients)
            if client.meta_account_id and client.is_synced
        }
        if not linked:
            return list(clients)

        balances = self._fetch_balances(linked, credential)

        result = list(clients)
        for index, balance in balances.items():
            result[index] = self._apply_balance(linked[index], balance, now)
        return result

    def link_account(
        self,
        client: Client,
        account: AdAccount,
        now: Optional[datetime] = None,
    ) -> Client:
        """
        Link a client to an ad account and adopt its balance.

        From here on the client is synced and exempt from settlement.

        Raises:
            StoreError: If the link could not be persisted
        """
        now = now or datetime.now(timezone.utc)
        self.client_repo.link_account(client.id, account.id, account.balance, updated_at=now)
        logger.info(f"Linked {client.company} to ad account {account.id}")
        return replace(
            client,
            meta_account_id=account.id,
            is_synced=True,
            current_balance=account.balance,
            last_updated=now,
        )

    def _fetch_balances(
        self,
        linked: dict[int, Client],
        credential: str,
    ) -> dict[int, Decimal]:
        """Fetch balances in parallel, keyed by snapshot index."""
        balances = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(
                    self.platform.get_balance, client.meta_account_id, credential
                ): index
                for index, client in linked.items()
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    balances[index] = future.result()
                except SyncError as e:
                    logger.warning(f"Sync failed for {linked[index].company}: {e}")
                except Exception as e:
                    logger.error(
                        f"Unexpected sync error for {linked[index].company}: {e}"
                    )
        return balances

    def _apply_balance(self, client: Client, balance: Decimal, now: datetime) -> Client:
        if balance != client.current_balance:
            try:
                self.client_repo.update_balance(client.id, balance, updated_at=now)
            except StoreError as e:
                logger.error(f"Failed to store synced balance for {client.company}: {e}")
                return client
        return replace(client, current_balance=balance, last_updated=now)
