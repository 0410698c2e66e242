"""
Ads platform interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass
class AdAccount:
    """Ad account visible to the connected credential."""

    id: str
    name: str
    balance: Decimal
    currency: str
    status: int = 1


class AdsPlatform(ABC):
    """Source of live ad account balances."""

    @abstractmethod
    def list_accounts(self, credential: str) -> list[AdAccount]:
        """
        List ad accounts the credential can read.

        Raises:
            SyncError: If the platform could not be queried
        """
        pass

    @abstractmethod
    def get_balance(self, account_id: str, credential: str) -> Decimal:
        """
        Fetch the remaining balance of one account.

        Raises:
            SyncError: If the balance could not be fetched
        """
        pass
