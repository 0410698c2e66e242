"""
Meta Ads (Graph API) balance client.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import requests

from budgetwatch.exceptions import SyncError
from .base import AdAccount, AdsPlatform

logger = logging.getLogger(__name__)


def _cents_to_amount(cents: Any) -> Decimal:
    """Graph API reports amount_remaining in minor units."""
    return Decimal(str(cents)) / 100


class MetaAdsClient(AdsPlatform):
    """Reads ad account balances from the Meta Graph API."""

    GRAPH_URL = "https://graph.facebook.com"
    ACCOUNT_FIELDS = "id,name,amount_remaining,currency,account_status"

    def __init__(self, api_version: str = "v18.0", timeout: int = 10):
        self.api_version = api_version
        self.timeout = timeout

    @property
    def base_url(self) -> str:
        return f"{self.GRAPH_URL}/{self.api_version}"

    def list_accounts(self, credential: str) -> list[AdAccount]:
        """
        List ad accounts of the token's user.

        Args:
            credential: User access token with ads_read permission

        Returns:
            List of AdAccount, following pagination to the end

        Raises:
            SyncError: On HTTP errors or malformed responses
        """
        accounts = []
        url: Optional[str] = f"{self.base_url}/me/adaccounts"
        params: Optional[dict[str, str]] = {
            "fields": self.ACCOUNT_FIELDS,
            "access_token": credential,
        }

        while url:
            data = self._get(url, params)
            try:
                accounts.extend(self._parse_account(item) for item in data.get("data", []))
            except (KeyError, TypeError, InvalidOperation) as e:
                raise SyncError(f"Invalid ad account data from Meta: {e}") from e
            # The "next" link already carries the query string
            url = (data.get("paging") or {}).get("next")
            params = None

        return accounts

    def get_balance(self, account_id: str, credential: str) -> Decimal:
        """
        Fetch remaining balance of an ad account.

        Args:
            account_id: Ad account ID, e.g. "act_123456789"
            credential: User access token

        Returns:
            Remaining balance in major currency units

        Raises:
            SyncError: On HTTP errors or when the balance is missing
        """
        logger.debug(f"Fetching Meta balance for {account_id}")
        data = self._get(
            f"{self.base_url}/{account_id}",
            {"fields": "amount_remaining", "access_token": credential},
        )
        try:
            return _cents_to_amount(data["amount_remaining"])
        except (KeyError, TypeError, InvalidOperation) as e:
            raise SyncError(f"No balance returned for {account_id}") from e

    def _get(self, url: str, params: Optional[dict[str, str]]) -> dict[str, Any]:
        try:
            response = requests.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.Timeout as e:
            raise SyncError(f"Meta API timeout after {self.timeout}s") from e
        except requests.exceptions.HTTPError as e:
            raise SyncError(f"Meta API error: {e.response.status_code}") from e
        except requests.exceptions.RequestException as e:
            raise SyncError(f"Meta API connection error: {e}") from e
        except ValueError as e:
            raise SyncError(f"Invalid JSON from Meta API: {e}") from e

    def _parse_account(self, item: dict[str, Any]) -> AdAccount:
        return AdAccount(
            id=item["id"],
            name=item.get("name", item["id"]),
            balance=_cents_to_amount(item.get("amount_remaining", 0)),
            currency=item.get("currency", ""),
            status=int(item.get("account_status", 1)),
        )
