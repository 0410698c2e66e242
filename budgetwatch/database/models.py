"""
Data models for BudgetWatch.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class Platform(str, Enum):
    """Advertising platform a client account runs on."""

    GOOGLE_ADS = "Google Ads"
    META_ADS = "Meta Ads"
    TIKTOK_ADS = "TikTok Ads"
    LINKEDIN_ADS = "LinkedIn Ads"


class NotificationStatus(str, Enum):
    """Outcome of a reminder attempt."""

    SENT = "SENT"
    FAILED = "FAILED"


@dataclass
class Client:
    """Advertising account under management."""

    name: str  # account manager
    company: str
    platform: Platform
    current_balance: Decimal
    daily_spend: Decimal
    last_updated: datetime
    currency: str = "BRL"
    id: Optional[str] = None
    meta_account_id: Optional[str] = None  # external ads account reference
    is_synced: bool = False  # balance sourced live from the ads platform


@dataclass
class NotificationLogEntry:
    """Record of a dispatched or failed reminder."""

    client_id: str
    client_name: str
    timestamp: datetime
    status: NotificationStatus
    message: str
    channel: str = "calendar"
    id: Optional[str] = None
