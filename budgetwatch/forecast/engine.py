"""
Budget depletion forecasting.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence

from budgetwatch.database.models import Client

__all__ = [
    "HealthStatus",
    "PredictionResult",
    "PredictionEngine",
    "PortfolioSummary",
    "summarize_portfolio",
    "as_decimal",
]


def as_decimal(value) -> Decimal:
    """Convert an amount to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _depletion_date(now: datetime, days_remaining: int) -> datetime:
    try:
        return now + timedelta(days=days_remaining)
    except OverflowError:
        # Runway beyond the representable calendar
        limit = datetime.max if days_remaining > 0 else datetime.min
        return limit.replace(tzinfo=now.tzinfo)


class HealthStatus(str, Enum):
    """Budget health tier."""

    HEALTHY = "HEALTHY"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class PredictionResult:
    """Depletion forecast for one client."""

    client_id: str
    days_remaining: int
    depletion_date: datetime
    status: HealthStatus
    ratio: Decimal  # unfloored balance / daily spend, used for tiering


class PredictionEngine:
    """Projects runway from a constant daily burn rate."""

    def __init__(
        self,
        critical_days: int = 3,
        warning_days: int = 7,
        no_spend_days: int = 999,
    ):
        """
        Initialize prediction engine.

        Args:
            critical_days: Runway at or below which a client is CRITICAL
            warning_days: Runway at or below which a client is WARNING
            no_spend_days: Runway reported for clients with no daily spend
        """
        self.critical_days = Decimal(critical_days)
        self.warning_days = Decimal(warning_days)
        self.no_spend_days = Decimal(no_spend_days)

    def predict(
        self,
        clients: Sequence[Client],
        now: Optional[datetime] = None,
    ) -> list[PredictionResult]:
        """
        Forecast depletion for every client.

        Args:
            clients: Current client snapshot
            now: Reference instant, defaults to the current time

        Returns:
            One PredictionResult per client, in input order
        """
        now = now or datetime.now(timezone.utc)
        return [self.predict_client(client, now) for client in clients]

    def predict_client(self, client: Client, now: datetime) -> PredictionResult:
        """Forecast depletion for a single client."""
        balance = as_decimal(client.current_balance)
        daily_spend = as_decimal(client.daily_spend)
        if daily_spend > 0:
            ratio = balance / daily_spend
        else:
            ratio = self.no_spend_days

        days_remaining = math.floor(ratio)
        return PredictionResult(
            client_id=client.id,
            days_remaining=days_remaining,
            depletion_date=_depletion_date(now, days_remaining),
            status=self.classify(ratio),
            ratio=ratio,
        )

    def classify(self, ratio: Decimal) -> HealthStatus:
        """Map unfloored runway to a health tier."""
        if ratio <= self.critical_days:
            return HealthStatus.CRITICAL
        elif ratio <= self.warning_days:
            return HealthStatus.WARNING
        return HealthStatus.HEALTHY


@dataclass(frozen=True)
class PortfolioSummary:
    """Totals across all managed accounts."""

    total_balance: Decimal
    total_daily_spend: Decimal
    critical_count: int
    warning_count: int
    healthy_count: int


def summarize_portfolio(
    clients: Sequence[Client],
    predictions: Sequence[PredictionResult],
) -> PortfolioSummary:
    """Aggregate balances, burn and tier counts."""
    statuses = [p.status for p in predictions]
    return PortfolioSummary(
        total_balance=sum(
            (as_decimal(c.current_balance) for c in clients), Decimal("0")
        ),
        total_daily_spend=sum(
            (as_decimal(c.daily_spend) for c in clients), Decimal("0")
        ),
        critical_count=statuses.count(HealthStatus.CRITICAL),
        warning_count=statuses.count(HealthStatus.WARNING),
        healthy_count=statuses.count(HealthStatus.HEALTHY),
    )
