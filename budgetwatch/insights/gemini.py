"""
Narrative budget summaries from Gemini.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import requests

from budgetwatch.database.models import Client
from budgetwatch.exceptions import AnalysisError

logger = logging.getLogger(__name__)


@dataclass
class CriticalClientInsight:
    """Recommendation for a client that needs attention."""

    client_id: str
    reason: str
    action: str


@dataclass
class Insights:
    """Daily narrative summary."""

    summary: str
    critical_clients: list[CriticalClientInsight] = field(default_factory=list)


RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "summary": {"type": "STRING"},
        "criticalClients": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "clientId": {"type": "STRING"},
                    "reason": {"type": "STRING"},
                    "action": {"type": "STRING"},
                },
            },
        },
    },
}

PROMPT_TEMPLATE = """\
As a paid media specialist and budget manager, review the following client
balances and spending patterns.
Client data: {clients}

Tasks:
1. Identify clients that need immediate attention (balance runs out in < 3 days).
2. Give a short recommendation for each critical client.
3. Write a professional, encouraging "Daily Summary".
"""


def _client_payload(client: Client) -> dict[str, Any]:
    return {
        "id": client.id,
        "name": client.name,
        "company": client.company,
        "platform": client.platform.value,
        "currentBalance": str(client.current_balance),
        "dailySpend": str(client.daily_spend),
        "currency": client.currency,
        "lastUpdated": client.last_updated.isoformat(),
        "isSynced": client.is_synced,
    }


class InsightsClient:
    """Asks Gemini for a structured summary of the portfolio."""

    API_BASE = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-3-flash-preview",
        timeout: int = 30,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def summarize(self, clients: Sequence[Client]) -> Optional[Insights]:
        """
        Summarize client budgets.

        Args:
            clients: Current client snapshot

        Returns:
            Insights, or None when the summary could not be produced
        """
        try:
            return self._generate(clients)
        except AnalysisError as e:
            logger.error(f"Insight generation failed: {e}")
            return None

    def _generate(self, clients: Sequence[Client]) -> Insights:
        prompt = PROMPT_TEMPLATE.format(
            clients=json.dumps([_client_payload(c) for c in clients])
        )
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

        try:
            response = requests.post(
                f"{self.API_BASE}/models/{self.model}:generateContent",
                params={"key": self.api_key},
                json=body,
                timeout=self.timeout,
            )
            response.raise_for_status()
            text = response.json()["candidates"][0]["content"]["parts"][0]["text"]
            return self._parse(json.loads(text))
        except requests.exceptions.RequestException as e:
            raise AnalysisError(f"Gemini request failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise AnalysisError(f"Invalid Gemini response: {e}") from e

    def _parse(self, data: dict[str, Any]) -> Insights:
        return Insights(
            summary=data["summary"],
            critical_clients=[
                CriticalClientInsight(
                    client_id=str(item.get("clientId", "")),
                    reason=item.get("reason", ""),
                    action=item.get("action", ""),
                )
                for item in data.get("criticalClients") or []
            ],
        )
