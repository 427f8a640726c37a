from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List
from uuid import UUID

from smart_rewards_api.core.clock import ensure_utc
from smart_rewards_api.models.customer import Customer
from smart_rewards_api.models.transaction import Transaction

HIGH_VALUE_POINTS = 1000
NEW_CUSTOMER_DAYS = 30
AT_RISK_DAYS = 60
ENGAGED_TRANSACTIONS = 5
ENGAGED_WINDOW_DAYS = 30


class CustomerSegmenter:
    """Bucket a business's customers into marketing segments.

    A customer may land in several segments. Empty segments are omitted.
    """

    def __init__(self, customers: Iterable[Customer], transactions: Iterable[Transaction], *, now: datetime) -> None:
        self._customers = list(customers)
        self._now = now
        self._history: Dict[UUID, List[datetime]] = defaultdict(list)
        for tx in transactions:
            self._history[tx.customer_id].append(ensure_utc(tx.created_at))

    def segments(self) -> List[Dict[str, Any]]:
        now = self._now
        new_cutoff = now - timedelta(days=NEW_CUSTOMER_DAYS)
        risk_cutoff = now - timedelta(days=AT_RISK_DAYS)
        engaged_cutoff = now - timedelta(days=ENGAGED_WINDOW_DAYS)

        def joined_at(customer: Customer) -> datetime:
            return ensure_utc(customer.user.created_at if customer.user else customer.created_at)

        def last_seen(customer: Customer) -> datetime | None:
            history = self._history.get(customer.user_id)
            return max(history) if history else None

        buckets = [
            (
                "High-Value",
                "high",
                [c for c in self._customers if (c.loyalty_points or 0) >= HIGH_VALUE_POINTS],
                ["Create exclusive VIP offers", "Provide early access to new products"],
            ),
            (
                "New",
                "medium",
                [c for c in self._customers if joined_at(c) >= new_cutoff],
                ["Send a welcome offer", "Highlight how to earn the first badge"],
            ),
            (
                "At-Risk",
                "low",
                [c for c in self._customers if (last_seen(c) is None or last_seen(c) <= risk_cutoff)],
                ["Send a re-engagement campaign", "Offer a comeback bonus"],
            ),
            (
                "Engaged",
                "high",
                [
                    c
                    for c in self._customers
                    if sum(1 for moment in self._history.get(c.user_id, []) if moment >= engaged_cutoff)
                    >= ENGAGED_TRANSACTIONS
                ],
                ["Invite them into a Mukando group", "Reward streaks with bonus points"],
            ),
        ]

        segments: List[Dict[str, Any]] = []
        for name, engagement, members, recommendations in buckets:
            if not members:
                continue
            segments.append(
                {
                    "segmentName": name,
                    "customerCount": len(members),
                    "averagePoints": round(sum(c.loyalty_points or 0 for c in members) / len(members), 2),
                    "engagementLevel": engagement,
                    "recommendations": recommendations,
                }
            )
        return segments
