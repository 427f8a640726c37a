from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence


def performance_score(metrics: Mapping[str, Any]) -> int:
    """Quick 0-100 health score for the insights summary card."""

    score = 50
    growth = metrics.get("customerGrowthRate", 0)
    if growth > 10:
        score += 20
    elif growth > 5:
        score += 10

    retention = metrics.get("retentionRate", 0)
    if retention > 70:
        score += 15
    elif retention < 40:
        score -= 15

    if metrics.get("mukandoEngagementRate", 0) > 20:
        score += 10

    total = max(metrics.get("totalCustomers", 0), 1)
    if metrics.get("monthlyActiveUsers", 0) / total > 0.5:
        score += 10
    return max(0, min(100, score))


def build_recommendations(metrics: Mapping[str, Any], segments: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    recommendations: List[Dict[str, Any]] = []

    def add(kind: str, priority: str, title: str, description: str) -> None:
        recommendations.append({"type": kind, "priority": priority, "title": title, "description": description})

    if metrics.get("totalCustomers", 0) == 0:
        add(
            "growth",
            "high",
            "Attract your first customers",
            "Publish an offer and a points rule so new customers have a reason to follow you.",
        )
        return recommendations

    engagement = metrics.get("mukandoEngagementRate", 0)
    if engagement < 20:
        add(
            "engagement",
            "high" if engagement < 10 else "medium",
            "Expand Mukando group programmes",
            f"Only {engagement:.1f}% of customers save in a Mukando group. Approve themed groups to lift participation.",
        )

    churn = metrics.get("churnRate", 0)
    if churn > 20:
        add(
            "retention",
            "high",
            "Run retention challenges",
            f"Churn sits at {churn:.1f}%. Reward repeat visits with streak bonuses.",
        )

    if metrics.get("redemptionRate", 0) < 10:
        add(
            "engagement",
            "medium",
            "Lower the first redemption threshold",
            "Few customers redeem. An entry-level offer makes the points balance feel valuable.",
        )

    if metrics.get("averageTransactionValue", 0) < 50 and metrics.get("totalTransactions", 0) > 0:
        add(
            "revenue",
            "medium",
            "Reward larger baskets",
            "Average spend is low. Add a milestone rule that pays bonus points above a spend threshold.",
        )

    by_name = {segment["segmentName"]: segment for segment in segments}
    if "At-Risk" in by_name:
        add(
            "retention",
            "high",
            "Win back inactive customers",
            f"{by_name['At-Risk']['customerCount']} customers have not visited in 60 days.",
        )
    if "High-Value" in by_name:
        add(
            "revenue",
            "low",
            "Launch a VIP offer",
            f"{by_name['High-Value']['customerCount']} customers hold 1000+ points and respond to exclusive perks.",
        )

    popular = metrics.get("mostPopularOffers") or []
    if popular and popular[0]["redemptions"] > 0:
        top = popular[0]
        add(
            "revenue",
            "low",
            f"Build on {top['offerName']}",
            f"Your most redeemed offer has {top['redemptions']} redemptions. A premium variant can capture more points.",
        )
    return recommendations
