"""Evaluation of badge criteria documents against customer statistics."""

from __future__ import annotations

import operator
from dataclasses import asdict, dataclass
from typing import Any, Callable, Mapping

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "gte": operator.ge,
    "lte": operator.le,
    "gt": operator.gt,
    "lt": operator.lt,
    "eq": operator.eq,
}


@dataclass
class CustomerStats:
    """Activity counters used by badge criteria, keyed by their camelCase names."""

    customer_id: str
    total_transactions: int = 0
    total_points_earned: int = 0
    current_loyalty_points: int = 0
    businesses_followed: int = 0
    mukando_groups_joined: int = 0
    mukando_groups_created: int = 0
    offers_redeemed: int = 0
    loyalty_tier: str = "Bronze"
    account_age: int = 0
    mukando_contributions: int = 0
    total_mukando_points_contributed: int = 0

    def as_criteria_fields(self) -> dict[str, Any]:
        return {_camel(key): value for key, value in asdict(self).items()}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def evaluate_criteria(criteria: Mapping[str, Any] | None, stats: CustomerStats | Mapping[str, Any]) -> bool:
    """Return True when ``stats`` satisfy the criteria document.

    Supported types are ``threshold`` (numeric comparison), ``achievement``
    (account creation or tier equality) and ``combination`` (all sub-criteria).
    """

    if not criteria:
        return False
    fields = stats.as_criteria_fields() if isinstance(stats, CustomerStats) else dict(stats)
    conditions = criteria.get("conditions") or {}
    kind = criteria.get("type")

    if kind == "threshold":
        compare = _OPERATORS.get(conditions.get("operator", ""))
        field_name = conditions.get("field")
        target = conditions.get("value")
        if compare is None or field_name not in fields or target is None:
            return False
        return bool(compare(fields[field_name], target))

    if kind == "achievement":
        field_name = conditions.get("field")
        if field_name == "account_created":
            return True
        if field_name == "loyaltyTier" and conditions.get("value"):
            return fields.get("loyaltyTier") == conditions["value"]
        return False

    if kind == "combination":
        sub_criteria = conditions.get("subCriteria")
        if sub_criteria is None:
            return False
        return all(evaluate_criteria(item, fields) for item in sub_criteria)

    return False
