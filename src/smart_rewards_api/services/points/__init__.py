"""Points ledger exports."""

from .currency import (  # noqa: F401
    currency_to_points,
    format_currency,
    format_points_as_currency,
    points_display_text,
    points_to_currency,
)
from .ledger import (  # noqa: F401
    TIER_THRESHOLDS,
    TierProgress,
    credit_points,
    debit_points,
    next_tier,
    sync_tier,
    tier_for_points,
    tier_progress,
)
