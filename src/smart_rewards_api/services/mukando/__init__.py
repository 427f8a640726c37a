"""Mukando group service exports."""

from .mukando_service import (  # noqa: F401
    LOYALTY_POINTS_RATE,
    ContributionResult,
    CustomerGroupView,
    DistributionSummary,
    GroupRequest,
    JoinResult,
    MukandoService,
    PayoutRecord,
    progress_percentage,
    spots_remaining,
)
