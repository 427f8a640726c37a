"""Business analytics for the admin insights dashboard."""

from .insight_service import BUSINESS_SUMMARY, InsightService
from .metrics import BusinessMetricsCalculator
from .recommendations import build_recommendations, performance_score
from .segments import CustomerSegmenter

__all__ = [
    "BUSINESS_SUMMARY",
    "BusinessMetricsCalculator",
    "CustomerSegmenter",
    "InsightService",
    "build_recommendations",
    "performance_score",
]
