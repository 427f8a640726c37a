"""Business insight generation and storage."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smart_rewards_api.core.clock import utcnow
from smart_rewards_api.models.audit import AiInsight
from smart_rewards_api.models.business import Business
from smart_rewards_api.services.errors import NotFoundError

from .metrics import BusinessMetricsCalculator
from .recommendations import build_recommendations, performance_score
from .segments import CustomerSegmenter

BUSINESS_SUMMARY = "business_summary"


class InsightService:
    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def generate(self, business_id: UUID, *, now: datetime | None = None) -> AiInsight:
        """Compute metrics, segments and recommendations and persist them as one insight."""

        if await self._db.get(Business, business_id) is None:
            raise NotFoundError("Business not found")
        moment = now or utcnow()

        calculator = BusinessMetricsCalculator(self._db, business_id, now=moment)
        metrics = await calculator.calculate()
        segments = CustomerSegmenter(
            await calculator.customers(), await calculator.transactions(), now=moment
        ).segments()

        insight = AiInsight(
            business_id=business_id,
            insight_type=BUSINESS_SUMMARY,
            insight_json={
                "generatedAt": moment.isoformat(),
                "performanceScore": performance_score(metrics),
                "metrics": metrics,
                "segments": segments,
                "recommendations": build_recommendations(metrics, segments),
            },
        )
        self._db.add(insight)
        await self._db.flush()
        logger.info(
            "Generated business insight",
            business_id=str(business_id),
            customers=metrics["totalCustomers"],
            segments=len(segments),
        )
        return insight

    async def latest(self, business_id: UUID) -> AiInsight | None:
        result = await self._db.execute(
            select(AiInsight)
            .where(AiInsight.business_id == business_id, AiInsight.insight_type == BUSINESS_SUMMARY)
            .order_by(AiInsight.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
