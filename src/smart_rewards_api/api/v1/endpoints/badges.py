"""Badge catalogue endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from smart_rewards_api.api.dependencies.session import require_business_or_admin
from smart_rewards_api.db.session import get_session
from smart_rewards_api.models.badge import Badge
from smart_rewards_api.models.user import User
from smart_rewards_api.services.badges import BadgeEngine, BadgeStatus

router = APIRouter(prefix="/badges", tags=["Badges"])

BADGE_ACTIONS = ("initialize", "retroactive")


class BadgeResponse(BaseModel):
    id: UUID
    name: str
    description: str
    icon: str
    category: str
    criteria: Dict[str, Any]
    pointsReward: int
    earned: Optional[bool] = None
    earnedAt: Optional[datetime] = None


class BadgeActionRequest(BaseModel):
    action: Optional[str] = None


class BadgeActionResponse(BaseModel):
    action: str
    badgesInitialized: Optional[int] = None
    customersProcessed: Optional[int] = None
    badgesAwarded: Optional[int] = None
    failures: Optional[int] = None


def serialize_badge(badge: Badge, status: BadgeStatus | None = None) -> BadgeResponse:
    return BadgeResponse(
        id=badge.id,
        name=badge.name,
        description=badge.description,
        icon=badge.icon,
        category=badge.category.value,
        criteria=badge.criteria_json or {},
        pointsReward=badge.points_reward,
        earned=status.earned if status else None,
        earnedAt=status.earned_at if status else None,
    )


@router.get("", response_model=List[BadgeResponse])
async def list_badges(db: AsyncSession = Depends(get_session)) -> List[BadgeResponse]:
    badges = await BadgeEngine(db).list_active_badges()
    return [serialize_badge(badge) for badge in badges]


@router.post("", response_model=BadgeActionResponse)
async def run_badge_action(
    payload: BadgeActionRequest,
    _: User = Depends(require_business_or_admin),
    db: AsyncSession = Depends(get_session),
) -> BadgeActionResponse:
    """Seed the built-in catalogue or sweep every customer for missed badges."""

    if payload.action not in BADGE_ACTIONS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid action")

    engine = BadgeEngine(db)
    if payload.action == "initialize":
        count = await engine.initialize_badges()
        await db.commit()
        return BadgeActionResponse(action=payload.action, badgesInitialized=count)

    summary = await engine.award_retroactive_badges()
    return BadgeActionResponse(
        action=payload.action,
        customersProcessed=summary.customers_processed,
        badgesAwarded=summary.badges_awarded,
        failures=summary.failures,
    )
