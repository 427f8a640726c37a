"""Mukando group endpoints for customers and businesses."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from smart_rewards_api.api.dependencies.session import (
    require_business,
    require_business_or_admin,
    require_customer,
    require_user,
)
from smart_rewards_api.api.errors import as_http_exception
from smart_rewards_api.db.session import get_session
from smart_rewards_api.models.mukando import MukandoGroup, MukandoGroupStatus
from smart_rewards_api.models.user import User, UserTypeEnum
from smart_rewards_api.services.customers import CustomerService
from smart_rewards_api.services.errors import RewardsError
from smart_rewards_api.services.mukando import (
    CustomerGroupView,
    GroupRequest,
    MukandoService,
    progress_percentage,
    spots_remaining,
)

router = APIRouter(prefix="/mukando", tags=["Mukando"])


class MemberResponse(BaseModel):
    customerId: UUID
    fullName: Optional[str]
    payoutOrder: int
    pointsContributed: int
    joinedAt: datetime


class GroupResponse(BaseModel):
    id: UUID
    businessId: UUID
    businessName: Optional[str] = None
    creatorId: UUID
    goalName: str
    description: Optional[str]
    goalPointsRequired: int
    contributionInterval: str
    termLength: int
    status: str
    maxMembers: Optional[int]
    discountRate: Optional[float]
    totalMukandoPoints: int
    totalLoyaltyPointsEarned: int
    currentPayoutTurn: int
    progressPercentage: int
    memberCount: int
    spotsRemaining: Optional[int]
    members: List[MemberResponse]
    createdAt: datetime
    approvedAt: Optional[datetime]
    completedAt: Optional[datetime]
    isCreator: Optional[bool] = None
    isMember: Optional[bool] = None
    myContribution: Optional[int] = None
    myPayoutOrder: Optional[int] = None


class CreateGroupRequest(BaseModel):
    businessId: Optional[UUID] = None
    goalName: Optional[str] = None
    description: Optional[str] = None
    goalPointsRequired: Optional[int] = None
    contributionInterval: Optional[str] = None
    termLength: Optional[int] = None


class ApproveGroupRequest(BaseModel):
    mukandoGroupId: Optional[UUID] = None
    maxMembers: Optional[int] = None
    discountRate: Optional[float] = None


class JoinGroupRequest(BaseModel):
    mukandoGroupId: Optional[UUID] = None


class JoinGroupResponse(BaseModel):
    group: GroupResponse
    payoutOrder: int
    pointsAwarded: int
    badgesAwarded: List[str]


class ContributeRequest(BaseModel):
    mukandoGroupId: Optional[UUID] = None
    pointsAmount: Optional[int] = None


class ContributeResponse(BaseModel):
    contributionId: UUID
    pointsContributed: int
    loyaltyPointsEarned: int
    remainingPoints: int
    progressPercentage: int
    group: GroupResponse


class PayoutResponse(BaseModel):
    groupId: UUID
    groupName: str
    recipientId: Optional[UUID]
    recipientName: Optional[str]
    pointsDistributed: int
    payoutTurn: int
    isCompleted: bool
    error: Optional[str] = None


class DistributionResponse(BaseModel):
    processed: int
    distributions: List[PayoutResponse]
    errors: List[PayoutResponse]


def serialize_group(group: MukandoGroup, view: CustomerGroupView | None = None) -> GroupResponse:
    members = sorted(group.members, key=lambda member: member.payout_order)
    return GroupResponse(
        id=group.id,
        businessId=group.business_id,
        businessName=group.business.business_name if group.business else None,
        creatorId=group.creator_id,
        goalName=group.goal_name,
        description=group.description,
        goalPointsRequired=group.goal_points_required,
        contributionInterval=group.contribution_interval.value,
        termLength=group.term_length,
        status=group.status.value,
        maxMembers=group.max_members,
        discountRate=group.discount_rate,
        totalMukandoPoints=group.total_mukando_points or 0,
        totalLoyaltyPointsEarned=group.total_loyalty_points_earned or 0,
        currentPayoutTurn=group.current_payout_turn or 0,
        progressPercentage=progress_percentage(group),
        memberCount=len(members),
        spotsRemaining=spots_remaining(group),
        members=[
            MemberResponse(
                customerId=member.customer_id,
                fullName=member.customer.full_name if member.customer else None,
                payoutOrder=member.payout_order,
                pointsContributed=member.points_contributed or 0,
                joinedAt=member.joined_at,
            )
            for member in members
        ],
        createdAt=group.created_at,
        approvedAt=group.approved_at,
        completedAt=group.completed_at,
        isCreator=view.is_creator if view else None,
        isMember=view.is_member if view else None,
        myContribution=view.customer_contribution if view else None,
        myPayoutOrder=view.payout_order if view else None,
    )


def parse_group_status(value: str | None) -> MukandoGroupStatus | None:
    if not value:
        return None
    try:
        return MukandoGroupStatus(value)
    except ValueError as error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported status: {value}") from error


def _require_group_id(group_id: UUID | None) -> UUID:
    if group_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Mukando group ID is required")
    return group_id


@router.post("/create-request", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group_request(
    payload: CreateGroupRequest,
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> GroupResponse:
    """Ask a business to host a new savings group; the requester becomes its creator."""

    if payload.businessId is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Business ID is required")
    try:
        await CustomerService(db).get_or_create_profile(current_user)
        group = await MukandoService(db).create_request(
            current_user.id,
            GroupRequest(
                business_id=payload.businessId,
                goal_name=payload.goalName or "",
                goal_points_required=payload.goalPointsRequired,
                contribution_interval=payload.contributionInterval or "",
                term_length=payload.termLength,
                description=payload.description,
            ),
        )
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return serialize_group(group)


@router.post("/approve", response_model=GroupResponse)
async def approve_group(
    payload: ApproveGroupRequest,
    current_user: User = Depends(require_business),
    db: AsyncSession = Depends(get_session),
) -> GroupResponse:
    group_id = _require_group_id(payload.mukandoGroupId)
    try:
        group = await MukandoService(db).approve(
            current_user.id,
            group_id,
            max_members=payload.maxMembers,
            discount_rate=payload.discountRate,
        )
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return serialize_group(group)


async def _join(group_id: UUID, current_user: User, db: AsyncSession) -> JoinGroupResponse:
    try:
        await CustomerService(db).get_or_create_profile(current_user)
        result = await MukandoService(db).join(current_user.id, group_id)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return JoinGroupResponse(
        group=serialize_group(result.group),
        payoutOrder=result.membership.payout_order,
        pointsAwarded=result.award.points_awarded,
        badgesAwarded=result.award.badges_awarded,
    )


@router.post("/join", response_model=JoinGroupResponse)
async def join_group(
    payload: JoinGroupRequest,
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> JoinGroupResponse:
    return await _join(_require_group_id(payload.mukandoGroupId), current_user, db)


@router.post("/{group_id}/join", response_model=JoinGroupResponse)
async def join_group_by_path(
    group_id: UUID,
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> JoinGroupResponse:
    return await _join(group_id, current_user, db)


@router.post("/contribute", response_model=ContributeResponse)
async def contribute(
    payload: ContributeRequest,
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> ContributeResponse:
    group_id = _require_group_id(payload.mukandoGroupId)
    try:
        result = await MukandoService(db).contribute(current_user.id, group_id, payload.pointsAmount)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return ContributeResponse(
        contributionId=result.contribution.id,
        pointsContributed=result.contribution.points_amount,
        loyaltyPointsEarned=result.loyalty_points_earned,
        remainingPoints=result.remaining_points,
        progressPercentage=result.progress_percentage,
        group=serialize_group(result.group),
    )


@router.get("/groups", response_model=List[GroupResponse])
async def list_groups(
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
) -> List[GroupResponse]:
    """Businesses see the groups they host; customers see groups they created or joined."""

    group_status = parse_group_status(status_filter)
    service = MukandoService(db)
    if current_user.user_type == UserTypeEnum.BUSINESS.value:
        groups = await service.business_groups(current_user.id, status=group_status)
        return [serialize_group(group) for group in groups]
    if current_user.user_type == UserTypeEnum.CUSTOMER.value:
        views = await service.customer_groups(current_user.id, status=group_status)
        return [serialize_group(view.group, view) for view in views]
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


@router.get("/available", response_model=List[GroupResponse])
async def list_available_groups(
    business_id: Optional[UUID] = Query(None, alias="businessId"),
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> List[GroupResponse]:
    groups = await MukandoService(db).available_groups(current_user.id, business_id=business_id)
    return [serialize_group(group) for group in groups]


@router.post("/distribute-rewards", response_model=DistributionResponse)
async def distribute_rewards(
    _: User = Depends(require_business_or_admin),
    db: AsyncSession = Depends(get_session),
) -> DistributionResponse:
    summary = await MukandoService(db).distribute_rewards()
    await db.commit()

    def to_response(record) -> PayoutResponse:
        return PayoutResponse(
            groupId=record.group_id,
            groupName=record.group_name,
            recipientId=record.recipient_id,
            recipientName=record.recipient_name,
            pointsDistributed=record.points_distributed,
            payoutTurn=record.payout_turn,
            isCompleted=record.is_completed,
            error=record.error,
        )

    return DistributionResponse(
        processed=summary.processed,
        distributions=[to_response(record) for record in summary.distributions],
        errors=[to_response(record) for record in summary.errors],
    )


@router.get("/distribute-rewards", response_model=List[GroupResponse])
async def list_pending_distributions(
    _: User = Depends(require_business_or_admin),
    db: AsyncSession = Depends(get_session),
) -> List[GroupResponse]:
    groups = await MukandoService(db).pending_distributions()
    return [serialize_group(group) for group in groups]
