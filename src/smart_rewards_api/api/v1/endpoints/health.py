from __future__ import annotations

from typing import Dict, Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from smart_rewards_api.core.settings import settings
from smart_rewards_api.db.session import get_session


router = APIRouter()


class ComponentStatus(BaseModel):
    status: Literal["ready", "starting", "disabled", "error", "degraded"]
    detail: str | None = Field(default=None, description="Human readable status detail")


class ReadinessPayload(BaseModel):
    status: Literal["ready", "degraded", "error"]
    components: Dict[str, ComponentStatus]


@router.get("/healthz", summary="Service health check")
async def service_health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz", summary="Service readiness", response_model=ReadinessPayload)
async def service_readiness(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> ReadinessPayload:
    components: Dict[str, ComponentStatus] = {}
    status: Literal["ready", "degraded", "error"] = "ready"

    try:
        await session.execute(text("SELECT 1"))
    except Exception as error:
        components["database"] = ComponentStatus(status="error", detail=f"Database unreachable ({error})")
        status = "error"
    else:
        components["database"] = ComponentStatus(status="ready")

    worker = getattr(request.app.state, "mukando_reward_worker", None)
    if settings.mukando_reward_worker_enabled and worker is not None:
        running = bool(getattr(worker, "is_running", False))
        detail = None if running else "Mukando reward worker not running"
        if not running and status == "ready":
            status = "degraded"
        components["mukando_rewards"] = ComponentStatus(status="ready" if running else "starting", detail=detail)
    else:
        components["mukando_rewards"] = ComponentStatus(
            status="disabled",
            detail="Mukando reward worker disabled via settings",
        )

    return ReadinessPayload(status=status, components=components)
