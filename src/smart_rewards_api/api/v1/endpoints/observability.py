"""Observability endpoints for the rewards pipelines and Prometheus metrics."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from smart_rewards_api.api.dependencies.security import require_metrics_api_key
from smart_rewards_api.observability.rewards import get_rewards_store


router = APIRouter(prefix="/observability", tags=["Observability"])


@router.get(
    "/rewards",
    dependencies=[Depends(require_metrics_api_key)],
    summary="Rewards pipeline observability snapshot",
)
async def get_rewards_snapshot() -> dict[str, object]:
    """Retrieve aggregated points, badge, redemption and Mukando counters."""
    return get_rewards_store().snapshot().as_dict()


def _format_metric(name: str, description: str, value: int | float, labels: dict[str, str] | None = None) -> list[str]:
    label_fragment = ""
    if labels:
        formatted = ",".join(f'{key}="{val}"' for key, val in sorted(labels.items()))
        label_fragment = f"{{{formatted}}}"
    return [
        f"# HELP {name} {description}",
        f"# TYPE {name} gauge",
        f"{name}{label_fragment} {value}",
    ]


@router.get(
    "/prometheus",
    dependencies=[Depends(require_metrics_api_key)],
    summary="Prometheus-formatted observability metrics",
    response_class=PlainTextResponse,
)
async def get_prometheus_metrics() -> PlainTextResponse:
    snapshot = get_rewards_store().snapshot()
    lines: list[str] = []

    lines.extend(
        _format_metric(
            "smart_rewards_points_awards_total",
            "Activity point awards issued",
            snapshot.points.get("awards", 0),
        )
    )
    lines.extend(
        _format_metric(
            "smart_rewards_points_awarded_total",
            "Activity points credited to customers",
            snapshot.points.get("total_points", 0),
        )
    )
    for key, value in sorted(snapshot.points.items()):
        if key.startswith("activity:"):
            lines.extend(
                _format_metric(
                    "smart_rewards_points_activity_total",
                    "Activity point awards grouped by activity",
                    value,
                    labels={"activity": key.split(":", 1)[1]},
                )
            )

    lines.extend(
        _format_metric("smart_rewards_badges_awarded_total", "Badges awarded", snapshot.badges.get("awarded", 0))
    )
    lines.extend(
        _format_metric(
            "smart_rewards_badge_check_failures_total",
            "Badge checks that failed after a points award",
            snapshot.badges.get("check_failures", 0),
        )
    )

    for event, value in sorted(snapshot.redemptions.items()):
        lines.extend(
            _format_metric(
                "smart_rewards_redemption_events_total",
                "Offer redemption and verification outcomes",
                value,
                labels={"event": event},
            )
        )

    for event, value in sorted(snapshot.mukando.items()):
        lines.extend(
            _format_metric(
                "smart_rewards_mukando_events_total",
                "Mukando lifecycle events",
                value,
                labels={"event": event},
            )
        )

    return PlainTextResponse("\n".join(lines) + "\n")
