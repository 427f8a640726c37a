from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Dict


@dataclass
class RewardsSnapshot:
    points: Dict[str, int]
    badges: Dict[str, int]
    redemptions: Dict[str, int]
    mukando: Dict[str, int]

    def as_dict(self) -> Dict[str, Dict[str, int]]:
        return {
            "points": dict(self.points),
            "badges": dict(self.badges),
            "redemptions": dict(self.redemptions),
            "mukando": dict(self.mukando),
        }


class RewardsObservabilityStore:
    """In-process counters for the points, badge, redemption and Mukando pipelines."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._points: Dict[str, int] = defaultdict(int)
        self._badges: Dict[str, int] = defaultdict(int)
        self._redemptions: Dict[str, int] = defaultdict(int)
        self._mukando: Dict[str, int] = defaultdict(int)

    def record_points_awarded(self, activity: str, points: int) -> None:
        with self._lock:
            self._points["awards"] += 1
            self._points["total_points"] += points
            self._points[f"activity:{activity.lower()}"] += 1

    def record_badge_awarded(self, badge_name: str) -> None:
        with self._lock:
            self._badges["awarded"] += 1
            self._badges[f"badge:{badge_name}"] += 1

    def record_badge_check_failure(self) -> None:
        with self._lock:
            self._badges["check_failures"] += 1

    def record_redemption(self, event: str) -> None:
        with self._lock:
            self._redemptions[event] += 1

    def record_mukando_event(self, event: str, count: int = 1) -> None:
        with self._lock:
            self._mukando[event] += count

    def snapshot(self) -> RewardsSnapshot:
        with self._lock:
            return RewardsSnapshot(
                points=dict(self._points),
                badges=dict(self._badges),
                redemptions=dict(self._redemptions),
                mukando=dict(self._mukando),
            )

    def reset(self) -> None:
        with self._lock:
            self._points.clear()
            self._badges.clear()
            self._redemptions.clear()
            self._mukando.clear()


_STORE = RewardsObservabilityStore()


def get_rewards_store() -> RewardsObservabilityStore:
    return _STORE


__all__ = ["RewardsObservabilityStore", "RewardsSnapshot", "get_rewards_store"]
