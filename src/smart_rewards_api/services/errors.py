"""Domain errors raised by the service layer.

Each error is a ``ValueError`` carrying the HTTP status the API layer should
respond with.
"""

from __future__ import annotations

from typing import Any


class RewardsError(ValueError):
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def detail(self) -> Any:
        return self.message


class ValidationFailedError(RewardsError):
    status_code = 400


class NotFoundError(RewardsError):
    status_code = 404


class PermissionDeniedError(RewardsError):
    status_code = 403


class InsufficientPointsError(RewardsError):
    status_code = 400

    def __init__(self, current_points: int, required_points: int, message: str = "Insufficient points") -> None:
        super().__init__(message)
        self.current_points = current_points
        self.required_points = required_points

    @property
    def detail(self) -> Any:
        return {
            "message": self.message,
            "currentPoints": self.current_points,
            "requiredPoints": self.required_points,
        }


__all__ = [
    "InsufficientPointsError",
    "NotFoundError",
    "PermissionDeniedError",
    "RewardsError",
    "ValidationFailedError",
]
