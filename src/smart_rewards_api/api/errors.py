from fastapi import HTTPException

from smart_rewards_api.services.errors import RewardsError


def as_http_exception(error: RewardsError) -> HTTPException:
    """Translate a service-layer error into the response the client sees."""

    return HTTPException(status_code=error.status_code, detail=error.detail)
