from fastapi import APIRouter

from .endpoints import (
    admin,
    auth,
    badges,
    businesses,
    customers,
    health,
    loyalty,
    mukando,
    observability,
    offers,
    uploads,
)

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["Health"])
router.include_router(auth.router)
router.include_router(customers.router)
router.include_router(badges.router)
router.include_router(businesses.router)
router.include_router(offers.router)
router.include_router(loyalty.router)
router.include_router(mukando.router)
router.include_router(admin.router)
router.include_router(uploads.router)
router.include_router(observability.router)
