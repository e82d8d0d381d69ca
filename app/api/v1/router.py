from fastapi import APIRouter

from app.api.v1.endpoints import distribution, health

router = APIRouter(prefix="/api/v1")

router.include_router(distribution.router)
router.include_router(health.router)
