from fastapi import APIRouter

from carelink.api.appointments import router as appointments_router
from carelink.api.health import router as health_router
from carelink.api.vitals import router as vitals_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(appointments_router, prefix="/v1", tags=["appointments"])
router.include_router(vitals_router, prefix="/v1", tags=["vitals"])
