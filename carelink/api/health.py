from fastapi import APIRouter, Depends

from carelink.api.deps import get_services
from carelink.core.services import CareServices

router = APIRouter()


@router.get("/health")
def health_check(services: CareServices = Depends(get_services)) -> dict:
    """서비스 상태와 리마인더 스케줄러 동작 여부를 반환"""
    return {
        "status": "정상",
        "version": services.settings.version,
        "environment": services.settings.environment,
        "reminders_running": services.reminders.scheduler.running,
    }
