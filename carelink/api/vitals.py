from __future__ import annotations

from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status

from carelink.api.deps import get_services, to_http_error
from carelink.core.errors import CareLinkError
from carelink.core.services import CareServices
from carelink.models.requests import RecordVitalsRequest
from carelink.models.vitals import VitalComponent

router = APIRouter()


@router.post("/patients/{patient_id}/vitals")
def record_vitals(
    patient_id: str,
    payload: RecordVitalsRequest,
    services: CareServices = Depends(get_services),
) -> dict:
    """오늘 날짜 생체신호 기록

    Args:
        patient_id: 환자 식별자
        payload: 측정값

    Returns:
        기록 여부와 위급 여부
    """
    try:
        vitals = payload.to_vitals(services.clock.now())
        recorded = services.vitals.record(patient_id, vitals)
    except CareLinkError as exc:
        raise to_http_error(exc) from exc
    return {
        "recorded": recorded,
        "critical": vitals.is_critical(),
        "blood_pressure_category": vitals.blood_pressure.category.value,
    }


@router.get("/patients/{patient_id}/vitals/latest")
def get_latest_vitals(
    patient_id: str, services: CareServices = Depends(get_services)
) -> dict:
    vitals = services.vitals.get_latest_vitals(patient_id)
    if vitals is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "APT_NOTFOUND_001", "message": "No vitals recorded"},
        )
    return vitals.model_dump(mode="json")


@router.get("/patients/{patient_id}/vitals")
def get_vitals_in_range(
    patient_id: str,
    start: date,
    end: date,
    services: CareServices = Depends(get_services),
) -> list[dict]:
    return [
        v.model_dump(mode="json")
        for v in services.vitals.get_vitals_in_range(patient_id, start, end)
    ]


@router.get("/patients/{patient_id}/vitals/dates")
def get_recorded_dates(
    patient_id: str, services: CareServices = Depends(get_services)
) -> list[date]:
    return services.vitals.get_recorded_dates(patient_id)


@router.get("/patients/{patient_id}/vitals/trends")
def calculate_trends(
    patient_id: str,
    component: VitalComponent,
    days: int = Query(default=7, ge=0),
    services: CareServices = Depends(get_services),
) -> dict:
    """항목별 추세 통계

    Args:
        patient_id: 환자 식별자
        component: 항목
        days: 조회 기간(일)

    Returns:
        평균/최소/최대/최신값
    """
    summary = services.trends.calculate_trends(
        patient_id, component, timedelta(days=days)
    )
    return summary.model_dump(mode="json")
