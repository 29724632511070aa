from __future__ import annotations

from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, status

from carelink.api.deps import get_services, unwrap_or_raise
from carelink.core.services import CareServices
from carelink.models.requests import (
    CancelRequest,
    CompleteRequest,
    DoctorActionRequest,
    RescheduleRequest,
    ScheduleRequest,
)

router = APIRouter()


@router.post("/appointments", status_code=status.HTTP_201_CREATED)
def schedule_appointment(
    payload: ScheduleRequest, services: CareServices = Depends(get_services)
) -> dict:
    """예약 생성

    Args:
        payload: 예약 생성 요청

    Returns:
        생성된 예약
    """
    result = services.scheduling.schedule_appointment(
        payload.patient_id,
        payload.doctor_id,
        payload.date_time,
        timedelta(minutes=payload.duration_minutes),
        payload.reason,
        payload.location,
    )
    return unwrap_or_raise(result).model_dump(mode="json")


@router.get("/appointments/{appointment_id}")
def get_appointment(
    appointment_id: str, services: CareServices = Depends(get_services)
) -> dict:
    result = services.scheduling.get_appointment(appointment_id)
    return unwrap_or_raise(result).model_dump(mode="json")


@router.post("/appointments/{appointment_id}/confirm")
def confirm_appointment(
    appointment_id: str,
    payload: DoctorActionRequest,
    services: CareServices = Depends(get_services),
) -> dict:
    result = services.scheduling.confirm_appointment(payload.doctor_id, appointment_id)
    return unwrap_or_raise(result).model_dump(mode="json")


@router.post("/appointments/{appointment_id}/cancel")
def cancel_appointment(
    appointment_id: str,
    payload: CancelRequest,
    services: CareServices = Depends(get_services),
) -> dict:
    """의사 또는 환자의 예약 취소

    Args:
        appointment_id: 예약 식별자
        payload: 취소 요청(doctor_id 또는 patient_id 중 하나)

    Returns:
        취소된 예약
    """
    if payload.doctor_id:
        result = services.scheduling.cancel_appointment_by_doctor(
            payload.doctor_id, appointment_id, payload.reason
        )
    elif payload.patient_id:
        result = services.scheduling.cancel_appointment_by_patient(
            payload.patient_id, appointment_id, payload.reason
        )
    else:
        raise HTTPException(
            status_code=422,
            detail={
                "code": "APT_VALID_001",
                "message": "doctor_id or patient_id required",
            },
        )
    return unwrap_or_raise(result).model_dump(mode="json")


@router.post("/appointments/{appointment_id}/reschedule")
def reschedule_appointment(
    appointment_id: str,
    payload: RescheduleRequest,
    services: CareServices = Depends(get_services),
) -> dict:
    result = services.scheduling.reschedule_appointment(
        appointment_id,
        payload.new_date_time,
        timedelta(minutes=payload.duration_minutes),
        payload.requested_by,
    )
    return unwrap_or_raise(result).model_dump(mode="json")


@router.post("/appointments/{appointment_id}/start")
def start_appointment(
    appointment_id: str,
    payload: DoctorActionRequest,
    services: CareServices = Depends(get_services),
) -> dict:
    result = services.scheduling.start_appointment(payload.doctor_id, appointment_id)
    return unwrap_or_raise(result).model_dump(mode="json")


@router.post("/appointments/{appointment_id}/complete")
def complete_appointment(
    appointment_id: str,
    payload: CompleteRequest,
    services: CareServices = Depends(get_services),
) -> dict:
    result = services.scheduling.complete_appointment(
        payload.doctor_id, appointment_id, payload.notes
    )
    return unwrap_or_raise(result).model_dump(mode="json")


@router.post("/appointments/{appointment_id}/no-show")
def mark_as_no_show(
    appointment_id: str,
    payload: DoctorActionRequest,
    services: CareServices = Depends(get_services),
) -> dict:
    result = services.scheduling.mark_as_no_show(payload.doctor_id, appointment_id)
    return unwrap_or_raise(result).model_dump(mode="json")


@router.get("/doctors/{doctor_id}/schedule")
def get_doctor_schedule(
    doctor_id: str, day: date, services: CareServices = Depends(get_services)
) -> list[dict]:
    """의사의 날짜별 확정 일정"""
    return [
        a.model_dump(mode="json")
        for a in services.scheduling.get_doctor_schedule(doctor_id, day)
    ]


@router.get("/doctors/{doctor_id}/active")
def get_doctors_active_appointments(
    doctor_id: str, services: CareServices = Depends(get_services)
) -> list[dict]:
    return [
        a.model_dump(mode="json")
        for a in services.scheduling.get_doctors_active_appointments(doctor_id)
    ]


@router.get("/doctors/{doctor_id}/pending")
def get_pending_appointments(
    doctor_id: str, services: CareServices = Depends(get_services)
) -> list[dict]:
    return [
        a.model_dump(mode="json")
        for a in services.scheduling.get_pending_appointments(doctor_id)
    ]


@router.get("/patients/{patient_id}/schedule")
def get_patient_schedule(
    patient_id: str, day: date, services: CareServices = Depends(get_services)
) -> list[dict]:
    return [
        a.model_dump(mode="json")
        for a in services.scheduling.get_patient_schedule(patient_id, day)
    ]
