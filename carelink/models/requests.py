from datetime import datetime

from pydantic import BaseModel, Field

from carelink.models.vitals import BloodPressure, PainLevel, VitalSigns


class ScheduleRequest(BaseModel):
    """예약 생성 요청"""

    patient_id: str = Field(..., description="환자 식별자")
    doctor_id: str = Field(..., description="의사 식별자")
    date_time: datetime = Field(..., description="시작 시각")
    duration_minutes: int = Field(default=30, description="진료 시간(분)")
    reason: str | None = None
    location: str | None = None


class DoctorActionRequest(BaseModel):
    doctor_id: str = Field(..., description="의사 식별자")


class CompleteRequest(BaseModel):
    doctor_id: str = Field(..., description="의사 식별자")
    notes: str | None = Field(default=None, description="진료 메모")


class CancelRequest(BaseModel):
    """예약 취소 요청(의사 또는 환자 중 하나)"""

    doctor_id: str | None = None
    patient_id: str | None = None
    reason: str | None = None


class RescheduleRequest(BaseModel):
    new_date_time: datetime = Field(..., description="새 시작 시각")
    duration_minutes: int = Field(default=30, description="새 진료 시간(분)")
    requested_by: str | None = None


class RecordVitalsRequest(BaseModel):
    """생체신호 기록 요청"""

    timestamp: datetime | None = Field(default=None, description="측정 시각(기본 현재)")
    body_temperature: float
    pulse_rate: int
    respiratory_rate: int
    systolic: int
    diastolic: int
    oxygen_saturation: float
    height: float | None = None
    weight: float | None = None
    pain_level: PainLevel = PainLevel.NONE

    def to_vitals(self, default_timestamp: datetime) -> VitalSigns:
        """도메인 측정값으로 변환(범위 위반 시 ValidationError)"""
        return VitalSigns(
            timestamp=self.timestamp or default_timestamp,
            body_temperature=self.body_temperature,
            pulse_rate=self.pulse_rate,
            respiratory_rate=self.respiratory_rate,
            blood_pressure=BloodPressure(
                systolic=self.systolic, diastolic=self.diastolic
            ),
            oxygen_saturation=self.oxygen_saturation,
            height=self.height,
            weight=self.weight,
            pain_level=self.pain_level,
        )
