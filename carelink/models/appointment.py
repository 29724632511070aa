from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field, ValidationInfo, computed_field, field_validator

from carelink.core.errors import StateError
from carelink.utils.validation import (
    require_identifier,
    require_min_duration,
    text_or_default,
)

DEFAULT_REASON = "Routine checkup"
DEFAULT_LOCATION = "Clinic"
DEFAULT_CANCELLATION_REASON = "No reason provided"
MIN_DURATION = timedelta(minutes=15)


class AppointmentStatus(str, Enum):
    """예약 생명주기 상태"""

    SCHEDULED = "SCHEDULED"
    RESCHEDULED = "RESCHEDULED"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.RESCHEDULED,
        }
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {
            AppointmentStatus.IN_PROGRESS,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
            AppointmentStatus.RESCHEDULED,
        }
    ),
    AppointmentStatus.IN_PROGRESS: frozenset({AppointmentStatus.COMPLETED}),
    AppointmentStatus.RESCHEDULED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def new_appointment_id() -> str:
    """불투명 예약 식별자 생성"""
    return f"APT-{uuid.uuid4().hex[:8]}"


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """반개구간 [start, end) 두 개의 겹침 여부"""
    return start_a < end_b and start_b < end_a


class Appointment(BaseModel):
    """환자와 의사 간 진료 예약"""

    id: str = Field(default_factory=new_appointment_id, description="예약 식별자")
    patient_id: str = Field(..., description="환자 식별자")
    doctor_id: str = Field(..., description="의사 식별자")
    date_time: datetime = Field(..., description="시작 시각")
    duration: timedelta = Field(..., description="진료 시간")
    reason: str = Field(default=DEFAULT_REASON, description="방문 사유")
    location: str = Field(default=DEFAULT_LOCATION, description="진료 장소")
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    cancellation_reason: str | None = None
    status_note: str | None = Field(default=None, description="마지막 상태 전이 메모")
    clinical_notes: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator("patient_id", "doctor_id", mode="before")
    @classmethod
    def _validate_identifier(cls, value: object, info: ValidationInfo) -> str:
        return require_identifier(value, info.field_name)

    @field_validator("reason", mode="before")
    @classmethod
    def _default_reason(cls, value: object) -> str:
        return text_or_default(value, DEFAULT_REASON)

    @field_validator("location", mode="before")
    @classmethod
    def _default_location(cls, value: object) -> str:
        return text_or_default(value, DEFAULT_LOCATION)

    @field_validator("duration")
    @classmethod
    def _validate_duration(cls, value: timedelta) -> timedelta:
        return require_min_duration(value, MIN_DURATION)

    @computed_field
    @property
    def end_time(self) -> datetime:
        return self.date_time + self.duration

    def is_active(self) -> bool:
        return self.status not in TERMINAL_STATUSES

    def can_transition(self, new_status: AppointmentStatus) -> bool:
        return new_status in ALLOWED_TRANSITIONS[self.status]

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return intervals_overlap(start, end, self.date_time, self.end_time)

    def ensure_transition(self, new_status: AppointmentStatus) -> None:
        """전이 가능 여부 검사

        Raises:
            StateError: 종료 상태이거나 허용되지 않는 전이인 경우
        """
        if not self.is_active():
            raise StateError(f"Cannot change status from {self.status.value}")
        if not self.can_transition(new_status):
            raise StateError(
                f"Cannot change status from {self.status.value} to {new_status.value}"
            )

    def update_status(
        self,
        new_status: AppointmentStatus,
        note: str | None = None,
        now: datetime | None = None,
    ) -> None:
        """상태 전이를 적용

        Args:
            new_status: 전이할 상태
            note: 전이 사유(취소/노쇼 시 취소 사유로 기록)
            now: 수정 시각

        Raises:
            StateError: 종료 상태이거나 허용되지 않는 전이인 경우
        """
        self.ensure_transition(new_status)
        if new_status in {AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}:
            self.cancellation_reason = text_or_default(
                note, DEFAULT_CANCELLATION_REASON
            )
        self.status_note = note
        self.status = new_status
        self.touch(now)

    def touch(self, now: datetime | None = None) -> None:
        self.updated_at = now or datetime.now()
