from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, timedelta
from typing import Callable, Iterator, TypeVar

from pydantic import ValidationError as PydanticValidationError

from carelink.core.appointment_store import AppointmentStore
from carelink.core.clock import Clock
from carelink.core.directory import ClinicDirectory
from carelink.core.errors import (
    CareLinkError,
    ConflictError,
    NotFoundError,
    OwnershipError,
    StateError,
    ValidationError,
)
from carelink.core.logger import log_event
from carelink.core.reminders import ReminderScheduler
from carelink.core.result import Result
from carelink.core.telemetry import TelemetryStore
from carelink.models.appointment import Appointment, AppointmentStatus
from carelink.utils.locks import KeyedLocks
from carelink.utils.validation import require_identifier, text_or_default

T = TypeVar("T")


class SchedulingEngine:
    """예약 생명주기와 충돌 검사를 담당

    AppointmentStore를 변경하는 유일한 컴포넌트. 의사별 락 안에서
    충돌 검사와 반영을 함께 수행하므로 같은 의사에 대한 동시 예약이
    모두 충돌 검사를 통과하는 일은 없다. 모든 공개 연산은 Result를 반환한다.
    """

    def __init__(
        self,
        store: AppointmentStore,
        reminders: ReminderScheduler,
        directory: ClinicDirectory,
        clock: Clock,
        telemetry: TelemetryStore | None = None,
    ) -> None:
        self._store = store
        self._reminders = reminders
        self._directory = directory
        self._clock = clock
        self._telemetry = telemetry
        self._doctor_locks = KeyedLocks()

    # ---- 생명주기 ----

    def schedule_appointment(
        self,
        patient_id: str,
        doctor_id: str,
        date_time: datetime,
        duration: timedelta,
        reason: str | None = None,
        location: str | None = None,
    ) -> Result[Appointment]:
        """새 예약을 SCHEDULED 상태로 생성

        Args:
            patient_id: 환자 식별자
            doctor_id: 의사 식별자
            date_time: 시작 시각
            duration: 진료 시간(15분 이상)
            reason: 방문 사유
            location: 진료 장소

        Returns:
            생성된 예약 또는 ValidationError/NotFoundError/ConflictError
        """
        return self._attempt(
            "schedule",
            str(doctor_id),
            lambda: self._schedule(
                patient_id, doctor_id, date_time, duration, reason, location
            ),
        )

    def confirm_appointment(
        self, doctor_id: str, appointment_id: str
    ) -> Result[Appointment]:
        """SCHEDULED -> CONFIRMED, 미확정 인덱스에서 일정 인덱스로 이동"""
        return self._attempt(
            "confirm", appointment_id, lambda: self._confirm(doctor_id, appointment_id)
        )

    def cancel_appointment_by_doctor(
        self, doctor_id: str, appointment_id: str, reason: str | None = None
    ) -> Result[Appointment]:
        return self._attempt(
            "cancel",
            appointment_id,
            lambda: self._cancel(appointment_id, reason, doctor_id=doctor_id),
        )

    def cancel_appointment_by_patient(
        self, patient_id: str, appointment_id: str, reason: str | None = None
    ) -> Result[Appointment]:
        return self._attempt(
            "cancel",
            appointment_id,
            lambda: self._cancel(appointment_id, reason, patient_id=patient_id),
        )

    def reschedule_appointment(
        self,
        appointment_id: str,
        new_date_time: datetime,
        new_duration: timedelta,
        requested_by: str | None = None,
    ) -> Result[Appointment]:
        """새 예약을 만들고 기존 예약을 RESCHEDULED로 표시

        Args:
            appointment_id: 기존 예약 식별자
            new_date_time: 새 시작 시각
            new_duration: 새 진료 시간
            requested_by: 요청자

        Returns:
            새 예약 또는 StateError/ConflictError/ValidationError
        """
        return self._attempt(
            "reschedule",
            appointment_id,
            lambda: self._reschedule(
                appointment_id, new_date_time, new_duration, requested_by
            ),
        )

    def start_appointment(
        self, doctor_id: str, appointment_id: str
    ) -> Result[Appointment]:
        return self._attempt(
            "start", appointment_id, lambda: self._start(doctor_id, appointment_id)
        )

    def complete_appointment(
        self, doctor_id: str, appointment_id: str, notes: str | None = None
    ) -> Result[Appointment]:
        return self._attempt(
            "complete",
            appointment_id,
            lambda: self._complete(doctor_id, appointment_id, notes),
        )

    def mark_as_no_show(
        self, doctor_id: str, appointment_id: str
    ) -> Result[Appointment]:
        return self._attempt(
            "no_show", appointment_id, lambda: self._no_show(doctor_id, appointment_id)
        )

    # ---- 조회 ----

    def get_appointment(self, appointment_id: str) -> Result[Appointment]:
        return self._attempt(
            "lookup", appointment_id, lambda: self._require(appointment_id), log=False
        )

    def get_doctor_schedule(self, doctor_id: str, day: date) -> list[Appointment]:
        """의사의 해당 날짜 확정 일정(시작 시각 오름차순)"""
        return self._store.doctor_schedule_for_date(doctor_id, day)

    def get_patient_schedule(self, patient_id: str, day: date) -> list[Appointment]:
        return self._store.patient_schedule_for_date(patient_id, day)

    def get_doctors_active_appointments(self, doctor_id: str) -> list[Appointment]:
        """진행 중(IN_PROGRESS) 예약 목록"""
        return sorted(
            (
                a
                for a in self._store.doctor_appointments(doctor_id)
                if a.status == AppointmentStatus.IN_PROGRESS
            ),
            key=lambda a: a.date_time,
        )

    def get_pending_appointments(self, doctor_id: str) -> list[Appointment]:
        return sorted(self._store.pending_for(doctor_id), key=lambda a: a.date_time)

    # ---- 내부 구현 ----

    def _schedule(
        self,
        patient_id: str,
        doctor_id: str,
        date_time: datetime,
        duration: timedelta,
        reason: str | None,
        location: str | None,
    ) -> Appointment:
        patient_id = require_identifier(patient_id, "patient_id")
        doctor_id = require_identifier(doctor_id, "doctor_id")
        self._directory.require_patient(patient_id)
        self._directory.require_doctor(doctor_id)
        with self._doctor_locks.hold(doctor_id):
            appointment = self._build(
                patient_id=patient_id,
                doctor_id=doctor_id,
                date_time=date_time,
                duration=duration,
                reason=reason,
                location=location,
            )
            self._ensure_no_conflict(
                doctor_id, appointment.date_time, appointment.end_time
            )
            self._store.add(appointment)
            self._store.add_pending(appointment)
        self._reminders.schedule_reminders(appointment)
        self._reminders.notify_status_change(appointment, AppointmentStatus.SCHEDULED)
        self._log("appointment_scheduled", appointment, "예약 생성")
        return appointment

    def _confirm(self, doctor_id: str, appointment_id: str) -> Appointment:
        with self._locked(appointment_id) as appointment:
            self._check_doctor(appointment, doctor_id)
            appointment.ensure_transition(AppointmentStatus.CONFIRMED)
            self._ensure_no_conflict(
                appointment.doctor_id,
                appointment.date_time,
                appointment.end_time,
                exclude_id=appointment.id,
            )
            appointment.update_status(
                AppointmentStatus.CONFIRMED, "Doctor confirmed", self._clock.now()
            )
            self._store.remove_pending(appointment.doctor_id, appointment.id)
            self._store.add_to_schedules(appointment)
        self._reminders.notify_status_change(appointment, AppointmentStatus.CONFIRMED)
        self._log("appointment_confirmed", appointment, "예약 확정")
        return appointment

    def _cancel(
        self,
        appointment_id: str,
        reason: str | None,
        doctor_id: str | None = None,
        patient_id: str | None = None,
    ) -> Appointment:
        with self._locked(appointment_id) as appointment:
            if doctor_id is not None:
                self._check_doctor(appointment, doctor_id)
            if patient_id is not None and appointment.patient_id != patient_id:
                raise OwnershipError("Appointment doesn't belong to patient")
            if not appointment.is_active():
                raise StateError("Cannot cancel inactive appointment")
            appointment.update_status(
                AppointmentStatus.CANCELLED, reason, self._clock.now()
            )
            self._release(appointment)
        self._reminders.notify_status_change(appointment, AppointmentStatus.CANCELLED)
        self._log("appointment_cancelled", appointment, "예약 취소")
        return appointment

    def _reschedule(
        self,
        appointment_id: str,
        new_date_time: datetime,
        new_duration: timedelta,
        requested_by: str | None,
    ) -> Appointment:
        requester = text_or_default(requested_by, "unknown")
        with self._locked(appointment_id) as original:
            if original.status == AppointmentStatus.CANCELLED:
                raise StateError("Cannot reschedule cancelled appointment")
            original.ensure_transition(AppointmentStatus.RESCHEDULED)
            rescheduled = self._build(
                patient_id=original.patient_id,
                doctor_id=original.doctor_id,
                date_time=new_date_time,
                duration=new_duration,
                reason=(
                    f"{original.reason} "
                    f"(Rescheduled from {original.date_time.isoformat()})"
                ),
                location=original.location,
            )
            self._ensure_no_conflict(
                original.doctor_id,
                rescheduled.date_time,
                rescheduled.end_time,
                exclude_id=original.id,
            )
            original.update_status(
                AppointmentStatus.RESCHEDULED,
                f"Rescheduled to {rescheduled.date_time.isoformat()} by {requester}",
                self._clock.now(),
            )
            self._release(original)
            self._store.add(rescheduled)
            self._store.add_pending(rescheduled)
        self._reminders.schedule_reminders(rescheduled)
        self._reminders.notify_status_change(
            rescheduled, AppointmentStatus.RESCHEDULED
        )
        self._log("appointment_rescheduled", original, f"재예약: {rescheduled.id}")
        return rescheduled

    def _start(self, doctor_id: str, appointment_id: str) -> Appointment:
        with self._locked(appointment_id) as appointment:
            self._check_doctor(appointment, doctor_id)
            if appointment.status != AppointmentStatus.CONFIRMED:
                raise StateError("Only confirmed appointments can be started")
            now = self._clock.now()
            if now > appointment.end_time:
                raise StateError("Cannot start an appointment that already ended")
            appointment.update_status(
                AppointmentStatus.IN_PROGRESS, "Patient arrived", now
            )
        self._reminders.notify_status_change(
            appointment, AppointmentStatus.IN_PROGRESS
        )
        self._log("appointment_started", appointment, "진료 시작")
        return appointment

    def _complete(
        self, doctor_id: str, appointment_id: str, notes: str | None
    ) -> Appointment:
        with self._locked(appointment_id) as appointment:
            self._check_doctor(appointment, doctor_id)
            if appointment.status != AppointmentStatus.IN_PROGRESS:
                raise StateError("Only in-progress appointments can be completed")
            appointment.update_status(
                AppointmentStatus.COMPLETED, "Visit completed", self._clock.now()
            )
            appointment.clinical_notes = notes
            self._release(appointment)
        self._reminders.notify_status_change(appointment, AppointmentStatus.COMPLETED)
        self._log("appointment_completed", appointment, "진료 완료")
        return appointment

    def _no_show(self, doctor_id: str, appointment_id: str) -> Appointment:
        with self._locked(appointment_id) as appointment:
            self._check_doctor(appointment, doctor_id)
            if appointment.status != AppointmentStatus.CONFIRMED:
                raise StateError(
                    "Only confirmed appointments can be marked as no-show"
                )
            now = self._clock.now()
            if now < appointment.end_time:
                raise StateError("Too early to mark as no-show")
            appointment.update_status(
                AppointmentStatus.NO_SHOW, "Patient didn't arrive", now
            )
            self._release(appointment)
        self._reminders.notify_status_change(appointment, AppointmentStatus.NO_SHOW)
        self._log("appointment_no_show", appointment, "노쇼 처리")
        return appointment

    def _build(self, **fields: object) -> Appointment:
        now = self._clock.now()
        try:
            return Appointment(created_at=now, updated_at=now, **fields)
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or "input"
            raise ValidationError(field, first.get("msg", "invalid value")) from exc

    def _ensure_no_conflict(
        self,
        doctor_id: str,
        start: datetime,
        end: datetime,
        exclude_id: str | None = None,
    ) -> None:
        """의사의 확정 일정 전체와 겹치는지 검사(자정을 넘는 예약 포함)

        Raises:
            ConflictError: 겹치는 예약이 있는 경우
        """
        for existing in self._store.doctor_appointments(doctor_id):
            if existing.id == exclude_id:
                continue
            if existing.overlaps(start, end):
                raise ConflictError(
                    f"Schedule conflict detected with appointment {existing.id}"
                )

    def _release(self, appointment: Appointment) -> None:
        """종료된 예약을 모든 인덱스와 리마인더에서 제거"""
        self._store.remove_pending(appointment.doctor_id, appointment.id)
        self._store.remove_from_schedules(appointment)
        self._reminders.cancel_reminders(appointment.id)

    def _require(self, appointment_id: str) -> Appointment:
        appointment = self._store.get(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        return appointment

    @contextmanager
    def _locked(self, appointment_id: str) -> Iterator[Appointment]:
        appointment = self._require(appointment_id)
        with self._doctor_locks.hold(appointment.doctor_id):
            yield appointment

    @staticmethod
    def _check_doctor(appointment: Appointment, doctor_id: str) -> None:
        if appointment.doctor_id != doctor_id:
            raise OwnershipError("Appointment doesn't belong to this doctor")

    def _attempt(
        self,
        action: str,
        subject_id: str,
        operation: Callable[[], T],
        log: bool = True,
    ) -> Result[T]:
        try:
            return Result.success(operation())
        except CareLinkError as exc:
            if log:
                log_event(
                    "appointment_rejected",
                    "WARNING",
                    subject_id,
                    action,
                    exc.message,
                    error_code=exc.code,
                    telemetry=self._telemetry,
                )
            return Result.failure(exc)

    def _log(self, event: str, appointment: Appointment, message: str) -> None:
        log_event(
            event,
            "INFO",
            appointment.id,
            appointment.status.value.lower(),
            message,
            telemetry=self._telemetry,
        )
