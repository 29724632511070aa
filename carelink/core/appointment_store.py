from __future__ import annotations

import threading
from datetime import date

from carelink.models.appointment import Appointment, new_appointment_id


class AppointmentStore:
    """예약 원장과 파생 인덱스

    - appointments: 예약 식별자 -> 예약
    - doctor/patient 일정: 식별자 -> 확정(진행 중 포함) 예약 식별자 집합
    - pending: 의사 식별자 -> (예약 식별자 -> 미확정 예약)

    각 맵 연산은 개별적으로 원자적이며, 여러 맵에 걸친 일관성은
    SchedulingEngine의 의사별 락으로 보장한다.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._appointments: dict[str, Appointment] = {}
        self._doctor_schedules: dict[str, set[str]] = {}
        self._patient_schedules: dict[str, set[str]] = {}
        self._pending: dict[str, dict[str, Appointment]] = {}

    def add(self, appointment: Appointment) -> Appointment:
        """새 예약을 저장(식별자 충돌 시 재발급)

        Args:
            appointment: 저장할 예약

        Returns:
            저장된 예약
        """
        with self._lock:
            while appointment.id in self._appointments:
                appointment.id = new_appointment_id()
            self._appointments[appointment.id] = appointment
            return appointment

    def get(self, appointment_id: str) -> Appointment | None:
        with self._lock:
            return self._appointments.get(appointment_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._appointments)

    def add_pending(self, appointment: Appointment) -> None:
        with self._lock:
            self._pending.setdefault(appointment.doctor_id, {})[
                appointment.id
            ] = appointment

    def remove_pending(self, doctor_id: str, appointment_id: str) -> None:
        with self._lock:
            pending = self._pending.get(doctor_id)
            if pending is None:
                return
            pending.pop(appointment_id, None)
            if not pending:
                del self._pending[doctor_id]

    def pending_for(self, doctor_id: str) -> list[Appointment]:
        with self._lock:
            return list(self._pending.get(doctor_id, {}).values())

    def is_pending(self, doctor_id: str, appointment_id: str) -> bool:
        with self._lock:
            return appointment_id in self._pending.get(doctor_id, {})

    def add_to_schedules(self, appointment: Appointment) -> None:
        with self._lock:
            self._doctor_schedules.setdefault(appointment.doctor_id, set()).add(
                appointment.id
            )
            self._patient_schedules.setdefault(appointment.patient_id, set()).add(
                appointment.id
            )

    def remove_from_schedules(self, appointment: Appointment) -> None:
        with self._lock:
            self._doctor_schedules.get(appointment.doctor_id, set()).discard(
                appointment.id
            )
            self._patient_schedules.get(appointment.patient_id, set()).discard(
                appointment.id
            )

    def doctor_appointments(self, doctor_id: str) -> list[Appointment]:
        """의사 확정 일정의 예약 목록"""
        return self._resolve(self._doctor_schedules, doctor_id)

    def patient_appointments(self, patient_id: str) -> list[Appointment]:
        return self._resolve(self._patient_schedules, patient_id)

    def doctor_schedule_for_date(self, doctor_id: str, day: date) -> list[Appointment]:
        return _on_date(self.doctor_appointments(doctor_id), day)

    def patient_schedule_for_date(
        self, patient_id: str, day: date
    ) -> list[Appointment]:
        return _on_date(self.patient_appointments(patient_id), day)

    def _resolve(self, index: dict[str, set[str]], key: str) -> list[Appointment]:
        with self._lock:
            ids = list(index.get(key, ()))
            return [
                self._appointments[i] for i in ids if i in self._appointments
            ]


def _on_date(appointments: list[Appointment], day: date) -> list[Appointment]:
    """해당 날짜 예약을 시작 시각 오름차순으로 정렬"""
    return sorted(
        (a for a in appointments if a.date_time.date() == day),
        key=lambda a: a.date_time,
    )
