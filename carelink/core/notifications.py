from __future__ import annotations

from typing import Protocol

from carelink.models.appointment import Appointment, AppointmentStatus
from carelink.models.contact import Contact, PatientProfile, Prescription


class Notifier(Protocol):
    """환자 대상 예약/복약 알림 전송자"""

    def send_appointment_reminder(
        self, appointment: Appointment, patient: PatientProfile
    ) -> None: ...

    def send_status_notification(
        self,
        appointment: Appointment,
        status: AppointmentStatus,
        patient: PatientProfile,
    ) -> None: ...

    def send_medication_reminder(
        self, prescription: Prescription, patient: PatientProfile
    ) -> None: ...


class NotificationService(Protocol):
    """의료진 대상 긴급 알림 전송자

    전송 실패 시 NotificationError를 발생시킨다.
    """

    def send_emergency_alert(
        self, contacts: list[Contact], patient_id: str, emergency_type: str
    ) -> None: ...

    def send_critical_results(
        self, contact: Contact, patient_label: str, test_name: str, value: str
    ) -> None: ...
