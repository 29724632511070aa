from __future__ import annotations

import re

import httpx

from carelink.core.errors import NotificationError
from carelink.core.logger import log_event
from carelink.models.appointment import Appointment, AppointmentStatus
from carelink.models.contact import Contact, PatientProfile, Prescription


def format_phone_number(raw: str) -> str:
    """파키스탄 번호를 +92 국제 형식으로 정규화

    Args:
        raw: 원본 번호

    Returns:
        정규화된 번호(형식을 알 수 없으면 원본)
    """
    digits = re.sub(r"[^0-9]", "", raw)
    if digits.startswith("92") and len(digits) == 12:
        return f"+{digits}"
    if digits.startswith("3") and len(digits) == 10:
        return f"+92{digits}"
    if digits.startswith("03") and len(digits) == 11:
        return f"+92{digits[1:]}"
    return raw


class NotificationGateway:
    """알림 게이트웨이로 메시지를 전송

    Args:
        base_url: 게이트웨이 URL(비어 있으면 로그만 기록)
        api_key: Bearer 토큰
        transport: httpx 전송 계층(테스트용)
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        transport: httpx.BaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._transport = transport
        self._timeout = timeout

    def send(self, channel: str, recipient: str, message: str) -> None:
        """채널로 메시지를 전송

        Args:
            channel: 채널 이름(email, whatsapp)
            recipient: 수신자
            message: 메시지 본문

        Raises:
            NotificationError: 전송 실패 시
        """
        if not self._base_url:
            log_event("notification_logged", "INFO", recipient, channel, message)
            return
        headers = {}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        try:
            with httpx.Client(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = client.post(
                    f"{self._base_url}/{channel}",
                    json={"recipient": recipient, "message": message},
                    headers=headers,
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationError(
                f"Failed to send {channel} notification: {exc}"
            ) from exc


class WebhookNotifier:
    """환자 대상 이메일/WhatsApp 알림"""

    def __init__(self, gateway: NotificationGateway) -> None:
        self._gateway = gateway

    def send_appointment_reminder(
        self, appointment: Appointment, patient: PatientProfile
    ) -> None:
        message = (
            f"Reminder: You have an appointment with Dr. {appointment.doctor_id} "
            f"on {appointment.date_time.date().isoformat()} "
            f"at {appointment.date_time.strftime('%H:%M')}"
        )
        self._send_to_both_channels(patient.contact, message)

    def send_status_notification(
        self,
        appointment: Appointment,
        status: AppointmentStatus,
        patient: PatientProfile,
    ) -> None:
        message = (
            f"Appointment Update: Your appointment on "
            f"{appointment.date_time.isoformat(sep=' ', timespec='minutes')} "
            f"is now {status.value}"
        )
        if status in {AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}:
            message += f". Reason: {appointment.cancellation_reason}"
        self._send_to_both_channels(patient.contact, message)

    def send_medication_reminder(
        self, prescription: Prescription, patient: PatientProfile
    ) -> None:
        message = (
            f"Medication Reminder: Take {prescription.medication} "
            f"{prescription.dosage} as prescribed by Dr. {prescription.prescriber}"
        )
        self._send_to_both_channels(patient.contact, message)

    def _send_to_both_channels(self, contact: Contact, message: str) -> None:
        self._gateway.send("email", contact.email, message)
        self._gateway.send("whatsapp", format_phone_number(contact.phone), message)


class WebhookNotificationService:
    """의료진 대상 긴급/위급 결과 알림"""

    def __init__(
        self, gateway: NotificationGateway, ehr_base_url: str = "https://ehr.example.com"
    ) -> None:
        self._gateway = gateway
        self._ehr_base_url = ehr_base_url.rstrip("/")

    def send_emergency_alert(
        self, contacts: list[Contact], patient_id: str, emergency_type: str
    ) -> None:
        """응급 알림을 모든 연락처에 전송

        Args:
            contacts: 수신 연락처 목록
            patient_id: 환자 식별자
            emergency_type: 응급 유형

        Raises:
            NotificationError: 전송 실패 시
        """
        priority = "IMMEDIATE" if emergency_type == "Code Blue" else "URGENT"
        email_message = (
            f"Emergency Alert ({priority})\n\n"
            f"Patient ID: {patient_id}\n"
            f"Emergency: {emergency_type}\n"
            f"Required: {priority} response\n\n"
            f"Login to EHR: {self._ehr_base_url}/emergency/{patient_id}"
        )
        whatsapp_message = (
            f"🚨 *{emergency_type} EMERGENCY*\n"
            f"Patient: {patient_id}\n"
            f"Type: {priority}\n\n"
            "Reply status:\n"
            "1 - Accepting case\n"
            "2 - Not available"
        )
        for contact in contacts:
            self._gateway.send("email", contact.email, email_message)
            self._gateway.send(
                "whatsapp", format_phone_number(contact.phone), whatsapp_message
            )

    def send_critical_results(
        self, contact: Contact, patient_label: str, test_name: str, value: str
    ) -> None:
        slug = patient_label.lower().replace(" ", "-")
        email_message = (
            "Critical Lab Results\n\n"
            f"Patient: {patient_label}\n"
            f"Test: {test_name}\n"
            f"Abnormal Value: {value}\n\n"
            "Required Action: Review within 2 hours\n"
            f"Access full report: {self._ehr_base_url}/labs/{slug}"
        )
        whatsapp_message = (
            "⚠️ *Critical Results*\n"
            f"Patient: {patient_label}\n"
            f"{test_name}: {value}\n\n"
            "Urgent review needed"
        )
        self._gateway.send("email", contact.email, email_message)
        self._gateway.send(
            "whatsapp", format_phone_number(contact.phone), whatsapp_message
        )
