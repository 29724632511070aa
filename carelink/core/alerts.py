from __future__ import annotations

import threading
from datetime import datetime, timedelta
from enum import Enum

from carelink.core.clock import Clock
from carelink.core.logger import log_event
from carelink.core.notifications import NotificationService
from carelink.core.telemetry import TelemetryStore
from carelink.models.contact import Contact
from carelink.models.vitals import BloodPressureCategory, VitalSigns
from carelink.utils.locks import KeyedLocks

EMERGENCY_TYPE = "CRITICAL Vital Signs"
CRITICAL_TEST_NAME = "Abnormal Vitals"


class AlertPriority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"


class AlertOutcome(str, Enum):
    """알림 요청 처리 결과"""

    SENT = "SENT"
    SUPPRESSED = "SUPPRESSED"
    FAILED = "FAILED"


def determine_priority(vitals: VitalSigns) -> AlertPriority:
    """SpO2 < 90% 또는 고혈압 위기면 HIGH, 그 외 MEDIUM"""
    if (
        vitals.oxygen_saturation < 90
        or vitals.blood_pressure.category == BloodPressureCategory.HYPERTENSIVE_CRISIS
    ):
        return AlertPriority.HIGH
    return AlertPriority.MEDIUM


def build_summary(vitals: VitalSigns) -> str:
    return "\n".join(vitals.abnormal_findings())


class AlertDispatcher:
    """환자별 쿨다운을 적용해 위급 생체신호 알림을 발송

    전송에 성공한 경우에만 쿨다운 시각을 갱신하므로, 전송 실패 후
    다음 위급 측정값은 쿨다운을 기다리지 않고 재시도된다.

    Args:
        cooldown_minutes: 같은 환자에 대한 최소 알림 간격(분)
        notification_service: 의료진 알림 전송자
        clock: 시계
        telemetry: 텔레메트리 저장소(선택)
    """

    def __init__(
        self,
        cooldown_minutes: int,
        notification_service: NotificationService,
        clock: Clock,
        telemetry: TelemetryStore | None = None,
    ) -> None:
        self._cooldown = timedelta(minutes=cooldown_minutes)
        self._service = notification_service
        self._clock = clock
        self._telemetry = telemetry
        self._lock = threading.Lock()
        self._last_alerts: dict[str, datetime] = {}
        self._patient_locks = KeyedLocks()

    def is_on_cooldown(self, patient_id: str) -> bool:
        with self._lock:
            last_alert = self._last_alerts.get(patient_id)
        return last_alert is not None and last_alert + self._cooldown > self._clock.now()

    def last_alert_at(self, patient_id: str) -> datetime | None:
        with self._lock:
            return self._last_alerts.get(patient_id)

    def trigger_alert(
        self,
        patient_id: str,
        vitals: VitalSigns,
        doctor_email: str,
        doctor_phone: str,
    ) -> AlertOutcome:
        """위급 측정값 알림 발송

        Args:
            patient_id: 환자 식별자
            vitals: 측정값
            doctor_email: 주치의 이메일
            doctor_phone: 주치의 전화번호

        Returns:
            처리 결과
        """
        with self._patient_locks.hold(patient_id):
            if self.is_on_cooldown(patient_id):
                log_event(
                    "alert_suppressed",
                    "INFO",
                    patient_id,
                    "alert",
                    "쿨다운 중",
                    telemetry=self._telemetry,
                )
                return AlertOutcome.SUPPRESSED

            priority = determine_priority(vitals)
            contact = Contact(email=doctor_email, phone=doctor_phone)
            attempted_at = self._clock.now()
            try:
                if priority == AlertPriority.HIGH:
                    self._service.send_emergency_alert(
                        [contact], patient_id, EMERGENCY_TYPE
                    )
                else:
                    self._service.send_critical_results(
                        contact,
                        f"Patient {patient_id}",
                        CRITICAL_TEST_NAME,
                        build_summary(vitals),
                    )
            except Exception as exc:
                # 전송 실패는 기록만 하고 쿨다운은 시작하지 않음
                error_code = getattr(exc, "code", None)
                log_event(
                    "alert_failed",
                    "ERROR",
                    patient_id,
                    "alert",
                    str(exc),
                    error_code=error_code,
                    telemetry=self._telemetry,
                )
                self._record_status(
                    patient_id,
                    attempted_at,
                    None,
                    priority,
                    AlertOutcome.FAILED,
                    error_code,
                )
                return AlertOutcome.FAILED

            sent_at = self._clock.now()
            with self._lock:
                self._last_alerts[patient_id] = sent_at
            log_event(
                "alert_sent",
                "WARNING",
                patient_id,
                "alert",
                f"{priority.value} 알림 발송",
                telemetry=self._telemetry,
            )
            self._record_status(
                patient_id, attempted_at, sent_at, priority, AlertOutcome.SENT, None
            )
            return AlertOutcome.SENT

    def _record_status(
        self,
        patient_id: str,
        attempted_at: datetime,
        sent_at: datetime | None,
        priority: AlertPriority,
        outcome: AlertOutcome,
        error_code: str | None,
    ) -> None:
        if self._telemetry is None:
            return
        self._telemetry.update_alert_status(
            {
                "patient_id": patient_id,
                "last_attempt_at": attempted_at,
                "last_sent_at": sent_at,
                "last_priority": priority.value,
                "last_outcome": outcome.value,
                "last_error_code": error_code,
            }
        )
