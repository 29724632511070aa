from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Iterable

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler

from carelink.core.clock import Clock
from carelink.core.directory import ClinicDirectory
from carelink.core.logger import log_event
from carelink.core.notifications import Notifier
from carelink.core.telemetry import TelemetryStore
from carelink.models.appointment import Appointment, AppointmentStatus
from carelink.models.contact import Prescription

DEFAULT_REMINDER_OFFSETS = (timedelta(hours=24), timedelta(hours=1))


def build_scheduler(workers: int = 2) -> BackgroundScheduler:
    """리마인더용 백그라운드 스케줄러를 생성(시작하지 않음)

    Args:
        workers: 고정 워커 스레드 수

    Returns:
        BackgroundScheduler 인스턴스
    """
    return BackgroundScheduler(
        executors={"default": ThreadPoolExecutor(max_workers=workers)},
        job_defaults={"coalesce": False, "misfire_grace_time": None},
    )


def reminder_delay(fire_at: datetime, now: datetime) -> timedelta:
    """발송까지 남은 시간(이미 지난 경우 0)"""
    return max(fire_at - now, timedelta(0))


def _offset_label(offset: timedelta) -> str:
    minutes = int(offset.total_seconds() // 60)
    if minutes % 60 == 0:
        return f"{minutes // 60}h"
    return f"{minutes}m"


class ReminderScheduler:
    """예약 리마인더 지연 실행과 상태 변경 알림"""

    def __init__(
        self,
        notifier: Notifier,
        directory: ClinicDirectory,
        clock: Clock,
        scheduler: BaseScheduler | None = None,
        offsets: Iterable[timedelta] = DEFAULT_REMINDER_OFFSETS,
        telemetry: TelemetryStore | None = None,
    ) -> None:
        self._notifier = notifier
        self._directory = directory
        self._clock = clock
        self._scheduler = scheduler or build_scheduler()
        self._offsets = tuple(offsets)
        self._telemetry = telemetry
        self._lock = threading.Lock()
        # 예약 식별자 -> (작업 식별자 -> 발송 예정 시각)
        self._jobs: dict[str, dict[str, datetime]] = {}

    @property
    def scheduler(self) -> BaseScheduler:
        return self._scheduler

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    def schedule_reminders(self, appointment: Appointment) -> list[str]:
        """예약 시작 전 리마인더 작업을 등록

        발송 시각이 이미 지났으면 즉시 실행되도록 지연을 0으로 조정한다.

        Args:
            appointment: 대상 예약

        Returns:
            등록된 작업 식별자 목록
        """
        now = self._clock.now()
        job_ids: list[str] = []
        for offset in self._offsets:
            delay = reminder_delay(appointment.date_time - offset, now)
            job_id = f"reminder-{appointment.id}-{_offset_label(offset)}"
            self._scheduler.add_job(
                self._send_reminder,
                "date",
                run_date=datetime.now(timezone.utc) + delay,
                args=[appointment, job_id],
                id=job_id,
                replace_existing=True,
                misfire_grace_time=None,
            )
            with self._lock:
                self._jobs.setdefault(appointment.id, {})[job_id] = now + delay
            job_ids.append(job_id)
        log_event(
            "reminders_scheduled",
            "INFO",
            appointment.id,
            "reminder",
            "리마인더 등록",
            record_count=len(job_ids),
            telemetry=self._telemetry,
        )
        return job_ids

    def pending_reminders(self, appointment_id: str) -> list[datetime]:
        """대기 중인 리마인더 발송 예정 시각 목록"""
        with self._lock:
            return sorted(self._jobs.get(appointment_id, {}).values())

    def cancel_reminders(self, appointment_id: str) -> int:
        """대기 중인 리마인더 작업을 제거

        Args:
            appointment_id: 예약 식별자

        Returns:
            제거된 작업 수
        """
        with self._lock:
            job_ids = list(self._jobs.pop(appointment_id, {}))
        removed = 0
        for job_id in job_ids:
            try:
                self._scheduler.remove_job(job_id)
                removed += 1
            except JobLookupError:
                # 이미 실행된 작업
                continue
        if removed:
            log_event(
                "reminders_cancelled",
                "INFO",
                appointment_id,
                "reminder",
                "리마인더 취소",
                record_count=removed,
                telemetry=self._telemetry,
            )
        return removed

    def schedule_medication_reminder(
        self, prescription: Prescription, patient_id: str, fire_at: datetime
    ) -> str:
        """복약 리마인더 작업을 등록

        Args:
            prescription: 처방 요약
            patient_id: 환자 식별자
            fire_at: 발송 시각

        Returns:
            작업 식별자
        """
        delay = reminder_delay(fire_at, self._clock.now())
        job = self._scheduler.add_job(
            self._send_medication_reminder,
            "date",
            run_date=datetime.now(timezone.utc) + delay,
            args=[prescription, patient_id],
            misfire_grace_time=None,
        )
        return job.id

    def notify_status_change(
        self, appointment: Appointment, status: AppointmentStatus
    ) -> None:
        """상태 변경 알림을 동기 전송(실패는 기록만 함)

        Args:
            appointment: 대상 예약
            status: 새 상태
        """
        patient = self._directory.find_patient(appointment.patient_id)
        if patient is None:
            self._log_skip(appointment.patient_id, "status")
            return
        try:
            self._notifier.send_status_notification(appointment, status, patient)
        except Exception as exc:
            self._log_failure(appointment.id, "status", exc)

    def _send_reminder(self, appointment: Appointment, job_id: str) -> None:
        with self._lock:
            jobs = self._jobs.get(appointment.id)
            if jobs is not None:
                jobs.pop(job_id, None)
                if not jobs:
                    del self._jobs[appointment.id]
        patient = self._directory.find_patient(appointment.patient_id)
        if patient is None:
            self._log_skip(appointment.patient_id, "reminder")
            return
        try:
            self._notifier.send_appointment_reminder(appointment, patient)
        except Exception as exc:
            self._log_failure(appointment.id, "reminder", exc)
            return
        log_event(
            "reminder_sent",
            "INFO",
            appointment.id,
            "reminder",
            "리마인더 발송",
            telemetry=self._telemetry,
        )

    def _send_medication_reminder(
        self, prescription: Prescription, patient_id: str
    ) -> None:
        patient = self._directory.find_patient(patient_id)
        if patient is None:
            self._log_skip(patient_id, "medication")
            return
        try:
            self._notifier.send_medication_reminder(prescription, patient)
        except Exception as exc:
            self._log_failure(patient_id, "medication", exc)

    def _log_skip(self, patient_id: str, stage: str) -> None:
        log_event(
            "notification_skipped",
            "WARNING",
            patient_id,
            stage,
            "등록되지 않은 환자",
            telemetry=self._telemetry,
        )

    def _log_failure(self, subject_id: str, stage: str, exc: Exception) -> None:
        log_event(
            "notification_failed",
            "ERROR",
            subject_id,
            stage,
            str(exc),
            error_code=getattr(exc, "code", None),
            telemetry=self._telemetry,
        )
