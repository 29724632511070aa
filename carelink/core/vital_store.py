from __future__ import annotations

import bisect
import threading
from datetime import date
from typing import Callable

from carelink.core.alerts import AlertDispatcher
from carelink.core.clock import Clock
from carelink.core.directory import ClinicDirectory
from carelink.core.errors import ValidationError
from carelink.core.logger import log_event
from carelink.core.telemetry import TelemetryStore
from carelink.models.vitals import VitalSigns
from carelink.utils.validation import require_identifier

EvictionHook = Callable[[str, date, VitalSigns], None]


class PatientSeries:
    """환자 한 명의 날짜별 측정값(날짜당 최대 1건, 용량 제한)

    날짜는 오름차순 목록으로 유지하고 조회는 최신순으로 반환한다.
    """

    def __init__(self, capacity: int) -> None:
        self._capacity = capacity
        self._dates: list[date] = []
        self._entries: dict[date, VitalSigns] = {}

    def __len__(self) -> int:
        return len(self._dates)

    def __contains__(self, day: object) -> bool:
        return day in self._entries

    def insert(self, day: date, vitals: VitalSigns) -> tuple[date, VitalSigns] | None:
        """측정값을 삽입하고 용량 초과 시 가장 오래된 항목을 제거

        Args:
            day: 측정 날짜
            vitals: 측정값

        Returns:
            제거된 (날짜, 측정값) 또는 None
        """
        evicted = None
        if len(self._dates) >= self._capacity:
            oldest = self._dates.pop(0)
            evicted = (oldest, self._entries.pop(oldest))
        bisect.insort(self._dates, day)
        self._entries[day] = vitals
        return evicted

    def latest(self) -> VitalSigns | None:
        if not self._dates:
            return None
        return self._entries[self._dates[-1]]

    def between(self, start: date, end: date) -> list[VitalSigns]:
        lo = bisect.bisect_left(self._dates, start)
        hi = bisect.bisect_right(self._dates, end)
        return [self._entries[d] for d in reversed(self._dates[lo:hi])]

    def dates(self) -> list[date]:
        return list(reversed(self._dates))


class VitalTimeSeriesStore:
    """환자별 용량 제한 생체신호 저장소

    Args:
        max_entries_per_patient: 환자당 최대 항목 수(양수)
        alert_dispatcher: 위급 측정값 알림 발송기
        directory: 주치의 연락처 조회용 디렉터리
        clock: 시계
        telemetry: 텔레메트리 저장소(선택)
        on_evict: 항목 제거 시 호출되는 훅(선택)
    """

    def __init__(
        self,
        max_entries_per_patient: int,
        alert_dispatcher: AlertDispatcher,
        directory: ClinicDirectory,
        clock: Clock,
        telemetry: TelemetryStore | None = None,
        on_evict: EvictionHook | None = None,
    ) -> None:
        if max_entries_per_patient <= 0:
            raise ValidationError(
                "max_entries_per_patient", "must be positive"
            )
        self._capacity = max_entries_per_patient
        self._alerts = alert_dispatcher
        self._directory = directory
        self._clock = clock
        self._telemetry = telemetry
        self._on_evict = on_evict
        self._lock = threading.Lock()
        self._series: dict[str, PatientSeries] = {}

    @property
    def capacity(self) -> int:
        return self._capacity

    def record(self, patient_id: str, vitals: VitalSigns) -> bool:
        """오늘 날짜로 측정값을 기록

        같은 날짜에 이미 기록이 있으면 변경 없이 False를 반환한다.
        위급 측정값이면 주치의에게 알림을 요청한다.

        Args:
            patient_id: 환자 식별자
            vitals: 측정값

        Returns:
            기록 여부

        Raises:
            ValidationError: 식별자가 비어 있는 경우
            NotFoundError: 등록되지 않은 환자인 경우
        """
        patient_id = require_identifier(patient_id, "patient_id")
        self._directory.require_patient(patient_id)
        today = self._clock.today()
        with self._lock:
            series = self._series.setdefault(patient_id, PatientSeries(self._capacity))
            if today in series:
                return False
            evicted = series.insert(today, vitals)
        if evicted is not None:
            self._handle_eviction(patient_id, *evicted)
        log_event(
            "vitals_recorded",
            "INFO",
            patient_id,
            "record",
            vitals.summary(),
            telemetry=self._telemetry,
        )
        if vitals.is_critical():
            self._escalate(patient_id, vitals)
        return True

    def get_latest_vitals(self, patient_id: str) -> VitalSigns | None:
        with self._lock:
            series = self._series.get(patient_id)
            return series.latest() if series else None

    def get_vitals_in_range(
        self, patient_id: str, start: date, end: date
    ) -> list[VitalSigns]:
        """기간(양끝 포함) 측정값을 최신순으로 반환"""
        with self._lock:
            series = self._series.get(patient_id)
            return series.between(start, end) if series else []

    def get_recorded_dates(self, patient_id: str) -> list[date]:
        with self._lock:
            series = self._series.get(patient_id)
            return series.dates() if series else []

    def _handle_eviction(self, patient_id: str, day: date, vitals: VitalSigns) -> None:
        log_event(
            "vitals_evicted",
            "INFO",
            patient_id,
            "record",
            f"용량 초과로 {day.isoformat()} 항목 제거",
            telemetry=self._telemetry,
        )
        if self._on_evict is not None:
            self._on_evict(patient_id, day, vitals)

    def _escalate(self, patient_id: str, vitals: VitalSigns) -> None:
        doctor = self._directory.primary_doctor_for(patient_id)
        if doctor is None:
            log_event(
                "alert_skipped",
                "WARNING",
                patient_id,
                "alert",
                "주치의 미지정",
                telemetry=self._telemetry,
            )
            return
        self._alerts.trigger_alert(
            patient_id, vitals, doctor.contact.email, doctor.contact.phone
        )
