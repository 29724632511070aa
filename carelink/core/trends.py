from __future__ import annotations

from datetime import timedelta

from carelink.core.clock import Clock
from carelink.core.vital_store import VitalTimeSeriesStore
from carelink.models.vitals import TrendSummary, VitalComponent


class TrendAnalyzer:
    """기간 내 생체신호 항목 통계 계산"""

    def __init__(self, store: VitalTimeSeriesStore, clock: Clock) -> None:
        self._store = store
        self._clock = clock

    def calculate_trends(
        self, patient_id: str, component: VitalComponent, lookback: timedelta
    ) -> TrendSummary:
        """[오늘 - lookback, 오늘] 구간의 평균/최소/최대/최신값

        Args:
            patient_id: 환자 식별자
            component: 항목
            lookback: 조회 기간

        Returns:
            통계(구간이 비어 있으면 모두 0.0)
        """
        end = self._clock.today()
        start = end - lookback
        vitals = self._store.get_vitals_in_range(patient_id, start, end)
        values = [v.component_value(component) for v in vitals]
        if not values:
            return TrendSummary(component=component)
        return TrendSummary(
            component=component,
            average=sum(values) / len(values),
            min=min(values),
            max=max(values),
            latest=values[0],
            sample_count=len(values),
        )
