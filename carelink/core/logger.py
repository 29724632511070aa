from __future__ import annotations

import logging
from datetime import datetime, timezone

from carelink.core.telemetry import TelemetryStore


def log_event(
    event: str,
    level: str,
    subject_id: str,
    stage: str,
    message: str,
    error_code: str | None = None,
    duration_ms: int | None = None,
    record_count: int | None = None,
    telemetry: TelemetryStore | None = None,
) -> None:
    """이벤트를 표준 로깅과 DuckDB에 기록

    Args:
        event: 이벤트 이름
        level: 로깅 레벨 문자열
        subject_id: 예약/환자/의사 식별자
        stage: 처리 단계
        message: 로그 메시지
        error_code: 에러 코드(선택)
        duration_ms: 처리 시간(밀리초, 선택)
        record_count: 레코드 수(선택)
        telemetry: 텔레메트리 저장소(없으면 표준 로깅만 수행)
    """
    logger = logging.getLogger("carelink")
    extra = {
        "event": event,
        "subject_id": subject_id,
        "stage": stage,
        "error_code": error_code,
    }
    logger.log(getattr(logging, level.upper(), logging.INFO), message, extra=extra)

    if telemetry is None:
        return
    telemetry.insert_log(
        {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": level.upper(),
            "event": event,
            "subject_id": subject_id,
            "stage": stage,
            "error_code": error_code,
            "message": message,
            "duration_ms": duration_ms,
            "record_count": record_count,
        }
    )
