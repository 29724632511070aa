import logging

EVENT_FIELDS = {
    "event": "system",
    "subject_id": "-",
    "stage": "-",
    "error_code": "-",
}


class EventFormatter(logging.Formatter):
    """log_event가 붙이는 필드가 없는 레코드(서드파티 로그 등)에도 기본값을 채움"""

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s %(levelname)s %(name)s "
            "event=%(event)s subject_id=%(subject_id)s "
            "stage=%(stage)s code=%(error_code)s %(message)s"
        )

    def format(self, record: logging.LogRecord) -> str:
        for field, default in EVENT_FIELDS.items():
            if getattr(record, field, None) is None:
                setattr(record, field, default)
        return super().format(record)


def configure_logging(level: str) -> None:
    """애플리케이션 로깅을 설정

    APScheduler 로거는 WARNING 이상만 출력한다.

    Args:
        level: 로깅 레벨 문자열
    """
    handler = logging.StreamHandler()
    handler.setFormatter(EventFormatter())
    logging.basicConfig(level=level.upper(), handlers=[handler])
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
