from __future__ import annotations

from datetime import timedelta

from carelink.core.errors import ValidationError


def require_identifier(value: str | None, field: str) -> str:
    """식별자 문자열 검증

    Args:
        value: 원본 값
        field: 에러 메시지에 사용할 필드명

    Returns:
        공백이 제거된 식별자

    Raises:
        ValidationError: 값이 비어 있는 경우
    """
    if value is None or str(value).strip() == "":
        raise ValidationError(field, "cannot be empty")
    return str(value).strip()


def text_or_default(value: str | None, default: str) -> str:
    """비어 있으면 기본값을 사용

    Args:
        value: 원본 값
        default: 기본값

    Returns:
        정리된 문자열
    """
    if value is None:
        return default
    text = str(value).strip()
    return text if text else default


def require_range(
    value: int | float, field: str, minimum: float, maximum: float, unit: str = ""
) -> int | float:
    """값이 [minimum, maximum] 범위인지 검증

    Args:
        value: 측정값
        field: 필드명
        minimum: 최솟값(포함)
        maximum: 최댓값(포함)
        unit: 메시지용 단위

    Returns:
        원본 값

    Raises:
        ValidationError: 범위를 벗어난 경우
    """
    if value < minimum or value > maximum:
        suffix = f" {unit}" if unit else ""
        raise ValidationError(field, f"out of range: {value}{suffix}")
    return value


def require_min_duration(duration: timedelta, minimum: timedelta) -> timedelta:
    if duration < minimum:
        minutes = int(minimum.total_seconds() // 60)
        raise ValidationError("duration", f"must be at least {minutes} minutes")
    return duration
