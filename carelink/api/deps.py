from __future__ import annotations

from typing import TypeVar

from fastapi import HTTPException, Request, status

from carelink.core.errors import (
    CareLinkError,
    ConflictError,
    NotFoundError,
    OwnershipError,
    StateError,
    ValidationError,
)
from carelink.core.result import Result
from carelink.core.services import CareServices

T = TypeVar("T")

_STATUS_CODES: dict[type[CareLinkError], int] = {
    ValidationError: 422,
    ConflictError: status.HTTP_409_CONFLICT,
    StateError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    OwnershipError: status.HTTP_403_FORBIDDEN,
}


def get_services(request: Request) -> CareServices:
    """앱 상태에 등록된 서비스 묶음을 반환"""
    return request.app.state.services


def to_http_error(exc: CareLinkError) -> HTTPException:
    """도메인 에러를 HTTP 에러로 변환

    Args:
        exc: 도메인 에러

    Returns:
        HTTPException
    """
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in _STATUS_CODES.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    return HTTPException(
        status_code=status_code, detail={"code": exc.code, "message": exc.message}
    )


def unwrap_or_raise(result: Result[T]) -> T:
    if result.error is not None:
        raise to_http_error(result.error)
    return result.value  # type: ignore[return-value]
