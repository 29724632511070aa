from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from carelink.core.errors import CareLinkError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """성공 값 또는 도메인 에러 하나를 담는 결과"""

    value: T | None = None
    error: CareLinkError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """성공 값을 반환

        Returns:
            성공 값

        Raises:
            CareLinkError: 실패 결과인 경우 담긴 에러
        """
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: CareLinkError) -> "Result[T]":
        return cls(error=error)
