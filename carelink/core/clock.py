from __future__ import annotations

import threading
from datetime import date, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """현재 시각 공급자"""

    def now(self) -> datetime: ...

    def today(self) -> date: ...


class SystemClock:
    """로컬 벽시계 기반 시계"""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return self.now().date()


class ManualClock:
    """수동으로 진행시키는 시계

    Args:
        start: 시작 시각
    """

    def __init__(self, start: datetime) -> None:
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def today(self) -> date:
        return self.now().date()

    def advance(self, delta: timedelta) -> datetime:
        """시각을 앞으로 진행

        Args:
            delta: 진행할 시간

        Returns:
            진행 후 시각
        """
        with self._lock:
            self._now = self._now + delta
            return self._now

    def set(self, value: datetime) -> None:
        with self._lock:
            self._now = value
