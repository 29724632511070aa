from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class KeyedLocks:
    """키(의사/환자 식별자)별 재진입 락 모음"""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # 키는 디렉터리에 등록된 의사/환자 식별자로 한정됨
        self._locks: dict[str, threading.RLock] = {}

    def get(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """키에 해당하는 락을 획득

        Args:
            key: 락 키
        """
        lock = self.get(key)
        with lock:
            yield
