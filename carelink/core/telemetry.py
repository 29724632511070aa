from __future__ import annotations

import threading
from pathlib import Path

import duckdb


class TelemetryStore:
    """이벤트 로그와 알림 상태를 저장하는 DuckDB 텔레메트리 저장소

    Args:
        path: DuckDB 파일 경로(":memory:" 허용)
    """

    def __init__(self, path: str) -> None:
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = duckdb.connect(path)
        # DuckDB 연결은 스레드 간 공유 시 직렬화 필요
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self) -> None:
        with self._lock:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS logs (
                    timestamp TIMESTAMP,
                    level VARCHAR,
                    event VARCHAR,
                    subject_id VARCHAR,
                    stage VARCHAR,
                    error_code VARCHAR,
                    message VARCHAR,
                    duration_ms INTEGER,
                    record_count INTEGER
                )
                """
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS alert_status (
                    patient_id VARCHAR,
                    last_attempt_at TIMESTAMP,
                    last_sent_at TIMESTAMP,
                    last_priority VARCHAR,
                    last_outcome VARCHAR,
                    last_error_code VARCHAR
                )
                """
            )

    def insert_log(self, record: dict) -> None:
        """로그 레코드를 저장

        Args:
            record: 로그 레코드 딕셔너리
        """
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO logs (timestamp, level, event, subject_id, stage, error_code, message, duration_ms, record_count)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    record.get("timestamp"),
                    record.get("level"),
                    record.get("event"),
                    record.get("subject_id"),
                    record.get("stage"),
                    record.get("error_code"),
                    record.get("message"),
                    record.get("duration_ms"),
                    record.get("record_count"),
                ],
            )

    def update_alert_status(self, status: dict) -> None:
        """환자별 알림 상태 레코드를 업서트

        Args:
            status: 상태 레코드 딕셔너리
        """
        with self._lock:
            self._conn.execute(
                """
                DELETE FROM alert_status WHERE patient_id = ?
                """,
                [status.get("patient_id")],
            )
            self._conn.execute(
                """
                INSERT INTO alert_status (patient_id, last_attempt_at, last_sent_at, last_priority, last_outcome, last_error_code)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    status.get("patient_id"),
                    status.get("last_attempt_at"),
                    status.get("last_sent_at"),
                    status.get("last_priority"),
                    status.get("last_outcome"),
                    status.get("last_error_code"),
                ],
            )

    def query_logs(self, where: str, params: list) -> list[tuple]:
        """조건절(WHERE)을 사용해 로그를 조회

        Args:
            where: SQL WHERE 절
            params: 파라미터 목록

        Returns:
            행 목록
        """
        query = "SELECT * FROM logs"
        if where:
            query += f" WHERE {where}"
        with self._lock:
            return self._conn.execute(query, params).fetchall()

    def query_alert_status(self) -> list[tuple]:
        """모든 환자 알림 상태 항목을 조회

        Returns:
            행 목록
        """
        with self._lock:
            return self._conn.execute(
                "SELECT * FROM alert_status ORDER BY patient_id"
            ).fetchall()

    def close(self) -> None:
        with self._lock:
            self._conn.close()
