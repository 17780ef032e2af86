from __future__ import annotations

import threading
from pathlib import Path

import duckdb

from app.core.config import get_settings

LOG_COLUMNS = [
    "timestamp",
    "level",
    "event",
    "stage",
    "error_code",
    "message",
    "duration_ms",
    "entry_id",
]


class TelemetryStore:
    """이벤트 로그를 저장하는 DuckDB 텔레메트리 저장소"""

    _instance: "TelemetryStore | None" = None
    _instance_lock = threading.Lock()

    def __new__(cls) -> "TelemetryStore":
        with cls._instance_lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._init_db()
                cls._instance = instance
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """싱글턴 연결을 닫고 초기화"""
        with cls._instance_lock:
            if cls._instance is not None:
                cls._instance._conn.close()
            cls._instance = None

    def _init_db(self) -> None:
        settings = get_settings()
        Path(settings.duckdb_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = duckdb.connect(settings.duckdb_path)
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS logs (
                timestamp TIMESTAMP,
                level VARCHAR,
                event VARCHAR,
                stage VARCHAR,
                error_code VARCHAR,
                message VARCHAR,
                duration_ms INTEGER,
                entry_id VARCHAR
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
                INSERT INTO logs (timestamp, level, event, stage, error_code, message, duration_ms, entry_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [record.get(column) for column in LOG_COLUMNS],
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
        query += " ORDER BY timestamp"
        with self._lock:
            return self._conn.execute(query, params).fetchall()

    def last_event(self, events: list[str]) -> tuple | None:
        """주어진 이벤트 중 가장 최근 로그 조회

        Args:
            events: 이벤트 이름 목록

        Returns:
            행 또는 None
        """
        if not events:
            return None
        placeholders = ", ".join(["?"] * len(events))
        with self._lock:
            return self._conn.execute(
                f"SELECT * FROM logs WHERE event IN ({placeholders}) "
                "ORDER BY timestamp DESC LIMIT 1",
                events,
            ).fetchone()
