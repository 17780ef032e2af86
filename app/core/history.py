from __future__ import annotations

import json
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import duckdb
from pydantic import ValidationError

from app.core.config import get_settings
from app.core.errors import HistoryError
from app.core.logger import log_event
from app.models.analysis import AnalysisResult, HistoryEntry
from app.models.patient import PatientLabRecord

HISTORY_KEY = "drc_exam_history"


class HistoryStore:
    """분석 이력을 저장하는 DuckDB 키-값 저장소"""

    # 읽기-수정-쓰기 구간을 프로세스 전체에서 직렬화
    _lock = threading.RLock()

    def __init__(self, path: str | None = None) -> None:
        self._path = path or get_settings().history_path
        Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        with self._connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key VARCHAR PRIMARY KEY,
                    value VARCHAR
                )
                """
            )

    @contextmanager
    def _connection(self) -> Iterator[duckdb.DuckDBPyConnection]:
        with self._lock:
            conn = duckdb.connect(self._path)
            try:
                yield conn
            finally:
                conn.close()

    def load_all(self) -> list[HistoryEntry]:
        """저장된 이력 전체 로드

        Returns:
            이력 목록(손상된 데이터는 빈 목록)
        """
        with self._connection() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", [HISTORY_KEY]).fetchone()
        if row is None:
            return []
        try:
            data = json.loads(row[0])
            return [HistoryEntry.model_validate(item) for item in data]
        except (ValueError, TypeError, ValidationError) as exc:
            log_event(
                "history_load_failed",
                "ERROR",
                "history",
                f"이력 로드 실패: {exc}",
                error_code="HISTORY_LOAD_001",
            )
            return []

    def save_all(self, entries: list[HistoryEntry]) -> None:
        """이력 전체 저장

        Args:
            entries: 저장할 이력 목록
        """
        value = json.dumps(
            [entry.model_dump(mode="json", by_alias=True) for entry in entries],
            ensure_ascii=False,
        )
        with self._connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", [HISTORY_KEY, value]
            )

    def add(self, record: PatientLabRecord, result: AnalysisResult) -> HistoryEntry:
        """새 분석 결과를 이력 맨 앞에 추가

        Args:
            record: 분석한 환자 기록
            result: 분석 결과

        Returns:
            생성된 이력 항목
        """
        with self._lock:
            entries = self.load_all()
            timestamp = int(time.time() * 1000)
            # 같은 밀리초에 저장된 항목과 식별자가 겹치지 않도록 보정
            existing = {entry.id for entry in entries}
            while str(timestamp) in existing:
                timestamp += 1
            entry = HistoryEntry(
                id=str(timestamp),
                timestamp=timestamp,
                patient_data=record,
                result=result,
            )
            self.save_all([entry, *entries])
        log_event("history_saved", "INFO", "history", "이력 저장", entry_id=entry.id)
        return entry

    def get(self, entry_id: str) -> HistoryEntry:
        """식별자로 이력 조회

        Raises:
            HistoryError: 항목이 없을 때
        """
        for entry in self.load_all():
            if entry.id == entry_id:
                return entry
        raise HistoryError("HISTORY_NOT_FOUND_001", f"이력 없음: {entry_id}")

    def delete(self, entry_id: str) -> bool:
        """식별자로 이력 삭제

        Args:
            entry_id: 이력 식별자

        Returns:
            삭제 여부
        """
        with self._lock:
            entries = self.load_all()
            remaining = [entry for entry in entries if entry.id != entry_id]
            if len(remaining) == len(entries):
                return False
            self.save_all(remaining)
        log_event("history_deleted", "INFO", "history", "이력 삭제", entry_id=entry_id)
        return True

    def clear(self) -> None:
        """이력 전체 삭제"""
        self.save_all([])
        log_event("history_cleared", "INFO", "history", "이력 전체 삭제")


def get_history_store() -> HistoryStore:
    """설정된 경로의 이력 저장소 반환"""
    return HistoryStore()
