from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.auth import require_admin
from app.core.history import get_history_store
from app.core.telemetry import LOG_COLUMNS, TelemetryStore

router = APIRouter()


def _log_row(row: tuple) -> dict:
    record = dict(zip(LOG_COLUMNS, row))
    if record.get("timestamp") is not None:
        record["timestamp"] = record["timestamp"].isoformat()
    return record


@router.get("/logs")
def admin_logs(event: str | None = None, admin: None = Depends(require_admin)) -> list[dict]:
    """텔레메트리 로그 조회

    Args:
        event: 이벤트 이름 필터(선택)
        admin: 관리자 인증 의존성

    Returns:
        로그 목록
    """
    if event:
        rows = TelemetryStore().query_logs("event = ?", [event])
    else:
        rows = TelemetryStore().query_logs("", [])
    return [_log_row(row) for row in rows]


@router.get("/status")
def admin_status(admin: None = Depends(require_admin)) -> dict:
    """서비스 상태 요약

    Args:
        admin: 관리자 인증 의존성

    Returns:
        이력 건수와 마지막 분석 이벤트
    """
    last = TelemetryStore().last_event(["analysis_complete", "analysis_failed"])
    return {
        "history_count": len(get_history_store().load_all()),
        "last_analysis": _log_row(last) if last else None,
    }
