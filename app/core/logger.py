from __future__ import annotations

import logging
from datetime import datetime, timezone

from app.core.telemetry import TelemetryStore


def log_event(
    event: str,
    level: str,
    stage: str,
    message: str,
    error_code: str | None = None,
    duration_ms: int | None = None,
    entry_id: str | None = None,
) -> None:
    """이벤트를 표준 로깅과 DuckDB에 기록

    Args:
        event: 이벤트 이름
        level: 로깅 레벨 문자열
        stage: 처리 단계(egfr/validation/analysis/extraction/history)
        message: 로그 메시지
        error_code: 에러 코드(선택)
        duration_ms: 처리 시간(밀리초, 선택)
        entry_id: 이력 식별자(선택)
    """
    logger = logging.getLogger("ckd-lab")
    extra = {
        "event": event,
        "stage": stage,
        "entry_id": entry_id or "-",
    }
    logger.log(getattr(logging, level.upper(), logging.INFO), message, extra=extra)

    TelemetryStore().insert_log(
        {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": level.upper(),
            "event": event,
            "stage": stage,
            "error_code": error_code,
            "message": message,
            "duration_ms": duration_ms,
            "entry_id": entry_id,
        }
    )
