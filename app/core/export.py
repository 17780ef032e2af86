from __future__ import annotations

from datetime import datetime, timezone

from app.models.analysis import HistoryEntry


def export_entry(entry: HistoryEntry) -> dict:
    """이력 항목을 내보내기용 JSON 문서로 변환

    Args:
        entry: 이력 항목

    Returns:
        내보내기 문서
    """
    created = datetime.fromtimestamp(entry.timestamp / 1000, tz=timezone.utc)
    return {
        "exportedAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "analysisDate": created.isoformat().replace("+00:00", "Z"),
        "id": entry.id,
        "patientData": entry.patient_data.model_dump(mode="json", by_alias=True),
        "result": entry.result.model_dump(mode="json", by_alias=True),
    }


def export_filename(entry: HistoryEntry) -> str:
    """내보내기 파일명 생성"""
    created = datetime.fromtimestamp(entry.timestamp / 1000, tz=timezone.utc)
    return f"analise-drc-{created.strftime('%Y%m%d-%H%M%S')}.json"
