from __future__ import annotations

from pydantic import BaseModel, Field

from app.core.errors import HistoryError
from app.models.analysis import HistoryEntry

# (와이어명, 속성명, 단위)
COMPARED_FIELDS = [
    ("hemoglobin", "hemoglobin", "g/dL"),
    ("ferritin", "ferritin", "ng/mL"),
    ("tsat", "tsat", "%"),
    ("calcium", "calcium", "mg/dL"),
    ("phosphorus", "phosphorus", "mg/dL"),
    ("pth", "pth", "pg/mL"),
    ("alkalinePhosphatase", "alkaline_phosphatase", "U/L"),
]


class FieldTrend(BaseModel):
    """검사 항목 변화"""

    field: str
    unit: str
    previous: float
    current: float
    delta: float


class Comparison(BaseModel):
    """두 이력 비교 결과"""

    previous_id: str = Field(..., serialization_alias="previousId")
    current_id: str = Field(..., serialization_alias="currentId")
    trends: list[FieldTrend]
    previous_summary: str = Field(..., serialization_alias="previousSummary")
    current_summary: str = Field(..., serialization_alias="currentSummary")
    current_recommendations: list[str] = Field(..., serialization_alias="currentRecommendations")


def compare_entries(entries: list[HistoryEntry]) -> Comparison:
    """두 이력을 시간순으로 비교

    Args:
        entries: 비교할 이력(정확히 2개)

    Returns:
        항목별 이전/현재 값과 변화량

    Raises:
        HistoryError: 서로 다른 이력 2개가 아닐 때
    """
    if len(entries) != 2 or entries[0].id == entries[1].id:
        raise HistoryError("HISTORY_COMPARE_001", "비교하려면 서로 다른 이력 2개가 필요함")
    previous, current = sorted(entries, key=lambda entry: entry.timestamp)
    trends = []
    for field, attribute, unit in COMPARED_FIELDS:
        before = getattr(previous.patient_data, attribute)
        after = getattr(current.patient_data, attribute)
        trends.append(
            FieldTrend(
                field=field,
                unit=unit,
                previous=before,
                current=after,
                delta=round(after - before, 1),
            )
        )
    return Comparison(
        previous_id=previous.id,
        current_id=current.id,
        trends=trends,
        previous_summary=previous.result.overall_summary,
        current_summary=current.result.overall_summary,
        current_recommendations=[
            *current.result.anemia_analysis.recommendations,
            *current.result.mbd_analysis.recommendations,
        ],
    )
