from pydantic import BaseModel, ConfigDict, Field

from app.models.patient import PatientLabRecord


class AnalysisSection(BaseModel):
    """분석 섹션(평가 + 권고)"""

    evaluation: str = Field(..., description="평가")
    recommendations: list[str] = Field(..., description="권고 목록")


class AnalysisResult(BaseModel):
    """AI 분석 결과"""

    model_config = ConfigDict(populate_by_name=True)

    anemia_analysis: AnalysisSection = Field(..., alias="anemiaAnalysis")
    mbd_analysis: AnalysisSection = Field(..., alias="mbdAnalysis")
    overall_summary: str = Field(..., alias="overallSummary")


class HistoryEntry(BaseModel):
    """분석 이력 스냅샷"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., description="이력 식별자")
    timestamp: int = Field(..., description="생성 시각(epoch ms)")
    patient_data: PatientLabRecord = Field(..., alias="patientData")
    result: AnalysisResult


def _section_schema(evaluation: str, recommendations: str) -> dict:
    return {
        "type": "OBJECT",
        "properties": {
            "evaluation": {"type": "STRING", "description": evaluation},
            "recommendations": {
                "type": "ARRAY",
                "items": {"type": "STRING"},
                "description": recommendations,
            },
        },
        "required": ["evaluation", "recommendations"],
    }


RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "anemiaAnalysis": _section_schema(
            "Detailed evaluation of anemia parameters (Hemoglobin, Ferritin, TSAT) "
            "based on the provided PCDT.",
            "List of actionable recommendations for anemia management based on the PCDT.",
        ),
        "mbdAnalysis": _section_schema(
            "Detailed evaluation of Mineral and Bone Disorder (MBD) parameters "
            "(Calcium, Phosphorus, PTH, Alkaline Phosphatase) based on the provided PCDT.",
            "List of actionable recommendations for MBD management based on the PCDT, "
            "including medication suggestions if applicable.",
        ),
        "overallSummary": {
            "type": "STRING",
            "description": "A brief overall summary of the patient's condition and "
            "the most critical points of attention.",
        },
    },
    "required": ["anemiaAnalysis", "mbdAnalysis", "overallSummary"],
}
