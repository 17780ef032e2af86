from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from app.core.config import get_settings
from app.models.patient import PatientLabRecord

SYSTEM_INSTRUCTION_TEMPLATE = (
    "You are a nephrology expert assistant. Your task is to analyze patient lab "
    "results based *strictly* on the provided Brazilian Clinical Protocols and "
    "Therapeutic Guidelines (PCDT). Do not use any external knowledge. Provide a "
    "structured analysis and recommendations in a JSON format. The analysis should "
    "reference specific targets and criteria from the provided context. The "
    "recommendations should be actionable and based on the treatment flowcharts "
    "and guidelines in the context. Here is the PCDT context: {context}"
)

EXTRACTION_INSTRUCTION = (
    "You extract laboratory values from a clinical document of a chronic kidney "
    "disease patient. Return only values explicitly present in the document, "
    "converted to these units: hemoglobin g/dL, ferritin ng/mL, tsat %, calcium "
    "mg/dL, phosphorus mg/dL, pth pg/mL, alkalinePhosphatase U/L, egfr "
    "mL/min/1.73m². Omit any value that is not present."
)

# (라벨, 필드, 단위)
PATIENT_LINES = [
    ("eGFR (TFG estimada)", "egfr", "mL/min/1.73m²"),
    ("Hemoglobin", "hemoglobin", "g/dL"),
    ("Ferritin", "ferritin", "ng/mL"),
    ("Transferrin Saturation", "tsat", "%"),
    ("Total Calcium", "calcium", "mg/dL"),
    ("Phosphorus", "phosphorus", "mg/dL"),
    ("PTH", "pth", "pg/mL"),
    ("Alkaline Phosphatase", "alkaline_phosphatase", "U/L"),
]


@lru_cache
def load_guideline(path: str) -> str:
    """가이드라인(PCDT) 텍스트 로드

    Args:
        path: 가이드라인 파일 경로

    Returns:
        가이드라인 텍스트
    """
    return Path(path).read_text(encoding="utf-8").strip()


def system_instruction() -> str:
    """가이드라인을 포함한 시스템 지시문 생성"""
    context = load_guideline(get_settings().guideline_path)
    return SYSTEM_INSTRUCTION_TEMPLATE.format(context=context)


def _format_value(value: float | None) -> str:
    if value is None:
        return "não informado"
    return f"{value:g}"


def build_patient_info(record: PatientLabRecord) -> str:
    """환자 데이터 블록 생성

    Args:
        record: 환자 기록

    Returns:
        프롬프트용 환자 데이터 텍스트
    """
    lines = [
        f"- CKD Stage: {record.ckd_stage}",
        f"- Dialysis Type: {record.dialysis_type}",
    ]
    for label, field, unit in PATIENT_LINES:
        lines.append(f"- {label} ({unit}): {_format_value(getattr(record, field))}")
    return "\n".join(lines)


def build_prompt(record: PatientLabRecord) -> str:
    """분석 요청 프롬프트 생성

    Args:
        record: 환자 기록

    Returns:
        프롬프트 문자열
    """
    return (
        "Analyze the following patient's lab results based strictly on the provided "
        "Brazilian PCDT context. Provide a detailed evaluation for Anemia and MBD, "
        "suggest specific therapeutic actions according to the guidelines, and give "
        "an overall summary.\n\n"
        "Patient Data:\n"
        f"{build_patient_info(record)}"
    )
