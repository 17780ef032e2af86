from __future__ import annotations

from datetime import datetime, timezone

import httpx
from pydantic import ValidationError

from app.clients.gemini_api import generate_structured, text_part
from app.core.config import get_settings
from app.core.errors import AnalysisError, ValidationFailedError
from app.core.logger import log_event
from app.core.prompt import build_prompt, system_instruction
from app.core.validation import gate_submission
from app.models.analysis import RESPONSE_SCHEMA, AnalysisResult
from app.models.patient import PatientLabRecord

ANALYSIS_FAILED_MESSAGE = "Failed to get a valid analysis from the AI model."
USER_FAILURE_MESSAGE = "Ocorreu um erro ao analisar os dados."


def analyze_patient_data(
    record: PatientLabRecord,
    errors: dict[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> AnalysisResult:
    """검증된 환자 기록을 AI 분석 서비스로 분석

    Args:
        record: 환자 기록
        errors: 입력 중 누적된 에러 맵(선택)
        transport: httpx 전송 계층(테스트용, 선택)

    Returns:
        분석 결과

    Raises:
        ValidationFailedError: 기록이 검사 범위를 벗어날 때
        AnalysisError: API 키 누락 또는 분석 호출 실패 시
    """
    gate = gate_submission(record, errors)
    if not gate.allowed:
        log_event(
            "validation_failed",
            "WARNING",
            "validation",
            "범위 밖 값으로 분석 거부",
            error_code="VALIDATION_001",
        )
        raise ValidationFailedError(gate.errors)

    settings = get_settings()
    if not settings.gemini_api_key:
        log_event(
            "analysis_failed",
            "ERROR",
            "analysis",
            "GEMINI_API_KEY 미설정",
            error_code="ANALYSIS_CONFIG_001",
        )
        raise AnalysisError("ANALYSIS_CONFIG_001", "GEMINI_API_KEY environment variable not set.")

    start = datetime.now(timezone.utc)
    log_event("analysis_start", "INFO", "analysis", "분석 시작")
    try:
        raw = generate_structured(
            [text_part(build_prompt(record))],
            system_instruction(),
            RESPONSE_SCHEMA,
            settings=settings,
            transport=transport,
        )
        result = AnalysisResult.model_validate(raw)
    except (httpx.HTTPError, ValueError, ValidationError) as exc:
        log_event(
            "analysis_failed",
            "ERROR",
            "analysis",
            f"Gemini 호출 실패: {exc}",
            error_code="ANALYSIS_FAILED_001",
        )
        raise AnalysisError("ANALYSIS_FAILED_001", ANALYSIS_FAILED_MESSAGE) from exc

    log_event(
        "analysis_complete",
        "INFO",
        "analysis",
        "분석 완료",
        duration_ms=int((datetime.now(timezone.utc) - start).total_seconds() * 1000),
    )
    return result
