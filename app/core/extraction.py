from __future__ import annotations

import httpx
from pydantic import BaseModel, Field, ValidationError

from app.clients.gemini_api import generate_structured, inline_part, text_part
from app.core.config import get_settings
from app.core.errors import ExtractionError
from app.core.logger import log_event
from app.core.prompt import EXTRACTION_INSTRUCTION
from app.core.validation import VALIDATION_RANGES, validate_field
from app.models.patient import PartialLabRecord

SUPPORTED_MIME_TYPES = {
    "application/pdf",
    "image/png",
    "image/jpeg",
    "image/webp",
    "text/plain",
}

EXTRACTION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        **{field: {"type": "NUMBER"} for field in VALIDATION_RANGES},
        "ckdStage": {"type": "STRING", "enum": ["3a", "3b", "4", "5", "5D"]},
        "dialysisType": {
            "type": "STRING",
            "enum": ["Hemodialysis", "Peritoneal Dialysis", "None"],
        },
    },
}


class ExtractionResult(BaseModel):
    """문서 추출 결과와 필드별 검사 결과"""

    record: PartialLabRecord
    errors: dict[str, str] = Field(default_factory=dict)


def extract_lab_values(
    content: bytes,
    mime_type: str,
    transport: httpx.BaseTransport | None = None,
) -> ExtractionResult:
    """업로드 문서에서 검사 값 추정

    Args:
        content: 파일 바이트
        mime_type: 파일 MIME 타입
        transport: httpx 전송 계층(테스트용, 선택)

    Returns:
        부분 기록과 범위 검사 결과

    Raises:
        ExtractionError: 빈 파일, 미지원 형식, 호출 실패 시
    """
    if not content:
        raise ExtractionError("EXTRACT_EMPTY_001", "빈 파일")
    if mime_type not in SUPPORTED_MIME_TYPES:
        raise ExtractionError("EXTRACT_MIME_001", f"지원하지 않는 파일 형식: {mime_type}")
    settings = get_settings()
    if not settings.gemini_api_key:
        raise ExtractionError("EXTRACT_CONFIG_001", "GEMINI_API_KEY environment variable not set.")

    try:
        raw = generate_structured(
            [
                inline_part(content, mime_type),
                text_part("Extract the laboratory values from this document."),
            ],
            EXTRACTION_INSTRUCTION,
            EXTRACTION_SCHEMA,
            settings=settings,
            transport=transport,
        )
        record = PartialLabRecord.model_validate(raw)
    except (httpx.HTTPError, ValueError, ValidationError) as exc:
        log_event(
            "extraction_failed",
            "ERROR",
            "extraction",
            f"문서 추출 실패: {exc}",
            error_code="EXTRACT_FAILED_001",
        )
        raise ExtractionError("EXTRACT_FAILED_001", "Failed to extract lab values.") from exc

    values = record.model_dump(by_alias=True)
    errors: dict[str, str] = {}
    for field in VALIDATION_RANGES:
        if values.get(field) is None:
            continue
        message = validate_field(field, values[field])
        if message:
            errors[field] = message
    log_event(
        "extraction_complete",
        "INFO",
        "extraction",
        f"추출 완료(범위 밖 {len(errors)}건)",
    )
    return ExtractionResult(record=record, errors=errors)
