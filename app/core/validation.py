from __future__ import annotations

import math
from typing import NamedTuple

from pydantic import BaseModel, Field

from app.models.patient import PatientLabRecord

INVALID_NUMBER_MESSAGE = "Número inválido"


class FieldRange(NamedTuple):
    """필드 허용 범위(양 끝 포함)"""

    min: float
    max: float
    unit: str


VALIDATION_RANGES: dict[str, FieldRange] = {
    "egfr": FieldRange(1, 200, "mL/min"),
    "hemoglobin": FieldRange(5, 18, "g/dL"),
    "ferritin": FieldRange(10, 5000, "ng/mL"),
    "tsat": FieldRange(1, 100, "%"),
    "calcium": FieldRange(6, 12, "mg/dL"),
    "phosphorus": FieldRange(2, 12, "mg/dL"),
    "pth": FieldRange(10, 5000, "pg/mL"),
    "alkalinePhosphatase": FieldRange(20, 1000, "U/L"),
}

_ATTRIBUTE_NAMES = {
    "alkalinePhosphatase": "alkaline_phosphatase",
}
_WIRE_NAMES = {value: key for key, value in _ATTRIBUTE_NAMES.items()}


class SubmissionGate(BaseModel):
    """제출 가능 여부와 전체 에러 맵"""

    allowed: bool
    errors: dict[str, str] = Field(default_factory=dict)


def wire_name(field: str) -> str:
    """속성명 또는 와이어명을 와이어명(camelCase)으로 변환"""
    return _WIRE_NAMES.get(field, field)


def _to_number(value: object) -> float | None:
    """값을 유한한 실수로 변환, 실패 시 None"""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _format_bound(bound: float) -> str:
    return f"{bound:g}"


def validate_field(field: str, value: object) -> str:
    """단일 필드 범위 검사

    Args:
        field: 필드명(camelCase 또는 snake_case)
        value: 검사할 값

    Returns:
        에러 메시지, 유효하면 빈 문자열
    """
    rules = VALIDATION_RANGES.get(wire_name(field))
    if rules is None:
        return ""
    number = _to_number(value)
    if number is None:
        return INVALID_NUMBER_MESSAGE
    if number < rules.min or number > rules.max:
        return f"{_format_bound(rules.min)} - {_format_bound(rules.max)} {rules.unit}"
    return ""


def _record_value(record: PatientLabRecord, field: str) -> object:
    return getattr(record, _ATTRIBUTE_NAMES.get(field, field))


def validate_record(record: PatientLabRecord) -> dict[str, str]:
    """범위가 정의된 모든 필드를 다시 검사

    Args:
        record: 환자 기록

    Returns:
        필드별 에러 맵(빈 문자열은 유효)
    """
    errors: dict[str, str] = {}
    for field in VALIDATION_RANGES:
        value = _record_value(record, field)
        # egfr는 입력하지 않을 수 있음
        errors[field] = "" if value is None else validate_field(field, value)
    return errors


def form_is_valid(record: PatientLabRecord, errors: dict[str, str] | None = None) -> bool:
    """캐시된 에러 맵과 재계산 결과가 모두 비어 있는지 확인

    Args:
        record: 환자 기록
        errors: 입력 중 누적된 에러 맵(선택)

    Returns:
        제출 가능 여부
    """
    if any(message for message in (errors or {}).values()):
        return False
    return not any(validate_record(record).values())


def gate_submission(
    record: PatientLabRecord, errors: dict[str, str] | None = None
) -> SubmissionGate:
    """분석 요청 전 제출 게이트

    Args:
        record: 환자 기록
        errors: 입력 중 누적된 에러 맵(선택)

    Returns:
        허용 여부, 거부 시 모든 위반을 담은 에러 맵
    """
    if form_is_valid(record, errors):
        return SubmissionGate(allowed=True)
    return SubmissionGate(allowed=False, errors=validate_record(record))
