from __future__ import annotations

import math
from typing import Mapping

from app.core.validation import VALIDATION_RANGES

TEXT_FIELDS = ("ckdStage", "dialysisType")


def parse_form_float(value: object) -> float:
    """폼 입력값을 실수로 파싱

    Args:
        value: 원본 값

    Returns:
        파싱된 실수, 실패 시 NaN
    """
    if value is None:
        return math.nan
    text = str(value).strip().replace(",", ".")
    if text == "":
        return math.nan
    try:
        return float(text)
    except ValueError:
        return math.nan


def parse_form_float_optional(value: object) -> float | None:
    """값이 있으면 실수로 파싱

    Args:
        value: 원본 값

    Returns:
        파싱된 실수, 빈 값이면 None, 실패 시 NaN
    """
    if value is None or str(value).strip() == "":
        return None
    return parse_form_float(value)


def record_data_from_form(form: Mapping[str, object]) -> dict:
    """폼 데이터를 환자 기록 딕셔너리로 변환

    Args:
        form: 폼 데이터(camelCase 키)

    Returns:
        PatientLabRecord 검증용 딕셔너리
    """
    data: dict = {key: str(form.get(key, "")).strip() for key in TEXT_FIELDS}
    for field in VALIDATION_RANGES:
        if field == "egfr":
            data[field] = parse_form_float_optional(form.get(field))
        else:
            data[field] = parse_form_float(form.get(field))
    return data

