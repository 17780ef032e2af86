from __future__ import annotations

import math

from app.models.patient import (
    CkdStage,
    CreatinineInput,
    DialysisType,
    EgfrEstimate,
    PatientLabRecord,
    Sex,
)

CKD_EPI_CONSTANT = 142.0
CREATININE_EXPONENT_HIGH = -1.200
AGE_FACTOR = 0.9938

# (kappa, alpha, gender_factor)
SEX_COEFFICIENTS: dict[str, tuple[float, float, float]] = {
    "female": (0.7, -0.241, 1.012),
    "male": (0.9, -0.302, 1.0),
}

# 하한 포함, 상한 미포함
STAGE_BANDS: list[tuple[float, float, CkdStage]] = [
    (45.0, 60.0, "3a"),
    (30.0, 45.0, "3b"),
    (15.0, 30.0, "4"),
    (-math.inf, 15.0, "5"),
]
FALLBACK_STAGE: CkdStage = "5"


def _round_one_decimal(value: float) -> float:
    """소수점 한 자리 반올림(0.05 경계는 올림)"""
    return math.floor(value * 10 + 0.5) / 10


def estimate_egfr(creatinine: float, age: float, sex: Sex) -> EgfrEstimate | None:
    """CKD-EPI 2021(인종 무관) 식으로 eGFR 계산

    Args:
        creatinine: 혈청 크레아티닌(mg/dL)
        age: 나이(년)
        sex: 성별(male/female)

    Returns:
        eGFR 및 제안 병기, 크레아티닌 또는 나이가 양수가 아니면 None
    """
    if not creatinine > 0 or not age > 0:
        return None
    kappa, alpha, gender_factor = SEX_COEFFICIENTS[sex]
    ratio = creatinine / kappa
    min_ratio = min(ratio, 1.0)
    max_ratio = max(ratio, 1.0)
    raw = (
        CKD_EPI_CONSTANT
        * min_ratio**alpha
        * max_ratio**CREATININE_EXPONENT_HIGH
        * AGE_FACTOR**age
        * gender_factor
    )
    egfr = _round_one_decimal(raw)
    return EgfrEstimate(egfr=egfr, suggested_stage=suggest_stage(egfr))


def suggest_stage(egfr: float) -> CkdStage:
    """eGFR로 CKD 병기 제안

    Args:
        egfr: 반올림된 eGFR

    Returns:
        제안 병기(60 이상은 기본값 5로 떨어짐)
    """
    for lower, upper, stage in STAGE_BANDS:
        if lower <= egfr < upper:
            return stage
    return FALLBACK_STAGE


def final_stage(
    suggested: CkdStage, current_stage: CkdStage, current_dialysis: DialysisType
) -> CkdStage:
    """투석 상태를 반영한 최종 병기

    Args:
        suggested: 계산으로 제안된 병기
        current_stage: 갱신 전 기록의 병기
        current_dialysis: 갱신 전 기록의 투석 종류

    Returns:
        투석 중이면 5D, 아니면 제안 병기
    """
    if current_dialysis != "None" or current_stage == "5D":
        return "5D"
    return suggested


def apply_estimate(
    record: PatientLabRecord, calculator: CreatinineInput
) -> PatientLabRecord:
    """계산 결과를 기록에 반영한 새 기록 반환

    Args:
        record: 현재 환자 기록
        calculator: 크레아티닌 계산기 입력

    Returns:
        eGFR과 병기가 반영된 기록, 전제 조건 위반 시 원래 기록
    """
    estimate = estimate_egfr(calculator.creatinine, calculator.age, calculator.sex)
    if estimate is None:
        return record
    stage = final_stage(estimate.suggested_stage, record.ckd_stage, record.dialysis_type)
    return record.model_copy(update={"egfr": estimate.egfr, "ckd_stage": stage})
