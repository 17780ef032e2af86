import math

import pytest

from app.core.egfr import (
    _round_one_decimal,
    apply_estimate,
    estimate_egfr,
    final_stage,
    suggest_stage,
)
from app.models.patient import CreatinineInput, default_record


def test_estimate_male_reference_case():
    estimate = estimate_egfr(1.2, 60, "male")
    assert estimate is not None
    assert estimate.egfr == pytest.approx(69.2)
    # 60 이상은 기존 기본값(5)으로 떨어짐
    assert estimate.suggested_stage == "5"


def test_estimate_is_deterministic():
    first = estimate_egfr(2.3, 71, "female")
    second = estimate_egfr(2.3, 71, "female")
    assert first == second


def test_estimate_at_kappa_collapses_ratios():
    estimate = estimate_egfr(0.7, 50, "female")
    expected = math.floor(142 * 0.9938**50 * 1.012 * 10 + 0.5) / 10
    assert estimate.egfr == expected


def test_estimate_stage_3a():
    estimate = estimate_egfr(1.5, 60, "male")
    assert 45 <= estimate.egfr < 60
    assert estimate.suggested_stage == "3a"


def test_estimate_stage_5_for_high_creatinine():
    estimate = estimate_egfr(6.0, 65, "male")
    assert estimate.egfr < 15
    assert estimate.suggested_stage == "5"


@pytest.mark.parametrize(
    "creatinine,age",
    [(0, 60), (-1.0, 60), (1.2, 0), (1.2, -5), (math.nan, 60)],
)
def test_estimate_precondition_returns_none(creatinine, age):
    assert estimate_egfr(creatinine, age, "male") is None


def test_round_half_goes_up():
    assert _round_one_decimal(12.25) == 12.3
    assert _round_one_decimal(12.24) == 12.2


@pytest.mark.parametrize(
    "egfr,stage",
    [
        (59.9, "3a"),
        (45.0, "3a"),
        (44.9, "3b"),
        (30.0, "3b"),
        (29.9, "4"),
        (15.0, "4"),
        (14.9, "5"),
        (3.0, "5"),
        (60.0, "5"),
        (95.0, "5"),
    ],
)
def test_suggest_stage_boundaries(egfr, stage):
    assert suggest_stage(egfr) == stage


def test_final_stage_dialysis_override():
    assert final_stage("3a", "4", "Hemodialysis") == "5D"
    assert final_stage("3a", "4", "Peritoneal Dialysis") == "5D"
    assert final_stage("3a", "5D", "None") == "5D"
    assert final_stage("3a", "4", "None") == "3a"


def test_apply_estimate_writes_back_without_dialysis():
    record = default_record({"ckdStage": "4", "dialysisType": "None"})
    updated = apply_estimate(record, CreatinineInput(creatinine=1.5, age=60, sex="male"))
    assert updated.ckd_stage == "3a"
    assert updated.egfr == estimate_egfr(1.5, 60, "male").egfr
    # 원본 기록은 변경되지 않음
    assert record.ckd_stage == "4"
    assert record.egfr == 10


def test_apply_estimate_keeps_5d_on_hemodialysis():
    record = default_record({"ckdStage": "4", "dialysisType": "Hemodialysis"})
    updated = apply_estimate(record, CreatinineInput(creatinine=1.5, age=60, sex="male"))
    assert updated.ckd_stage == "5D"
    assert 45 <= updated.egfr < 60


def test_apply_estimate_precondition_is_noop():
    record = default_record()
    updated = apply_estimate(record, CreatinineInput(creatinine=0, age=60, sex="male"))
    assert updated is record
