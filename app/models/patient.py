from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

CkdStage = Literal["3a", "3b", "4", "5", "5D"]
DialysisType = Literal["Hemodialysis", "Peritoneal Dialysis", "None"]
Sex = Literal["male", "female"]


class PatientLabRecord(BaseModel):
    """환자 검사 기록(폼 상태)"""

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=True)

    ckd_stage: CkdStage = Field(..., alias="ckdStage", description="CKD 병기")
    dialysis_type: DialysisType = Field(
        ..., alias="dialysisType", description="투석 종류"
    )
    egfr: float | None = Field(default=None, description="eGFR(mL/min/1.73m²)")
    hemoglobin: float = Field(..., description="헤모글로빈(g/dL)")
    ferritin: float = Field(..., description="페리틴(ng/mL)")
    tsat: float = Field(..., description="트랜스페린 포화도(%)")
    calcium: float = Field(..., description="총 칼슘(mg/dL)")
    phosphorus: float = Field(..., description="인(mg/dL)")
    pth: float = Field(..., description="PTH(pg/mL)")
    alkaline_phosphatase: float = Field(
        ..., alias="alkalinePhosphatase", description="알칼리성 포스파타제(U/L)"
    )

    def to_wire(self) -> dict:
        """camelCase 키의 딕셔너리로 변환"""
        return self.model_dump(by_alias=True)


class PartialLabRecord(BaseModel):
    """문서 추출 결과(모든 필드 선택)"""

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=True)

    ckd_stage: CkdStage | None = Field(default=None, alias="ckdStage")
    dialysis_type: DialysisType | None = Field(default=None, alias="dialysisType")
    egfr: float | None = None
    hemoglobin: float | None = None
    ferritin: float | None = None
    tsat: float | None = None
    calcium: float | None = None
    phosphorus: float | None = None
    pth: float | None = None
    alkaline_phosphatase: float | None = Field(
        default=None, alias="alkalinePhosphatase"
    )


class CreatinineInput(BaseModel):
    """eGFR 계산기 입력"""

    creatinine: float = Field(..., description="혈청 크레아티닌(mg/dL)")
    age: float = Field(..., description="나이(년)")
    sex: Sex = Field(..., description="성별")


class EgfrEstimate(BaseModel):
    """eGFR 계산 결과"""

    egfr: float
    suggested_stage: CkdStage = Field(..., serialization_alias="suggestedStage")


DEFAULT_RECORD = {
    "ckdStage": "5D",
    "dialysisType": "Hemodialysis",
    "egfr": 10,
    "hemoglobin": 9.5,
    "ferritin": 80,
    "tsat": 18,
    "calcium": 8.8,
    "phosphorus": 6.1,
    "pth": 750,
    "alkalinePhosphatase": 110,
}

DEFAULT_CALCULATOR = {"creatinine": 1.2, "age": 60, "sex": "male"}


def default_record(overrides: dict | None = None) -> PatientLabRecord:
    """대표 투석 환자 값으로 초기 기록 생성

    Args:
        overrides: 덮어쓸 값(선택)

    Returns:
        초기 환자 기록
    """
    data = dict(DEFAULT_RECORD)
    if overrides:
        data.update(overrides)
    return PatientLabRecord.model_validate(data)


def default_calculator(overrides: dict | None = None) -> CreatinineInput:
    """계산기 초기 입력 생성"""
    data = dict(DEFAULT_CALCULATOR)
    if overrides:
        data.update(overrides)
    return CreatinineInput.model_validate(data)
