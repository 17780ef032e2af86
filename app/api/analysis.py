from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from app.core.analysis import USER_FAILURE_MESSAGE, analyze_patient_data
from app.core.egfr import estimate_egfr, final_stage
from app.core.errors import AnalysisError, ExtractionError, ValidationFailedError
from app.core.extraction import extract_lab_values
from app.core.history import get_history_store
from app.core.logger import log_event
from app.core.validation import gate_submission, validate_field
from app.models.patient import CkdStage, CreatinineInput, DialysisType, PatientLabRecord

router = APIRouter()


class EgfrRequest(CreatinineInput):
    """eGFR 계산 요청(갱신 전 병기/투석 상태 포함)"""

    ckd_stage: CkdStage | None = Field(default=None, alias="ckdStage")
    dialysis_type: DialysisType = Field(default="None", alias="dialysisType")


class ValidateRequest(BaseModel):
    """검사 요청"""

    record: PatientLabRecord
    errors: dict[str, str] = Field(default_factory=dict)


class FieldRequest(BaseModel):
    """단일 필드 검사 요청"""

    field: str
    value: float | str | None = None


@router.post("/egfr")
def calculate_egfr(payload: EgfrRequest) -> dict:
    """크레아티닌으로 eGFR과 병기 계산

    Args:
        payload: 계산기 입력과 갱신 전 기록 상태

    Returns:
        계산 결과, 전제 조건 위반 시 calculated=False
    """
    estimate = estimate_egfr(payload.creatinine, payload.age, payload.sex)
    if estimate is None:
        return {"calculated": False}
    current_stage = payload.ckd_stage or estimate.suggested_stage
    stage = final_stage(estimate.suggested_stage, current_stage, payload.dialysis_type)
    log_event("egfr_estimated", "INFO", "egfr", f"eGFR {estimate.egfr} 병기 {stage}")
    return {
        "calculated": True,
        "egfr": estimate.egfr,
        "suggestedStage": estimate.suggested_stage,
        "ckdStage": stage,
    }


@router.post("/validate/field")
def validate_single_field(payload: FieldRequest) -> dict:
    """단일 필드 범위 검사"""
    return {"field": payload.field, "error": validate_field(payload.field, payload.value)}


@router.post("/validate")
def validate(payload: ValidateRequest) -> dict:
    """기록 전체 제출 가능 여부 검사

    Args:
        payload: 환자 기록과 누적 에러 맵

    Returns:
        허용 여부와 에러 맵
    """
    return gate_submission(payload.record, payload.errors).model_dump()


@router.post("/analyze")
def analyze(payload: ValidateRequest) -> dict:
    """환자 기록 분석 후 이력에 저장

    Args:
        payload: 환자 기록과 누적 에러 맵

    Returns:
        이력 항목

    Raises:
        HTTPException: 검사 실패(422) 또는 분석 실패(502) 시
    """
    try:
        result = analyze_patient_data(payload.record, payload.errors)
    except ValidationFailedError as exc:
        raise HTTPException(
            status_code=422,
            detail={"code": exc.code, "errors": exc.errors},
        ) from exc
    except AnalysisError as exc:
        raise HTTPException(
            status_code=502,
            detail={"code": exc.code, "message": USER_FAILURE_MESSAGE},
        ) from exc
    entry = get_history_store().add(payload.record, result)
    return entry.model_dump(mode="json", by_alias=True)


@router.post("/extract")
async def extract(file: UploadFile = File(...)) -> dict:
    """업로드 문서에서 검사 값 추정

    Args:
        file: 업로드 파일

    Returns:
        부분 기록과 범위 검사 결과
    """
    content = await file.read()
    try:
        result = await run_in_threadpool(
            extract_lab_values, content, file.content_type or ""
        )
    except ExtractionError as exc:
        status_code = 502 if exc.code == "EXTRACT_FAILED_001" else 400
        raise HTTPException(
            status_code=status_code,
            detail={"code": exc.code, "message": exc.message},
        ) from exc
    return {
        "record": result.record.model_dump(by_alias=True, exclude_none=True),
        "errors": result.errors,
    }
