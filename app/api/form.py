from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from app.core.analysis import USER_FAILURE_MESSAGE, analyze_patient_data
from app.core.config import load_app_config
from app.core.egfr import apply_estimate
from app.core.comparison import compare_entries
from app.core.errors import AnalysisError, HistoryError, ValidationFailedError
from app.core.history import get_history_store
from app.core.logger import log_event
from app.core.validation import VALIDATION_RANGES, validate_record
from app.models.patient import (
    CreatinineInput,
    PatientLabRecord,
    default_calculator,
    default_record,
)
from app.utils.parsing import parse_form_float, record_data_from_form

router = APIRouter()

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[1] / "templates"))

FORM_FIELDS = ["ckdStage", "dialysisType", *VALIDATION_RANGES]
COMPARE_FAILURE_MESSAGE = "Selecione duas análises diferentes para comparar."


def _render(
    request: Request,
    values: dict,
    calculator: dict,
    errors: dict | None = None,
    entry: dict | None = None,
    error: str | None = None,
    comparison: dict | None = None,
) -> HTMLResponse:
    """폼 페이지 렌더링

    Args:
        request: FastAPI 요청 객체
        values: 폼 입력값
        calculator: 계산기 입력값
        errors: 필드별 에러 맵
        entry: 분석 이력 항목(선택)
        error: 화면 상단 에러 메시지(선택)
        comparison: 두 이력 비교 결과(선택)

    Returns:
        HTML 응답
    """
    errors = errors or {}
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "values": values,
            "calculator": calculator,
            "errors": errors,
            "ranges": VALIDATION_RANGES,
            "form_is_valid": not any(errors.values()),
            "entry": entry,
            "error": error,
            "comparison": comparison,
            "history": get_history_store().load_all(),
        },
    )


def _display(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def _form_values(form) -> dict:
    return {field: str(form.get(field, "")).strip() for field in FORM_FIELDS}


def _calculator_values(form) -> dict:
    return {
        "creatinine": str(form.get("creatinine", "")).strip(),
        "age": str(form.get("age", "")).strip(),
        "sex": str(form.get("sex", "male")).strip(),
    }


def _type_errors(exc: ValidationError) -> dict[str, str]:
    errors: dict[str, str] = {}
    for item in exc.errors():
        field = str(item["loc"][0]) if item.get("loc") else "form"
        errors[field] = "Valor inválido"
    return errors


def _default_form(request: Request, **kwargs) -> HTMLResponse:
    config = load_app_config()
    record = default_record(config.form_defaults)
    calculator = default_calculator(config.calculator_defaults)
    values = {key: _display(value) for key, value in record.to_wire().items()}
    return _render(request, values, calculator.model_dump(), **kwargs)


@router.get("/", response_class=HTMLResponse)
def show_form(request: Request) -> HTMLResponse:
    """기본값으로 폼 렌더링"""
    return _default_form(request)


@router.post("/", response_class=HTMLResponse)
async def submit_form(request: Request) -> HTMLResponse:
    """폼 제출: 전체 재검사 후 유효하면 분석

    Args:
        request: FastAPI 요청 객체

    Returns:
        HTML 응답
    """
    form = await request.form()
    values = _form_values(form)
    calculator = _calculator_values(form)
    try:
        record = PatientLabRecord.model_validate(record_data_from_form(form))
    except ValidationError as exc:
        return _render(request, values, calculator, errors=_type_errors(exc))

    errors = validate_record(record)
    try:
        result = await run_in_threadpool(analyze_patient_data, record, errors)
    except ValidationFailedError as exc:
        return _render(request, values, calculator, errors=exc.errors)
    except AnalysisError:
        return _render(request, values, calculator, errors=errors, error=USER_FAILURE_MESSAGE)
    entry = await run_in_threadpool(get_history_store().add, record, result)
    return _render(
        request,
        values,
        calculator,
        errors=errors,
        entry=entry.model_dump(mode="json", by_alias=True),
    )


@router.post("/calculate", response_class=HTMLResponse)
async def calculate(request: Request) -> HTMLResponse:
    """계산기 결과(eGFR, 병기)를 폼에 반영

    Args:
        request: FastAPI 요청 객체

    Returns:
        HTML 응답
    """
    form = await request.form()
    values = _form_values(form)
    calculator = _calculator_values(form)
    try:
        record = PatientLabRecord.model_validate(record_data_from_form(form))
        calculator_input = CreatinineInput(
            creatinine=parse_form_float(calculator["creatinine"]),
            age=parse_form_float(calculator["age"]),
            sex=calculator["sex"],
        )
    except ValidationError as exc:
        return _render(request, values, calculator, errors=_type_errors(exc))

    updated = apply_estimate(record, calculator_input)
    if updated is not record:
        values["egfr"] = _display(updated.egfr)
        values["ckdStage"] = updated.ckd_stage
        log_event(
            "egfr_estimated",
            "INFO",
            "egfr",
            f"eGFR {updated.egfr} 병기 {updated.ckd_stage}",
        )
    return _render(request, values, calculator, errors=validate_record(updated))


@router.get("/compare", response_class=HTMLResponse)
def compare_form(request: Request, ids: list[str] = Query(default=[])) -> HTMLResponse:
    """선택한 두 이력 비교 화면

    Args:
        request: FastAPI 요청 객체
        ids: 체크박스로 선택한 이력 식별자

    Returns:
        HTML 응답
    """
    store = get_history_store()
    try:
        comparison = compare_entries([store.get(entry_id) for entry_id in ids])
    except HistoryError:
        return _default_form(request, error=COMPARE_FAILURE_MESSAGE)
    return _default_form(request, comparison=comparison.model_dump(by_alias=True))


@router.post("/history/clear")
def clear_history_form() -> RedirectResponse:
    """이력 전체 삭제 후 폼으로 이동"""
    get_history_store().clear()
    return RedirectResponse("/", status_code=303)


@router.get("/history/{entry_id}", response_class=HTMLResponse)
def open_history_entry(request: Request, entry_id: str) -> HTMLResponse:
    """이력 항목을 폼 값과 분석 결과로 다시 표시

    Args:
        request: FastAPI 요청 객체
        entry_id: 이력 식별자

    Returns:
        HTML 응답
    """
    try:
        entry = get_history_store().get(entry_id)
    except HistoryError as exc:
        raise HTTPException(status_code=404, detail={"code": exc.code, "message": exc.message}) from exc
    config = load_app_config()
    calculator = default_calculator(config.calculator_defaults)
    values = {key: _display(value) for key, value in entry.patient_data.to_wire().items()}
    return _render(
        request,
        values,
        calculator.model_dump(),
        errors=validate_record(entry.patient_data),
        entry=entry.model_dump(mode="json", by_alias=True),
    )


@router.post("/history/{entry_id}/delete")
def delete_history_entry(entry_id: str) -> RedirectResponse:
    """이력 항목 삭제 후 폼으로 이동"""
    get_history_store().delete(entry_id)
    return RedirectResponse("/", status_code=303)
