from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

from app.core.comparison import compare_entries
from app.core.errors import HistoryError
from app.core.export import export_entry, export_filename
from app.core.history import get_history_store

router = APIRouter()


def _not_found(exc: HistoryError) -> HTTPException:
    return HTTPException(status_code=404, detail={"code": exc.code, "message": exc.message})


@router.get("/history")
def list_history() -> list[dict]:
    """이력 목록(최신순)"""
    entries = sorted(get_history_store().load_all(), key=lambda entry: entry.timestamp, reverse=True)
    return [entry.model_dump(mode="json", by_alias=True) for entry in entries]


@router.delete("/history")
def clear_history() -> dict:
    """이력 전체 삭제"""
    get_history_store().clear()
    return {"status": "cleared"}


@router.get("/history/compare")
def compare_history(ids: list[str] = Query(...)) -> dict:
    """두 이력 비교

    Args:
        ids: 비교할 이력 식별자 2개

    Returns:
        항목별 변화와 요약
    """
    store = get_history_store()
    try:
        entries = [store.get(entry_id) for entry_id in ids]
        comparison = compare_entries(entries)
    except HistoryError as exc:
        if exc.code == "HISTORY_NOT_FOUND_001":
            raise _not_found(exc) from exc
        raise HTTPException(
            status_code=400, detail={"code": exc.code, "message": exc.message}
        ) from exc
    return comparison.model_dump(by_alias=True)


@router.get("/history/{entry_id}")
def get_history(entry_id: str) -> dict:
    """이력 단건 조회"""
    try:
        entry = get_history_store().get(entry_id)
    except HistoryError as exc:
        raise _not_found(exc) from exc
    return entry.model_dump(mode="json", by_alias=True)


@router.delete("/history/{entry_id}")
def delete_history(entry_id: str) -> dict:
    """이력 단건 삭제"""
    if not get_history_store().delete(entry_id):
        raise _not_found(HistoryError("HISTORY_NOT_FOUND_001", f"이력 없음: {entry_id}"))
    return {"status": "deleted", "id": entry_id}


@router.get("/history/{entry_id}/export")
def export_history(entry_id: str) -> JSONResponse:
    """이력 항목을 JSON 파일로 내보내기

    Args:
        entry_id: 이력 식별자

    Returns:
        첨부 파일 형태의 JSON 응답
    """
    try:
        entry = get_history_store().get(entry_id)
    except HistoryError as exc:
        raise _not_found(exc) from exc
    return JSONResponse(
        export_entry(entry),
        headers={"Content-Disposition": f'attachment; filename="{export_filename(entry)}"'},
    )
