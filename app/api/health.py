from fastapi import APIRouter

from app.core.config import get_settings

router = APIRouter()


@router.get("/health")
def health_check() -> dict:
    """서비스 헬스 상태를 반환"""
    return {"status": "ok", "version": get_settings().version}
