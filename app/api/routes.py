from fastapi import APIRouter

from app.api.admin import router as admin_router
from app.api.analysis import router as analysis_router
from app.api.form import router as form_router
from app.api.health import router as health_router
from app.api.history import router as history_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(form_router, tags=["form"])
router.include_router(analysis_router, prefix="/v1", tags=["analysis"])
router.include_router(history_router, prefix="/v1", tags=["history"])
router.include_router(admin_router, prefix="/admin", tags=["admin"])
