from fastapi import FastAPI

from app.api.routes import router as api_router
from app.core.config import get_settings
from app.core.logging import configure_logging


def create_app() -> FastAPI:
    """애플리케이션을 생성하고 FastAPI를 설정"""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="CKD Lab Analyzer", version=settings.version)
    app.include_router(api_router)
    return app


app = create_app()
