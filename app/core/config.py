from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_GUIDELINE_PATH = str(Path(__file__).resolve().parents[1] / "prompts" / "pcdt_context.md")


class Settings(BaseSettings):
    """환경 변수에서 애플리케이션 설정을 로드"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    environment: Literal["local", "dev", "prod"] = "local"
    version: str = "0.1.0"
    log_level: str = "INFO"
    admin_id: str = "admin"
    admin_password: str = "admin"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-3-flash-preview"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout_seconds: float = 60.0
    guideline_path: str = DEFAULT_GUIDELINE_PATH
    config_path: str = "ckd.yaml"
    duckdb_path: str = "data/telemetry.duckdb"
    history_path: str = "data/history.duckdb"


class AppConfig(BaseModel):
    """폼 초기값 설정"""

    form_defaults: dict = Field(default_factory=dict)
    calculator_defaults: dict = Field(default_factory=dict)


@lru_cache
def get_settings() -> Settings:
    """캐시된 설정 인스턴스를 반환"""
    return Settings()


@lru_cache
def load_app_config() -> AppConfig:
    """설정 파일(YAML)에서 폼 초기값 로드

    Returns:
        앱 설정 인스턴스, 파일이 없으면 기본값
    """
    settings = get_settings()
    path = Path(settings.config_path)
    if not path.exists():
        return AppConfig()
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return AppConfig(**data)


def reload_app_config() -> AppConfig:
    """설정 캐시를 초기화하고 다시 로드

    Returns:
        앱 설정 인스턴스
    """
    load_app_config.cache_clear()
    return load_app_config()
