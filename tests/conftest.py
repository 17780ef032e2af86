import pytest

from app.core.config import get_settings, load_app_config
from app.core.telemetry import TelemetryStore


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch: pytest.MonkeyPatch):
    """테스트마다 DuckDB 파일과 설정 캐시를 분리"""
    monkeypatch.setenv("DUCKDB_PATH", str(tmp_path / "telemetry.duckdb"))
    monkeypatch.setenv("HISTORY_PATH", str(tmp_path / "history.duckdb"))
    monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "ckd.yaml"))
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    get_settings.cache_clear()
    load_app_config.cache_clear()
    TelemetryStore.reset()
    yield
    TelemetryStore.reset()
    get_settings.cache_clear()
    load_app_config.cache_clear()


@pytest.fixture
def analysis_payload() -> dict:
    return {
        "anemiaAnalysis": {
            "evaluation": "Hb 9,5 g/dL abaixo da meta.",
            "recommendations": ["Repor ferro endovenoso", "Iniciar alfaepoetina"],
        },
        "mbdAnalysis": {
            "evaluation": "Fósforo 6,1 mg/dL acima de 5,5 mg/dL.",
            "recommendations": ["Iniciar sevelâmer"],
        },
        "overallSummary": "Anemia ferropriva e HPTS.",
    }
