from fastapi.testclient import TestClient

from app.core.errors import AnalysisError, ValidationFailedError
from app.core.validation import gate_submission
from app.main import create_app
from app.models.analysis import AnalysisResult
from app.models.patient import DEFAULT_RECORD


def _make_client() -> TestClient:
    return TestClient(create_app())


def _fake_analysis(analysis_payload):
    def _analyze(record, errors=None, transport=None):
        gate = gate_submission(record, errors)
        if not gate.allowed:
            raise ValidationFailedError(gate.errors)
        return AnalysisResult.model_validate(analysis_payload)

    return _analyze


def _failing_analysis(record, errors=None, transport=None):
    raise AnalysisError("ANALYSIS_FAILED_001", "Failed to get a valid analysis from the AI model.")


def test_health():
    response = _make_client().get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_egfr_endpoint_applies_override():
    client = _make_client()
    response = client.post(
        "/v1/egfr",
        json={"creatinine": 1.5, "age": 60, "sex": "male", "ckdStage": "4", "dialysisType": "Hemodialysis"},
    )
    body = response.json()
    assert body["calculated"] is True
    assert body["suggestedStage"] == "3a"
    assert body["ckdStage"] == "5D"


def test_egfr_endpoint_without_dialysis():
    client = _make_client()
    response = client.post("/v1/egfr", json={"creatinine": 1.5, "age": 60, "sex": "male"})
    assert response.json()["ckdStage"] == "3a"


def test_egfr_endpoint_precondition_noop():
    client = _make_client()
    response = client.post("/v1/egfr", json={"creatinine": 0, "age": 60, "sex": "male"})
    assert response.status_code == 200
    assert response.json() == {"calculated": False}


def test_validate_field_endpoint():
    client = _make_client()
    response = client.post("/v1/validate/field", json={"field": "phosphorus", "value": 1.5})
    assert response.json() == {"field": "phosphorus", "error": "2 - 12 mg/dL"}


def test_validate_endpoint_reports_all_errors():
    client = _make_client()
    record = dict(DEFAULT_RECORD, hemoglobin=3, calcium=20)
    response = client.post("/v1/validate", json={"record": record})
    body = response.json()
    assert body["allowed"] is False
    assert body["errors"]["hemoglobin"] == "5 - 18 g/dL"
    assert body["errors"]["calcium"] == "6 - 12 mg/dL"


def test_analyze_stores_history(monkeypatch, analysis_payload):
    monkeypatch.setattr("app.api.analysis.analyze_patient_data", _fake_analysis(analysis_payload))
    client = _make_client()
    response = client.post("/v1/analyze", json={"record": DEFAULT_RECORD})
    assert response.status_code == 200
    entry = response.json()
    assert entry["result"]["overallSummary"] == "Anemia ferropriva e HPTS."
    assert entry["patientData"]["ckdStage"] == "5D"

    history = client.get("/v1/history").json()
    assert [item["id"] for item in history] == [entry["id"]]
    assert client.get(f"/v1/history/{entry['id']}").json()["id"] == entry["id"]


def test_analyze_invalid_record_returns_422(monkeypatch, analysis_payload):
    monkeypatch.setattr("app.api.analysis.analyze_patient_data", _fake_analysis(analysis_payload))
    client = _make_client()
    record = dict(DEFAULT_RECORD, phosphorus=1.5)
    response = client.post("/v1/analyze", json={"record": record})
    assert response.status_code == 422
    assert response.json()["detail"]["errors"]["phosphorus"] == "2 - 12 mg/dL"
    assert client.get("/v1/history").json() == []


def test_analyze_failure_returns_generic_message(monkeypatch):
    monkeypatch.setattr("app.api.analysis.analyze_patient_data", _failing_analysis)
    client = _make_client()
    response = client.post("/v1/analyze", json={"record": DEFAULT_RECORD})
    assert response.status_code == 502
    assert response.json()["detail"]["message"] == "Ocorreu um erro ao analisar os dados."


def test_history_delete_compare_and_export(monkeypatch, analysis_payload):
    monkeypatch.setattr("app.api.analysis.analyze_patient_data", _fake_analysis(analysis_payload))
    client = _make_client()
    first = client.post("/v1/analyze", json={"record": DEFAULT_RECORD}).json()
    second = client.post(
        "/v1/analyze", json={"record": dict(DEFAULT_RECORD, hemoglobin=10.5)}
    ).json()

    comparison = client.get(
        "/v1/history/compare", params=[("ids", first["id"]), ("ids", second["id"])]
    ).json()
    assert comparison["previousId"] == first["id"]
    hemoglobin = next(t for t in comparison["trends"] if t["field"] == "hemoglobin")
    assert hemoglobin["delta"] == 1.0

    exported = client.get(f"/v1/history/{first['id']}/export")
    assert exported.status_code == 200
    assert "attachment" in exported.headers["content-disposition"]
    assert exported.json()["patientData"]["hemoglobin"] == 9.5

    assert client.delete(f"/v1/history/{first['id']}").status_code == 200
    assert client.delete(f"/v1/history/{first['id']}").status_code == 404
    assert client.get(f"/v1/history/{first['id']}").status_code == 404

    assert client.delete("/v1/history").json() == {"status": "cleared"}
    assert client.get("/v1/history").json() == []


def test_compare_requires_two_ids(monkeypatch, analysis_payload):
    monkeypatch.setattr("app.api.analysis.analyze_patient_data", _fake_analysis(analysis_payload))
    client = _make_client()
    entry = client.post("/v1/analyze", json={"record": DEFAULT_RECORD}).json()
    response = client.get("/v1/history/compare", params={"ids": entry["id"]})
    assert response.status_code == 400


def test_extract_endpoint_rejects_unsupported_file():
    client = _make_client()
    response = client.post(
        "/v1/extract", files={"file": ("exame.zip", b"PK", "application/zip")}
    )
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "EXTRACT_MIME_001"


def test_compare_rejects_duplicate_ids(monkeypatch, analysis_payload):
    monkeypatch.setattr("app.api.analysis.analyze_patient_data", _fake_analysis(analysis_payload))
    client = _make_client()
    entry = client.post("/v1/analyze", json={"record": DEFAULT_RECORD}).json()
    response = client.get(
        "/v1/history/compare", params=[("ids", entry["id"]), ("ids", entry["id"])]
    )
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "HISTORY_COMPARE_001"
