import base64
import json

import httpx
import pytest

from app.core.errors import ExtractionError
from app.core.extraction import extract_lab_values


def _handler_returning(payload: dict, captured: dict | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if captured is not None:
            captured["body"] = json.loads(request.content)
        body = {"candidates": [{"content": {"parts": [{"text": json.dumps(payload)}]}}]}
        return httpx.Response(200, json=body)

    return handler


def test_extract_validates_returned_values():
    captured: dict = {}
    transport = httpx.MockTransport(
        _handler_returning(
            {"hemoglobin": 10.2, "phosphorus": 1.5, "pth": 420, "dialysisType": "Hemodialysis"},
            captured,
        )
    )
    result = extract_lab_values(b"Hb 10,2 P 1,5 PTH 420", "text/plain", transport=transport)

    assert result.record.hemoglobin == 10.2
    assert result.record.dialysis_type == "Hemodialysis"
    assert result.record.calcium is None
    assert result.errors == {"phosphorus": "2 - 12 mg/dL"}

    inline = captured["body"]["contents"][0]["parts"][0]["inlineData"]
    assert inline["mimeType"] == "text/plain"
    assert base64.b64decode(inline["data"]) == b"Hb 10,2 P 1,5 PTH 420"


def test_extract_rejects_empty_file():
    with pytest.raises(ExtractionError) as exc_info:
        extract_lab_values(b"", "application/pdf")
    assert exc_info.value.code == "EXTRACT_EMPTY_001"


def test_extract_rejects_unsupported_mime():
    with pytest.raises(ExtractionError) as exc_info:
        extract_lab_values(b"data", "application/zip")
    assert exc_info.value.code == "EXTRACT_MIME_001"


def test_extract_wraps_service_failure():
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    with pytest.raises(ExtractionError) as exc_info:
        extract_lab_values(b"%PDF-1.4", "application/pdf", transport=transport)
    assert exc_info.value.code == "EXTRACT_FAILED_001"
