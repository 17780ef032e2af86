from concurrent.futures import ThreadPoolExecutor

import pytest
from pydantic import ValidationError

from app.core.comparison import compare_entries
from app.core.errors import HistoryError
from app.core.export import export_entry, export_filename
from app.core.history import HISTORY_KEY, HistoryStore
from app.models.analysis import AnalysisResult, HistoryEntry
from app.models.patient import default_record


def _entry(entry_id: str, timestamp: int, analysis_payload: dict, **values) -> HistoryEntry:
    result = AnalysisResult.model_validate(analysis_payload)
    return HistoryEntry(
        id=entry_id,
        timestamp=timestamp,
        patient_data=default_record(values),
        result=result,
    )


def test_load_all_empty(tmp_path):
    store = HistoryStore(str(tmp_path / "history.duckdb"))
    assert store.load_all() == []


def test_add_prepends_and_persists(tmp_path, analysis_payload):
    path = str(tmp_path / "history.duckdb")
    store = HistoryStore(path)
    result = AnalysisResult.model_validate(analysis_payload)
    first = store.add(default_record(), result)
    second = store.add(default_record({"hemoglobin": 10.5}), result)

    entries = HistoryStore(path).load_all()
    assert [entry.id for entry in entries] == [second.id, first.id]
    assert entries[0].patient_data.hemoglobin == 10.5
    assert entries[1].result.overall_summary == "Anemia ferropriva e HPTS."
    assert first.id != second.id


def test_get_and_delete(tmp_path, analysis_payload):
    store = HistoryStore(str(tmp_path / "history.duckdb"))
    entry = store.add(default_record(), AnalysisResult.model_validate(analysis_payload))
    assert store.get(entry.id) == entry
    assert store.delete(entry.id) is True
    assert store.delete(entry.id) is False
    with pytest.raises(HistoryError):
        store.get(entry.id)


def test_clear(tmp_path, analysis_payload):
    store = HistoryStore(str(tmp_path / "history.duckdb"))
    store.add(default_record(), AnalysisResult.model_validate(analysis_payload))
    store.clear()
    assert store.load_all() == []


def test_concurrent_adds_keep_every_entry(tmp_path, analysis_payload):
    path = str(tmp_path / "history.duckdb")
    result = AnalysisResult.model_validate(analysis_payload)

    def _add(_):
        return HistoryStore(path).add(default_record(), result)

    with ThreadPoolExecutor(max_workers=8) as pool:
        added = list(pool.map(_add, range(40)))

    entries = HistoryStore(path).load_all()
    assert len(entries) == 40
    assert {entry.id for entry in entries} == {entry.id for entry in added}


def test_corrupt_history_loads_empty(tmp_path):
    store = HistoryStore(str(tmp_path / "history.duckdb"))
    with store._connection() as conn:
        conn.execute("INSERT INTO kv (key, value) VALUES (?, ?)", [HISTORY_KEY, "{not json"])
    assert store.load_all() == []


def test_snapshot_is_immutable(analysis_payload):
    entry = _entry("1", 1, analysis_payload)
    with pytest.raises(ValidationError):
        entry.id = "2"


def test_compare_orders_oldest_first(analysis_payload):
    newer = _entry("200", 200, analysis_payload, hemoglobin=11.0, pth=600)
    older = _entry("100", 100, analysis_payload, hemoglobin=9.5, pth=750)
    comparison = compare_entries([newer, older])

    assert comparison.previous_id == "100"
    assert comparison.current_id == "200"
    trends = {trend.field: trend for trend in comparison.trends}
    assert trends["hemoglobin"].delta == 1.5
    assert trends["pth"].delta == -150
    assert trends["ferritin"].delta == 0
    assert trends["alkalinePhosphatase"].unit == "U/L"
    assert comparison.current_recommendations == [
        "Repor ferro endovenoso",
        "Iniciar alfaepoetina",
        "Iniciar sevelâmer",
    ]
    assert "currentRecommendations" in comparison.model_dump(by_alias=True)


def test_compare_requires_two_entries(analysis_payload):
    with pytest.raises(HistoryError) as exc_info:
        compare_entries([_entry("1", 1, analysis_payload)])
    assert exc_info.value.code == "HISTORY_COMPARE_001"


def test_export_entry(analysis_payload):
    entry = _entry("1700000000000", 1700000000000, analysis_payload)
    document = export_entry(entry)
    assert document["id"] == "1700000000000"
    assert document["analysisDate"] == "2023-11-14T22:13:20Z"
    assert document["patientData"]["alkalinePhosphatase"] == 110
    assert document["result"]["overallSummary"] == "Anemia ferropriva e HPTS."
    assert export_filename(entry) == "analise-drc-20231114-221320.json"


def test_compare_rejects_same_entry_twice(analysis_payload):
    entry = _entry("1", 1, analysis_payload)
    with pytest.raises(HistoryError) as exc_info:
        compare_entries([entry, entry])
    assert exc_info.value.code == "HISTORY_COMPARE_001"
