from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from call_metrics_server.errors import MalformedRecordError, RecordLoadError
from call_metrics_server.records import (
    ConversationRecord,
    RecordStore,
    load_records,
    parse_records,
)
from call_metrics_server.settings import REPO_ROOT

from .fixtures import BASE_TS, SCENARIO_A


def _payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": "c-1",
        "agent": "agent_alpha",
        "startTime": BASE_TS,
        "duration": 42,
        "cost": 0.5,
        "status": "success",
        "callInfo": {
            "type": "inbound",
            "caller": "+14155550101",
            "stats": {"llmLatency": 700, "ttsLatency": 250, "interruptions": 0},
        },
    }
    payload.update(overrides)
    return payload


def test_from_mapping_parses_camel_case_payload() -> None:
    record = ConversationRecord.from_mapping(_payload())

    assert record.id == "c-1"
    assert record.start_time == BASE_TS
    assert record.call_type == "inbound"
    assert record.call_info.caller == "+14155550101"
    assert record.call_info.callee is None
    assert record.stats is not None
    assert record.stats.llm_latency == 700


def test_from_mapping_allows_missing_stats() -> None:
    record = ConversationRecord.from_mapping(_payload(callInfo={"type": "outbound"}))

    assert record.stats is None
    assert record.to_dict()["callInfo"] == {"type": "outbound"}


def test_to_dict_round_trips_at_rest_shape() -> None:
    payload = _payload()

    assert ConversationRecord.from_mapping(payload).to_dict() == payload


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"startTime": 1e20}, "startTime"),
        ({"startTime": "2025-06-02"}, "startTime"),
        ({"cost": None}, "cost"),
        ({"cost": "0.5"}, "cost"),
        ({"duration": True}, "duration"),
        ({"cost": -1}, "cost"),
        ({"status": "voicemail"}, "status"),
        ({"agent": ""}, "agent"),
        ({"callInfo": None}, "callInfo"),
        ({"callInfo": {"type": "internal"}}, "callInfo.type"),
        (
            {"callInfo": {"type": "inbound", "stats": {"llmLatency": 10, "ttsLatency": 10}}},
            "callInfo.stats.interruptions",
        ),
    ],
)
def test_from_mapping_rejects_invalid_fields(overrides: dict[str, object], field: str) -> None:
    with pytest.raises(MalformedRecordError) as excinfo:
        ConversationRecord.from_mapping(_payload(**overrides))

    assert excinfo.value.field == field
    assert excinfo.value.record_id == "c-1"


def test_parse_records_rejects_duplicate_ids() -> None:
    with pytest.raises(MalformedRecordError) as excinfo:
        parse_records([_payload(), _payload()])

    assert excinfo.value.field == "id"


def test_load_records_missing_file_is_empty(tmp_path: Path) -> None:
    assert load_records(tmp_path / "absent.json") == ()


def test_load_records_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("[{", encoding="utf-8")

    with pytest.raises(RecordLoadError) as excinfo:
        load_records(path)

    assert excinfo.value.details["data_path"] == str(path)


def test_load_records_requires_array(tmp_path: Path) -> None:
    path = tmp_path / "object.json"
    path.write_text(json.dumps({"records": []}), encoding="utf-8")

    with pytest.raises(RecordLoadError):
        load_records(path)


def test_load_records_reads_dataset(dataset_path: Path) -> None:
    records = load_records(dataset_path)

    assert [record.id for record in records] == [sample.id for sample in SCENARIO_A]


def test_record_store_projections(records) -> None:
    store = RecordStore.from_records(records)

    assert len(store) == 4
    assert store.agents() == ["a1", "a2"]
    assert store.call_types() == ["inbound", "outbound"]
    assert store.date_bounds() == (date(2025, 6, 2), date(2025, 6, 4))
    assert store.source is None


def test_empty_record_store() -> None:
    store = RecordStore()

    assert len(store) == 0
    assert store.agents() == []
    assert store.call_types() == []
    assert store.date_bounds() is None


def test_record_store_from_path_keeps_source(dataset_path: Path) -> None:
    store = RecordStore.from_path(dataset_path)

    assert store.source == dataset_path
    assert len(store) == len(SCENARIO_A)


def test_bundled_example_dataset_loads() -> None:
    store = RecordStore.from_path(REPO_ROOT / "config" / "conversations.example.json")

    assert len(store) == 8
    assert store.agents() == ["agent_alpha", "agent_beta", "agent_gamma"]
    assert store.call_types() == ["inbound", "outbound"]
    assert store.date_bounds() == (date(2025, 6, 2), date(2025, 6, 6))
    assert sum(1 for record in store if record.stats is None) == 2


def test_load_records_rejects_unrepresentable_start_time(tmp_path: Path) -> None:
    path = tmp_path / "far-future.json"
    path.write_text(json.dumps([_payload(startTime=1e20)]), encoding="utf-8")

    with pytest.raises(MalformedRecordError) as excinfo:
        load_records(path)

    assert excinfo.value.details == {"record_id": "c-1", "field": "startTime"}
