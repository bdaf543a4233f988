"""Integration-style tests for the call metrics API."""

from __future__ import annotations

import csv
import io

import pytest
from fastapi.testclient import TestClient

from call_metrics_server.records import RecordStore
from call_metrics_server.settings import APP_VERSION

from .fixtures import BASE_TS, make_record

METRIC_KEYS = {
    "totalCalls",
    "totalCost",
    "avgCostPerCall",
    "avgCostPerMin",
    "successRate",
    "failureRate",
    "transferRate",
    "abandonmentRate",
    "avgInterruptions",
    "avgLLMLatency",
    "avgTTSLatency",
    "avgTotalLatency",
    "firstCallResolutionRate",
    "avgCostPerSuccessfulCall",
    "avgHandleTime",
}


def test_root_and_health(client: TestClient) -> None:
    root = client.get("/")
    assert root.status_code == 200
    assert root.json()["health"] == "/api/healthz"

    health = client.get("/api/healthz")
    assert health.status_code == 200
    payload = health.json()
    assert payload["status"] == "ok"
    assert payload["records"] == 4
    assert payload["version"] == APP_VERSION == client.app.version


def test_metrics_over_full_dataset(client: TestClient) -> None:
    response = client.get("/api/metrics")

    assert response.status_code == 200
    payload = response.json()
    assert set(payload) == METRIC_KEYS
    assert payload["totalCalls"] == 4
    assert payload["totalCost"] == 50
    assert payload["avgCostPerMin"] == 16.67
    assert payload["successRate"] == 50.0
    assert payload["abandonmentRate"] == 25.0
    assert payload["avgLLMLatency"] == 900
    assert payload["avgTotalLatency"] == 1150
    assert payload["avgHandleTime"] == 60


def test_metrics_respect_filters(client: TestClient) -> None:
    response = client.get(
        "/api/metrics",
        params=[("agents[]", "a1"), ("timeRanges[]", "14-15")],
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["totalCalls"] == 1
    assert payload["transferRate"] == 100.0
    assert payload["totalCost"] == 20


def test_metrics_with_date_range(client: TestClient) -> None:
    response = client.get(
        "/api/metrics",
        params={"dateRange[start]": "2025-06-03", "dateRange[end]": "2025-06-04"},
    )

    assert response.status_code == 200
    assert response.json()["totalCalls"] == 2


def test_metrics_with_no_matches_are_zero(client: TestClient) -> None:
    response = client.get("/api/metrics", params={"agents": "nobody"})

    assert response.status_code == 200
    assert all(value == 0 for value in response.json().values())


@pytest.mark.parametrize(
    "params",
    [
        {"timeRanges[]": "abc"},
        {"timeRanges": "17-9"},
        {"dateRange[start]": "2025-06-01", "dateRange[end]": "not-a-date"},
    ],
)
def test_malformed_filters_return_400(client: TestClient, params: dict[str, str]) -> None:
    response = client.get("/api/metrics", params=params)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["type"] == "ValidationError"
    assert error["message"]


def test_malformed_record_returns_500(make_client) -> None:
    store = RecordStore.from_records([make_record("ok"), make_record("broken", cost=None)])
    client = make_client(store)

    response = client.get("/api/metrics")

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["type"] == "MalformedRecordError"
    assert error["details"] == {"record_id": "broken", "field": "cost"}


def test_agent_metrics_breakdown(client: TestClient) -> None:
    response = client.get("/api/agent-metrics")

    assert response.status_code == 200
    payload = response.json()
    assert set(payload) == {"a1", "a2"}
    assert set(payload["a1"]) == METRIC_KEYS
    assert payload["a1"]["totalCalls"] == 2
    assert payload["a2"]["avgHandleTime"] == 90


def test_agent_metrics_only_lists_filtered_agents(client: TestClient) -> None:
    response = client.get("/api/agent-metrics", params={"callTypes[]": "inbound", "agents[]": "a2"})

    assert response.status_code == 200
    assert list(response.json()) == ["a2"]


def test_agent_metrics_export(client: TestClient) -> None:
    response = client.get("/api/agent-metrics/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "agent-metrics.csv" in response.headers["content-disposition"]
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert [row["Agent"] for row in rows] == ["a1", "a2"]


def test_dimension_listings(client: TestClient) -> None:
    assert client.get("/api/agents").json() == ["a1", "a2"]
    assert client.get("/api/call-types").json() == ["inbound", "outbound"]
    assert client.get("/api/date-range").json() == {"min": "2025-06-02", "max": "2025-06-04"}


def test_empty_store(make_client) -> None:
    client = make_client(RecordStore())

    assert client.get("/api/date-range").json() == {"min": None, "max": None}
    assert client.get("/api/agents").json() == []
    assert client.get("/api/agent-metrics").json() == {}
    assert client.get("/api/metrics").json()["totalCalls"] == 0


def test_conversations_keep_at_rest_shape(client: TestClient) -> None:
    for path in ("/api/conversations", "/api/raw-data"):
        response = client.get(path)

        assert response.status_code == 200
        payload = {item["id"]: item for item in response.json()}
        assert list(payload) == ["call-1", "call-2", "call-3", "call-4"]
        assert payload["call-1"]["startTime"] == BASE_TS
        assert payload["call-1"]["callInfo"]["stats"] == {
            "llmLatency": 800,
            "ttsLatency": 300,
            "interruptions": 1,
        }
        assert "stats" not in payload["call-3"]["callInfo"]


def test_debug_filter_reports_counts(client: TestClient) -> None:
    response = client.get("/api/debug-filter", params={"agents[]": "a2"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["originalCount"] == 4
    assert payload["filteredCount"] == 2
    assert payload["filters"]["agents"] == ["a2"]
    assert payload["sampleRecord"]["id"] == "call-3"
    assert "stats" not in payload["sampleRecord"]["callInfo"]
    assert payload["filters"]["dateRange"] is None


def test_debug_filter_without_matches_returns_null_sample(client: TestClient) -> None:
    response = client.get("/api/debug-filter", params={"callTypes": "transfer"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["filteredCount"] == 0
    assert payload["sampleRecord"] is None
    assert payload["filters"]["callTypes"] == ["transfer"]


def test_request_id_header_is_echoed(client: TestClient) -> None:
    generated = client.get("/api/healthz")
    assert generated.headers.get("x-request-id")

    echoed = client.get("/api/healthz", headers={"X-Request-Id": "req-123"})
    assert echoed.headers["x-request-id"] == "req-123"
