from __future__ import annotations

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from call_metrics_server.records import ConversationRecord, RecordStore
from call_metrics_server.settings import Settings

from .fixtures import SCENARIO_A, scenario_records


@pytest.fixture()
def records() -> list[ConversationRecord]:
    return scenario_records()


@pytest.fixture()
def dataset_path(tmp_path: Path) -> Path:
    path = tmp_path / "conversations.json"
    path.write_text(
        json.dumps([sample.to_payload() for sample in SCENARIO_A]), encoding="utf-8"
    )
    return path


@pytest.fixture()
def settings(dataset_path: Path) -> Settings:
    return Settings(data_path=dataset_path, hour_bucket_timezone="UTC", log_level="WARNING")


@pytest.fixture()
def make_client(settings: Settings):
    from call_metrics_server.main import create_app

    clients: list[TestClient] = []

    def factory(store: RecordStore | None = None) -> TestClient:
        client = TestClient(create_app(settings=settings, store=store))
        clients.append(client)
        return client

    try:
        yield factory
    finally:
        for client in clients:
            client.close()


@pytest.fixture()
def client(make_client) -> TestClient:
    return make_client()
