"""Tests for the HTTP surface using FastAPI's TestClient."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from smartarchive.api.app import create_app
from smartarchive.core.config import AppSettings, LLMConfig
from smartarchive.services.classification import build_service
from tests.fakes import FailingWriteCache, MemoryClassificationCache, MockModelProvider, keyword_responder

SCHEDULE_ROWS = [
    {"code": "UM.01.02", "description": "Laporan Kegiatan Tahunan",
     "active_period": "2 Tahun", "inactive_period": 5, "disposition": "PERMANEN"},
    {"code": "KU.01.01", "description": "Rencana Anggaran Pendapatan dan Belanja",
     "active_period": 2, "inactive_period": 3, "disposition": "Musnah"},
]


def _client(cache=None):
    provider = MockModelProvider()
    provider.set_responder(keyword_responder({"notulen": "UM.01.02"}))
    service = build_service(
        AppSettings(llm=LLMConfig(api_keys=["k1"])),
        cache=cache if cache is not None else MemoryClassificationCache(),
        provider=provider,
    )
    return TestClient(create_app(service=service))


@pytest.fixture
def client():
    with _client() as client:
        yield client


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}

    def test_ready_reports_service(self, client):
        body = client.get("/ready").json()
        assert body["service"] == "ClassificationService"
        assert body["ai_credentials"] == 1


class TestClassify:
    def test_classifies_and_derives_status(self, client):
        resp = client.post("/classify", json={
            "records": [
                {"id": 1, "description": "Laporan Kegiatan Tahunan", "year": "2024"},
                {"id": 2, "description": "Notulen rapat direksi", "year": 2010},
                {"id": 3, "description": None, "year": 2010},
            ],
            "references": SCHEDULE_ROWS,
            "current_year": 2026,
        })

        assert resp.status_code == 200
        body = resp.json()
        assert body["current_year"] == 2026
        first, second, third = body["results"]
        assert first["origin"] == "Local"
        assert first["status"] == {"state": "Active", "reason": None}
        assert second["origin"] == "AI"
        assert second["status"]["state"] == "Permanent"
        assert third["status"] is None
        assert third["note"] == "no description"

    def test_empty_schedule_is_422(self, client):
        resp = client.post("/classify", json={"records": [{"id": 1, "description": "x"}], "references": []})
        assert resp.status_code == 422

    def test_duplicate_ids_are_422(self, client):
        resp = client.post("/classify", json={
            "records": [{"id": 1, "description": "a"}, {"id": 1, "description": "b"}],
            "references": SCHEDULE_ROWS,
        })
        assert resp.status_code == 422
        assert "duplicate" in resp.json()["detail"]

    def test_invalid_payload_is_422(self, client):
        resp = client.post("/classify", json={"records": [{"description": "missing id"}]})
        assert resp.status_code == 422

    def test_cache_write_failure_is_503(self):
        with _client(cache=FailingWriteCache()) as client:
            resp = client.post("/classify", json={
                "records": [{"id": 1, "description": "Notulen rapat direksi", "year": 2020}],
                "references": SCHEDULE_ROWS,
            })
        assert resp.status_code == 503


def test_shutdown_closes_service():
    service = build_service(AppSettings(), cache=MemoryClassificationCache(), provider=MockModelProvider())
    service.aclose = AsyncMock()

    with TestClient(create_app(service=service)) as client:
        client.get("/health")
        service.aclose.assert_not_awaited()

    service.aclose.assert_awaited_once()
