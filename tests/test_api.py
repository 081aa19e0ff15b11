from datetime import date
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest
from fastapi.testclient import TestClient

from finassist.api import server
from finassist.config.runtime_config import RuntimeConfig
from finassist.store.models import Transaction


class FakeStore:
    async def fetch_transactions(self, user_id, filters, limit=500):
        if user_id == "broken":
            raise RuntimeError("db down")
        return [
            Transaction(id=1, title="Kopi", amount=25000, type="expense", date=date(2024, 3, 14)),
        ]


@pytest.fixture
def client():
    server.app.dependency_overrides[server.get_store] = lambda: FakeStore()
    server.app.dependency_overrides[server.get_llm_client] = lambda: None
    server.app.dependency_overrides[server.get_runtime_config] = lambda: RuntimeConfig()
    yield TestClient(server.app)
    server.app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_chat_requires_message_and_user(client):
    r = client.post("/api/chat", json={"message": "total"})
    assert r.status_code == 400
    assert r.json() == {"error": "Message dan userId diperlukan"}


def test_chat_direct_answer(client):
    r = client.post("/api/chat", json={"message": "Total pengeluaran hari ini", "userId": "u1"})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert "Rp 25.000" in body["reply"]
    assert body["metadata"] == {"intent": "total", "data_count": 1, "used_ai": False}


def test_chat_error_returns_500(client):
    r = client.post("/api/chat", json={"message": "total", "userId": "broken"})
    assert r.status_code == 500
    assert r.json()["error"] == "Terjadi kesalahan. Silakan coba lagi."


def test_insights_endpoint(client, monkeypatch):
    async def fake_run(store, llm_client, cfg, today=None, user_ids=None):
        return {"success": True, "message": f"Insights generated for {len(user_ids)} users, 0 errors",
                "processed": len(user_ids), "errors": 0}

    monkeypatch.setattr(server, "run_insights", fake_run)
    r = client.post("/api/insights", json={"userId": "u1"})
    assert r.status_code == 200
    assert r.json()["processed"] == 1


@pytest.fixture
def unconfigured(monkeypatch):
    monkeypatch.setattr(server.settings, "supabase_url", None)
    monkeypatch.setattr(server.settings, "supabase_service_role_key", None)
    monkeypatch.setattr(server.settings, "openai_api_key", None)
    yield TestClient(server.app)
    server.app.dependency_overrides.clear()


def test_chat_missing_fields_without_supabase(unconfigured):
    r = unconfigured.post("/api/chat", json={"message": "total"})
    assert r.status_code == 400
    assert r.json() == {"error": "Message dan userId diperlukan"}


def test_chat_without_supabase_returns_json_500(unconfigured):
    r = unconfigured.post("/api/chat", json={"message": "total", "userId": "u1"})
    assert r.status_code == 500
    assert r.json()["error"] == "Terjadi kesalahan. Silakan coba lagi."


def test_chat_with_invalid_runtime_config(unconfigured, monkeypatch):
    def broken():
        raise ValueError("query.magnitude_scope: nearby")

    server.app.dependency_overrides[server.get_store] = lambda: FakeStore()
    monkeypatch.setattr(server, "load_runtime_config", broken)
    r = unconfigured.post("/api/chat", json={"message": "total", "userId": "u1"})
    assert r.status_code == 500
    assert r.json()["error"] == "Terjadi kesalahan. Silakan coba lagi."


def test_insights_without_supabase_returns_json_500(unconfigured):
    r = unconfigured.post("/api/insights", json={"userId": "u1"})
    assert r.status_code == 500
    assert r.json()["success"] is False
