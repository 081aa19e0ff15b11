import asyncio
from datetime import date, datetime
from pathlib import Path
import sys

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from finassist.nlp.schema import QueryFilter
from finassist.store import supabase as sb
from finassist.store.models import Insight

CATEGORIES = [{"id": 1, "name": "Makan", "type": "expense"}, {"id": 2, "name": "Gaji", "type": "income"}]
WALLETS = [{"id": 10, "name": "BCA", "type": "bank"}]
TRANSACTIONS = [
    {"id": 1, "title": "Nasi goreng", "amount": "25000.00", "type": "expense",
     "date": "2024-03-14", "category_id": 1, "wallet_id": 10},
    {"id": 2, "title": "Gaji Maret", "amount": 9000000, "type": "income",
     "date": "2024-03-01", "category_id": 2, "wallet_id": 99},
]


class DummyClient:
    def __init__(self, calls, tables=None, fail=False):
        self.calls = calls
        self.tables = tables or {}
        self.fail = fail

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        pass

    async def get(self, url, params, headers):
        self.calls.append(("GET", url, params, headers))
        if self.fail:
            raise RuntimeError("boom")
        table = url.rsplit("/", 1)[-1]
        return httpx.Response(200, json=self.tables.get(table, []), request=httpx.Request("GET", url))

    async def delete(self, url, params, headers):
        self.calls.append(("DELETE", url, params, headers))
        return httpx.Response(204, request=httpx.Request("DELETE", url))

    async def post(self, url, json, headers):
        self.calls.append(("POST", url, json, headers))
        return httpx.Response(201, request=httpx.Request("POST", url))


def _store():
    return sb.TransactionStore(url="https://demo.supabase.co/", service_key="svc")


def test_filter_params_full():
    f = QueryFilter(
        type="expense", amount_min=500000, date_start=date(2024, 3, 1), date_end=date(2024, 3, 15)
    )
    params = sb.filter_params("u1", f)
    assert ("user_id", "eq.u1") in params
    assert ("type", "eq.expense") in params
    assert ("date", "gte.2024-03-01") in params
    assert ("date", "lte.2024-03-15") in params
    assert ("amount", "gte.500000") in params
    assert ("order", "date.desc") in params
    assert ("limit", "500") in params
    assert not any(k == "amount" and v.startswith("lte.") for k, v in params)


def test_filter_params_permissive():
    f = QueryFilter(date_start=date(2024, 3, 1), date_end=date(2024, 3, 15))
    keys = [k for k, _ in sb.filter_params("u1", f, limit=20)]
    assert "type" not in keys
    assert "amount" not in keys
    assert ("limit", "20") in sb.filter_params("u1", f, limit=20)


def test_fetch_transactions_joins_lookups(monkeypatch):
    calls = []
    tables = {"transactions": TRANSACTIONS, "categories": CATEGORIES, "wallets": WALLETS}
    monkeypatch.setattr(httpx, "AsyncClient", lambda *a, **kw: DummyClient(calls, tables))

    f = QueryFilter(date_start=date(2024, 3, 1), date_end=date(2024, 3, 15))
    txs = asyncio.run(_store().fetch_transactions("u1", f))

    assert [t.id for t in txs] == [1, 2]
    assert txs[0].amount == 25000
    assert txs[0].category.name == "Makan"
    assert txs[0].wallet.name == "BCA"
    assert txs[1].category_name == "Gaji"
    assert txs[1].wallet is None  # unknown wallet id
    urls = [c[1] for c in calls]
    assert urls[0] == "https://demo.supabase.co/rest/v1/transactions"
    assert calls[0][3]["apikey"] == "svc"
    assert calls[0][3]["Authorization"] == "Bearer svc"


def test_fetch_transactions_failure_returns_empty(monkeypatch):
    calls = []
    monkeypatch.setattr(httpx, "AsyncClient", lambda *a, **kw: DummyClient(calls, fail=True))
    f = QueryFilter(date_start=date(2024, 3, 1), date_end=date(2024, 3, 15))
    assert asyncio.run(_store().fetch_transactions("u1", f)) == []


def test_list_user_ids_unique_in_order(monkeypatch):
    calls = []
    rows = [{"user_id": "b"}, {"user_id": "a"}, {"user_id": "b"}, {"user_id": None}]
    monkeypatch.setattr(httpx, "AsyncClient", lambda *a, **kw: DummyClient(calls, {"transactions": rows}))
    assert asyncio.run(_store().list_user_ids()) == ["b", "a"]
    _, _, params, _ = calls[0]
    assert ("limit", str(sb.USER_SCAN_LIMIT)) in params
    assert ("order", "created_at.desc") in params


def test_save_insights_prunes_then_inserts(monkeypatch):
    calls = []
    monkeypatch.setattr(httpx, "AsyncClient", lambda *a, **kw: DummyClient(calls))
    insights = [Insight(title="Hemat", description="Pengeluaran turun", type="saving", severity="success")]

    n = asyncio.run(
        _store().save_insights(
            "u1", insights, date(2024, 2, 14), date(2024, 3, 15), now=datetime(2024, 3, 15, 12, 0)
        )
    )

    assert n == 1
    method, _, params, _ = calls[0]
    assert method == "DELETE"
    assert ("created_at", "lt.2024-02-14T12:00:00") in params
    method, url, payload, headers = calls[1]
    assert method == "POST"
    assert url.endswith("/rest/v1/insights")
    assert payload[0]["insight_type"] == "saving"
    assert payload[0]["period_start"] == "2024-02-14"
    assert payload[0]["is_read"] is False
    assert headers["Prefer"] == "return=minimal"


def test_store_requires_credentials(monkeypatch):
    monkeypatch.setattr(sb.settings, "supabase_url", None)
    monkeypatch.setattr(sb.settings, "supabase_service_role_key", None)
    with pytest.raises(ValueError):
        sb.TransactionStore()


class StatusClient(DummyClient):
    def __init__(self, calls, status):
        super().__init__(calls)
        self.status = status

    async def get(self, url, params, headers):
        self.calls.append(("GET", url, params, headers))
        return httpx.Response(self.status, json={"message": "nope"}, request=httpx.Request("GET", url))


def test_client_errors_are_not_retried(monkeypatch):
    calls = []
    monkeypatch.setattr(httpx, "AsyncClient", lambda *a, **kw: StatusClient(calls, 404))
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(_store().fetch_budgets("u1", 3, 2024))
    assert len(calls) == 1


def test_only_transient_errors_are_retried():
    req = httpx.Request("GET", "https://demo.supabase.co/rest/v1/transactions")

    def status_error(code):
        return httpx.HTTPStatusError("err", request=req, response=httpx.Response(code, request=req))

    assert sb._is_transient(status_error(503))
    assert sb._is_transient(httpx.ConnectError("refused", request=req))
    assert not sb._is_transient(status_error(404))
    assert not sb._is_transient(status_error(401))
    assert not sb._is_transient(RuntimeError("boom"))
