"""Supabase (PostgREST) access for transactions, budgets and insights."""

from __future__ import annotations
from datetime import date, datetime, timedelta
from typing import Any, Optional
import logging

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential_jitter

from ..config.settings import local_now, settings
from ..logs import log_error
from ..nlp.schema import QueryFilter
from .models import Budget, Category, Insight, Transaction, Wallet

# Set up module-level logger
logger = logging.getLogger(__name__)

TRANSACTION_COLUMNS = "id,title,amount,type,date,note,category_id,wallet_id"
DEFAULT_LIMIT = 500
USER_SCAN_LIMIT = 10000


def _is_transient(exc: BaseException) -> bool:
    """Transport failures and 5xx responses; 4xx will not succeed on retry."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


_retry_http = retry(
    retry=retry_if_exception(_is_transient),
    wait=wait_exponential_jitter(1, 3),
    stop=stop_after_attempt(3),
    reraise=True,
)


class StoreError(RuntimeError):
    """Raised when a write against the backend fails."""


def _num(value: float) -> str:
    return f"{value:.0f}" if float(value).is_integer() else str(value)


def filter_params(user_id: str, filters: QueryFilter, limit: int = DEFAULT_LIMIT) -> list[tuple[str, str]]:
    """Translate a QueryFilter into PostgREST query parameters."""
    params = [("select", TRANSACTION_COLUMNS), ("user_id", f"eq.{user_id}")]
    if filters.type:
        params.append(("type", f"eq.{filters.type}"))
    params.append(("date", f"gte.{filters.date_start.isoformat()}"))
    params.append(("date", f"lte.{filters.date_end.isoformat()}"))
    if filters.amount_min is not None:
        params.append(("amount", f"gte.{_num(filters.amount_min)}"))
    if filters.amount_max is not None:
        params.append(("amount", f"lte.{_num(filters.amount_max)}"))
    params.append(("order", "date.desc"))
    params.append(("limit", str(limit)))
    return params


def join_lookups(
    rows: list[dict[str, Any]],
    categories: list[Category],
    wallets: list[Wallet],
) -> list[Transaction]:
    """Attach category and wallet records to transaction rows by id."""
    cat_by_id = {c.id: c for c in categories}
    wallet_by_id = {w.id: w for w in wallets}
    out = []
    for row in rows:
        tx = Transaction(**row)
        tx.category = cat_by_id.get(tx.category_id)
        tx.wallet = wallet_by_id.get(tx.wallet_id)
        out.append(tx)
    return out


class TransactionStore:
    def __init__(self, url: Optional[str] = None, service_key: Optional[str] = None, timeout: float = 30):
        self.url = (url or settings.supabase_url or "").rstrip("/")
        self.service_key = service_key or settings.supabase_service_role_key
        self.timeout = timeout
        if not self.url or not self.service_key:
            raise ValueError("Supabase URL and service role key are required")

    def _headers(self, prefer: Optional[str] = None) -> dict[str, str]:
        h = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if prefer:
            h["Prefer"] = prefer
        return h

    def _rest(self, table: str) -> str:
        return f"{self.url}/rest/v1/{table}"

    @_retry_http
    async def _select(self, table: str, params: list[tuple[str, str]]) -> list[dict[str, Any]]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(self._rest(table), params=params, headers=self._headers())
            if r.status_code >= 400:
                logger.error("Supabase error on %s: %s", table, r.text)
            r.raise_for_status()
            return r.json() or []

    async def fetch_categories(self, user_id: str) -> list[Category]:
        rows = await self._select("categories", [("select", "id,name,type"), ("user_id", f"eq.{user_id}")])
        return [Category(**r) for r in rows]

    async def fetch_wallets(self, user_id: str) -> list[Wallet]:
        rows = await self._select("wallets", [("select", "id,name,type"), ("user_id", f"eq.{user_id}")])
        return [Wallet(**r) for r in rows]

    async def fetch_transactions(
        self, user_id: str, filters: QueryFilter, limit: int = DEFAULT_LIMIT
    ) -> list[Transaction]:
        """Fetch the user's transactions matching ``filters``, newest first.

        Categories and wallets are fetched in bulk and joined in memory.
        Any failure is logged and yields an empty list.
        """
        try:
            rows = await self._select("transactions", filter_params(user_id, filters, limit))
            categories = await self.fetch_categories(user_id)
            wallets = await self.fetch_wallets(user_id)
        except Exception as e:
            log_error(f"Error fetching transactions for user {user_id}", e)
            return []
        return join_lookups(rows, categories, wallets)

    async def fetch_transactions_between(self, user_id: str, start: date, end: date) -> list[Transaction]:
        rows = await self._select(
            "transactions",
            [
                ("select", "*,category:categories(*)"),
                ("user_id", f"eq.{user_id}"),
                ("date", f"gte.{start.isoformat()}"),
                ("date", f"lte.{end.isoformat()}"),
            ],
        )
        return [Transaction(**r) for r in rows]

    async def fetch_budgets(self, user_id: str, month: int, year: int) -> list[Budget]:
        rows = await self._select(
            "budgets",
            [
                ("select", "*,category:categories(*)"),
                ("user_id", f"eq.{user_id}"),
                ("month", f"eq.{month}"),
                ("year", f"eq.{year}"),
            ],
        )
        return [Budget(**r) for r in rows]

    async def list_user_ids(self, limit: int = USER_SCAN_LIMIT) -> list[str]:
        """Users with recent transactions, most recent activity first.

        Only the newest ``limit`` rows are scanned.
        """
        rows = await self._select(
            "transactions",
            [("select", "user_id"), ("order", "created_at.desc"), ("limit", str(limit))],
        )
        seen: dict[str, None] = {}
        for r in rows:
            if r.get("user_id"):
                seen.setdefault(r["user_id"], None)
        return list(seen)

    @_retry_http
    async def save_insights(
        self,
        user_id: str,
        insights: list[Insight],
        period_start: date,
        period_end: date,
        retention_days: int = 30,
        now: Optional[datetime] = None,
    ) -> int:
        """Drop the user's insights older than ``retention_days`` and insert the new ones."""
        cutoff = (now or local_now()) - timedelta(days=retention_days)
        payload = [
            {
                "user_id": user_id,
                "title": i.title,
                "description": i.description,
                "insight_type": i.type,
                "severity": i.severity,
                "period_start": period_start.isoformat(),
                "period_end": period_end.isoformat(),
                "metadata": i.metadata,
                "is_read": False,
            }
            for i in insights
        ]
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.delete(
                self._rest("insights"),
                params=[("user_id", f"eq.{user_id}"), ("created_at", f"lt.{cutoff.isoformat()}")],
                headers=self._headers(),
            )
            if r.status_code >= 400:
                logger.warning("Failed to prune old insights for %s: %s", user_id, r.text)
            if not payload:
                return 0
            r = await client.post(
                self._rest("insights"), json=payload, headers=self._headers(prefer="return=minimal")
            )
            if r.status_code >= 400:
                raise StoreError(f"HTTP {r.status_code} saving insights for {user_id}: {r.text}")
        logger.info("Saved %d insights for user %s", len(payload), user_id)
        return len(payload)
