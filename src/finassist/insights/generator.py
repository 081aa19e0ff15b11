"""Periodic financial insights per user.

The current period (last ``period_days`` days) is compared with the one
before it, together with this month's budgets. The AI model is asked for
a JSON array of insights; when it is unavailable or answers with nothing
usable, a set of deterministic rules produces the insights instead.
"""

from __future__ import annotations
import asyncio
import json
import logging
import re
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..analytics import budget_status, by_category, total
from ..config.runtime_config import InsightsCfg, RuntimeConfig
from ..config.settings import local_now
from ..formatting import format_currency
from ..logs import log_error, log_system
from ..store.models import INSIGHT_TITLE_MAX, Budget, Insight, Transaction
from ..store.supabase import TransactionStore
from ..assistant.llm import complete

logger = logging.getLogger(__name__)

MAX_INSIGHTS = 5

INSIGHT_PROMPT = """Kamu adalah seorang penasihat keuangan profesional. Analisis data transaksi berikut dan berikan 3-5 wawasan keuangan yang ACTIONABLE dan SPESIFIK dalam Bahasa Indonesia.

Data Keuangan:
{data}

Instruksi:
1. Bandingkan periode saat ini dengan periode sebelumnya
2. Identifikasi tren pengeluaran (naik/turun)
3. Cek apakah ada kategori yang mendekati atau melebihi budget
4. Cari pola pengeluaran yang tidak biasa
5. Berikan rekomendasi konkret

Format output dalam JSON array dengan struktur:
[
  {{
    "title": "Judul singkat (max 60 karakter)",
    "description": "Penjelasan detail dengan angka spesifik (max 200 karakter)",
    "type": "spending|saving|budget|trend|subscription|general",
    "severity": "info|warning|success|critical",
    "metadata": {{
      "category": "nama kategori jika relevan",
      "amount_change": angka perubahan jika ada,
      "percentage_change": persentase perubahan
    }}
  }}
]

Berikan HANYA JSON array, tanpa teks tambahan."""


def period_bounds(today: date, period_days: int = 30) -> tuple[date, date, date, date]:
    """Current and previous comparison windows as ``(start, end, prev_start, prev_end)``."""
    start = today - timedelta(days=period_days)
    prev_end = start - timedelta(days=1)
    prev_start = prev_end - timedelta(days=period_days)
    return start, today, prev_start, prev_end


def _category_rows(transactions: List[Transaction]) -> List[Dict[str, Any]]:
    df = by_category(transactions, tx_type=None, uncategorized="Uncategorized")
    return [
        {"category": r["category"], "type": r["type"], "total": float(r["total"]), "count": int(r["count"])}
        for r in df.to_dict("records")
    ]


def build_analysis_data(
    current: List[Transaction],
    previous: List[Transaction],
    budgets: List[Budget],
    bounds: tuple[date, date, date, date],
) -> Dict[str, Any]:
    start, end, prev_start, prev_end = bounds
    return {
        "current_period": {
            "start": start.isoformat(),
            "end": end.isoformat(),
            "total_income": total(current, "income"),
            "total_expense": total(current, "expense"),
            "by_category": _category_rows(current),
        },
        "previous_period": {
            "start": prev_start.isoformat(),
            "end": prev_end.isoformat(),
            "total_income": total(previous, "income"),
            "total_expense": total(previous, "expense"),
            "by_category": _category_rows(previous),
        },
        "budgets": [
            {
                "category": b.category.name if b.category else str(b.category_id),
                "amount": b.amount,
                "spent": s.spent,
                "remaining": s.remaining,
            }
            for b, s in ((b, budget_status(b, current)) for b in budgets)
        ],
    }


def _insight(title: str, **fields: Any) -> Insight:
    # titles embed user category names, so they can outgrow the column
    if len(title) > INSIGHT_TITLE_MAX:
        title = title[: INSIGHT_TITLE_MAX - 3].rstrip() + "..."
    return Insight(title=title, **fields)


def parse_insights(text: str) -> List[Insight]:
    """Pull the first JSON array out of a model reply and validate its items."""
    m = re.search(r"\[[\s\S]*\]", text or "")
    if not m:
        logger.error("Failed to extract JSON from model response")
        return []
    try:
        raw = json.loads(m.group(0))
    except json.JSONDecodeError as e:
        logger.error("Model returned invalid JSON: %s", e)
        return []
    out = []
    for item in raw:
        try:
            out.append(_insight(**item))
        except (TypeError, ValidationError) as e:
            logger.warning("Skipping malformed insight %r: %s", item, e)
    return out


def generate_insights_with_llm(data: Dict[str, Any], client: Any, cfg: RuntimeConfig) -> List[Insight]:
    prompt = INSIGHT_PROMPT.format(data=json.dumps(data, indent=2, ensure_ascii=False))
    text = complete(
        client,
        prompt,
        cfg.ai,
        system="Kamu adalah penasihat keuangan profesional.",
        temperature=cfg.ai.insight_temperature,
        max_tokens=cfg.ai.insight_max_output_tokens,
    )
    return parse_insights(text)


def _pct_change(current: float, previous: float) -> Optional[float]:
    if previous <= 0:
        return None
    return (current - previous) / previous * 100


def heuristic_insights(data: Dict[str, Any], cfg: Optional[InsightsCfg] = None) -> List[Insight]:
    """Rule-based insights from the same aggregates the model would see."""
    cfg = cfg or InsightsCfg()
    cur, prev = data["current_period"], data["previous_period"]
    out: List[Insight] = []

    change = _pct_change(cur["total_expense"], prev["total_expense"])
    if change is not None and change >= 10:
        out.append(_insight(
            title=f"Pengeluaran naik {change:.0f}%",
            description=(
                f"Pengeluaran periode ini {format_currency(cur['total_expense'])}, "
                f"naik dari {format_currency(prev['total_expense'])} periode sebelumnya."
            ),
            type="trend",
            severity="warning",
            metadata={"amount_change": cur["total_expense"] - prev["total_expense"], "percentage_change": round(change, 1)},
        ))
    elif change is not None and change <= -10:
        out.append(_insight(
            title=f"Pengeluaran turun {abs(change):.0f}%",
            description=(
                f"Kamu berhasil hemat: pengeluaran periode ini {format_currency(cur['total_expense'])} "
                f"dibanding {format_currency(prev['total_expense'])} sebelumnya."
            ),
            type="saving",
            severity="success",
            metadata={"amount_change": cur["total_expense"] - prev["total_expense"], "percentage_change": round(change, 1)},
        ))

    for b in data["budgets"]:
        if not b["amount"]:
            continue
        used = b["spent"] / b["amount"] * 100
        if used >= 100:
            out.append(_insight(
                title=f"Budget {b['category']} terlampaui",
                description=(
                    f"Pengeluaran {b['category']} {format_currency(b['spent'])} melebihi budget "
                    f"{format_currency(b['amount'])}."
                ),
                type="budget",
                severity="critical",
                metadata={"category": b["category"], "percentage_change": round(used, 1)},
            ))
        elif used >= cfg.budget_warning_pct:
            out.append(_insight(
                title=f"Budget {b['category']} hampir habis",
                description=(
                    f"Tersisa {100 - used:.0f}% ({format_currency(b['remaining'])}) dari budget "
                    f"{b['category']} bulan ini."
                ),
                type="budget",
                severity="warning",
                metadata={"category": b["category"], "percentage_change": round(used, 1)},
            ))

    prev_by_cat = {r["category"]: r["total"] for r in prev["by_category"] if r["type"] == "expense"}
    rising = [
        (r["category"], r["total"], _pct_change(r["total"], prev_by_cat.get(r["category"], 0)))
        for r in cur["by_category"]
        if r["type"] == "expense"
    ]
    rising = [x for x in rising if x[2] is not None and x[2] >= 30]
    if rising:
        cat, amount, pct = max(rising, key=lambda x: x[2])
        out.append(_insight(
            title=f"Pengeluaran {cat} naik {pct:.0f}%",
            description=f"Kategori {cat} mencapai {format_currency(amount)} periode ini.",
            type="spending",
            severity="warning",
            metadata={"category": cat, "percentage_change": round(pct, 1)},
        ))

    income, expense = cur["total_income"], cur["total_expense"]
    if income > 0:
        rate = (income - expense) / income * 100
        if rate < 0:
            out.append(_insight(
                title="Pengeluaran melebihi pemasukan",
                description=(
                    f"Pengeluaran {format_currency(expense)} lebih besar dari pemasukan "
                    f"{format_currency(income)} periode ini."
                ),
                type="spending",
                severity="critical",
                metadata={"amount_change": income - expense},
            ))
        elif rate >= 20:
            out.append(_insight(
                title=f"Tabungan sehat {rate:.0f}% dari pemasukan",
                description=f"Kamu menyisihkan {format_currency(income - expense)} periode ini. Pertahankan!",
                type="saving",
                severity="success",
                metadata={"percentage_change": round(rate, 1)},
            ))

    if not out:
        out.append(_insight(
            title="Keuangan stabil",
            description="Tidak ada perubahan signifikan dibanding periode sebelumnya.",
            type="general",
            severity="info",
        ))
    return out[:MAX_INSIGHTS]


async def generate_insights_for_user(
    user_id: str,
    store: TransactionStore,
    llm_client: Any = None,
    cfg: Optional[RuntimeConfig] = None,
    today: Optional[date] = None,
) -> List[Insight]:
    cfg = cfg or RuntimeConfig()
    today = today or local_now().date()
    bounds = period_bounds(today, cfg.insights.period_days)
    start, end, prev_start, prev_end = bounds

    current, previous, budgets = await asyncio.gather(
        store.fetch_transactions_between(user_id, start, end),
        store.fetch_transactions_between(user_id, prev_start, prev_end),
        store.fetch_budgets(user_id, today.month, today.year),
    )
    data = build_analysis_data(current, previous, budgets, bounds)

    insights: List[Insight] = []
    if llm_client is not None and cfg.ai.enabled:
        try:
            insights = await asyncio.to_thread(generate_insights_with_llm, data, llm_client, cfg)
        except Exception as e:
            log_error(f"AI insight generation failed for user {user_id}", e)
    if not insights:
        insights = heuristic_insights(data, cfg.insights)

    await store.save_insights(
        user_id, insights, start, end, retention_days=cfg.insights.retention_days
    )
    return insights


async def run_insights(
    store: TransactionStore,
    llm_client: Any = None,
    cfg: Optional[RuntimeConfig] = None,
    today: Optional[date] = None,
    user_ids: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Generate insights for every user with transactions (or just ``user_ids``)."""
    user_ids = user_ids if user_ids is not None else await store.list_user_ids()
    log_system(f"Processing insights for {len(user_ids)} users")

    processed = errors = 0
    for uid in user_ids:
        try:
            await generate_insights_for_user(uid, store, llm_client, cfg, today)
            processed += 1
        except Exception as e:
            log_error(f"Error processing insights for user {uid}", e)
            errors += 1

    return {
        "success": True,
        "message": f"Insights generated for {processed} users, {errors} errors",
        "processed": processed,
        "errors": errors,
    }
