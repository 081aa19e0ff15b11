"""Rule-based replies for questions that need no AI model."""

from __future__ import annotations
from datetime import date
from typing import List, Optional

from ..analytics import UNCATEGORIZED, by_category, total
from ..formatting import format_currency
from ..nlp.schema import QueryFilter
from ..store.models import Transaction
from .intents import Intent

NO_DATA_REPLY = (
    "Tidak ada data transaksi yang ditemukan untuk periode ini. "
    "Silakan tambahkan transaksi terlebih dahulu."
)
RANK_MARKS = ["🥇", "🥈", "🥉", "4️⃣", "5️⃣"]


def _local_date(d: date) -> str:
    return f"{d.day}/{d.month}/{d.year}"


def _split(transactions: List[Transaction]) -> tuple[List[Transaction], List[Transaction]]:
    expenses = [t for t in transactions if t.type == "expense"]
    incomes = [t for t in transactions if t.type == "income"]
    return expenses, incomes


def _answer_total(expenses, incomes, filters: QueryFilter, question: str) -> str:
    if filters.type == "expense" or "pengeluaran" in question:
        return (
            f"💰 **Total Pengeluaran**\n\n{format_currency(total(expenses))}\n\n"
            f"📊 Dari {len(expenses)} transaksi"
        )
    if filters.type == "income" or "pemasukan" in question:
        return (
            f"💰 **Total Pemasukan**\n\n{format_currency(total(incomes))}\n\n"
            f"📊 Dari {len(incomes)} transaksi"
        )
    total_expense = total(expenses)
    total_income = total(incomes)
    net = total_income - total_expense
    return (
        "💰 **Ringkasan Keuangan**\n\n"
        f"**Pemasukan:** {format_currency(total_income)}\n"
        f"**Pengeluaran:** {format_currency(total_expense)}\n"
        f"**Net Flow:** {format_currency(net)} {'✅' if net >= 0 else '⚠️'}"
    )


def _answer_top_category(expenses, incomes, filters: QueryFilter) -> str:
    target = incomes if filters.type == "income" else expenses
    grouped = by_category(target, tx_type=None).head(5)
    if grouped.empty:
        return "Tidak ada data kategori."
    label = "Pemasukan" if filters.type == "income" else "Pengeluaran"
    lines = [f"📊 **Top Kategori {label}**", ""]
    for mark, row in zip(RANK_MARKS, grouped.itertuples(index=False)):
        lines.append(f"{mark} **{row.category}**\n   {format_currency(row.total)}\n")
    return "\n".join(lines).strip()


def _pick(transactions, expenses, incomes, filters: QueryFilter):
    if filters.type == "income":
        return incomes, "pemasukan"
    if filters.type == "expense":
        return expenses, "pengeluaran"
    return transactions, "transaksi"


def _describe_one(heading: str, t: Transaction) -> str:
    return (
        f"{heading}\n\n**{t.title}**\n{format_currency(t.amount)}\n\n"
        f"📅 {_local_date(t.date)}\n🏷️ {t.category_name or 'Tanpa kategori'}"
    )


def generate_direct_answer(
    intent: Intent,
    transactions: List[Transaction],
    filters: QueryFilter,
    question: str,
    list_size: int = 10,
) -> Optional[str]:
    """Answer simple intents straight from the data.

    Returns ``None`` when the intent needs the AI model. ``question`` is
    expected lower-cased.
    """
    if not transactions:
        return NO_DATA_REPLY

    expenses, incomes = _split(transactions)

    if intent == Intent.TOTAL:
        return _answer_total(expenses, incomes, filters, question)

    if intent == Intent.TOP_CATEGORY:
        return _answer_top_category(expenses, incomes, filters)

    if intent == Intent.AVERAGE:
        target, label = _pick(transactions, expenses, incomes, filters)
        if not target:
            return "Tidak ada data untuk dihitung rata-rata."
        avg = total(target) / len(target)
        return f"📊 **Rata-rata {label.capitalize()}**\n\n{format_currency(avg)}\n\nDari {len(target)} transaksi"

    if intent == Intent.COUNT:
        target, label = _pick(transactions, expenses, incomes, filters)
        return f"📊 **Jumlah Transaksi**\n\nAda **{len(target)}** {label}"

    if intent in (Intent.BIGGEST, Intent.SMALLEST):
        target = incomes if filters.type == "income" else expenses
        if not target:
            return "Tidak ada data."
        if intent == Intent.BIGGEST:
            return _describe_one("💎 **Transaksi Terbesar**", max(target, key=lambda t: t.amount))
        return _describe_one("💰 **Transaksi Terkecil**", min(target, key=lambda t: t.amount))

    if intent == Intent.LIST:
        target, _ = _pick(transactions, expenses, incomes, filters)
        shown = target[:list_size]
        if not shown:
            return "Tidak ada transaksi."
        lines = ["📋 **Daftar Transaksi**", ""]
        for i, t in enumerate(shown, 1):
            lines.append(
                f"{i}. **{t.title}**\n   {format_currency(t.amount)} • {t.category_name or UNCATEGORIZED}\n"
                f"   {_local_date(t.date)}\n"
            )
        if len(target) > list_size:
            lines.append(f"_...dan {len(target) - list_size} transaksi lainnya_")
        return "\n".join(lines).strip()

    return None
