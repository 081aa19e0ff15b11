"""Aggregations over fetched transactions and budgets."""

from __future__ import annotations
from typing import Iterable, List, Optional

import pandas as pd

from .store.models import Budget, BudgetStatus, Transaction

UNCATEGORIZED = "Lainnya"

FRAME_COLUMNS = ["id", "title", "amount", "type", "date", "category"]


def to_frame(transactions: Iterable[Transaction], uncategorized: str = UNCATEGORIZED) -> pd.DataFrame:
    rows = [
        {
            "id": t.id,
            "title": t.title,
            "amount": float(t.amount),
            "type": t.type,
            "date": t.date,
            "category": t.category_name or uncategorized,
        }
        for t in transactions
    ]
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def total(transactions: Iterable[Transaction], tx_type: Optional[str] = None) -> float:
    df = to_frame(transactions)
    if tx_type:
        df = df[df["type"] == tx_type]
    return float(df["amount"].sum())


def by_category(
    transactions: Iterable[Transaction],
    tx_type: Optional[str] = "expense",
    uncategorized: str = UNCATEGORIZED,
) -> pd.DataFrame:
    """Total and count per (category, type), largest total first.

    Returns columns ``category, type, total, count``.
    """
    df = to_frame(transactions, uncategorized)
    if tx_type:
        df = df[df["type"] == tx_type]
    if df.empty:
        return pd.DataFrame(columns=["category", "type", "total", "count"])
    grouped = (
        df.groupby(["category", "type"], sort=False)
        .agg(total=("amount", "sum"), count=("amount", "size"))
        .reset_index()
    )
    return grouped.sort_values("total", ascending=False, kind="stable").reset_index(drop=True)


def top_categories(transactions: Iterable[Transaction], n: int = 5) -> List[tuple[str, float]]:
    grouped = by_category(transactions, "expense").head(n)
    return [(row.category, float(row.total)) for row in grouped.itertuples(index=False)]


def budget_status(budget: Budget, transactions: Iterable[Transaction]) -> BudgetStatus:
    """Spending against a monthly budget, percentage capped at 100."""
    spent = sum(
        float(t.amount)
        for t in transactions
        if t.type == "expense"
        and t.category_id == budget.category_id
        and t.date.month == budget.month
        and t.date.year == budget.year
    )
    pct = (spent / budget.amount) * 100 if budget.amount else 0.0
    return BudgetStatus(
        budget=budget,
        spent=spent,
        remaining=budget.amount - spent,
        percentage=min(pct, 100.0),
    )
