"""Phrase lookup tables used by the query interpreter.

Every keyword the interpreter reacts to lives here as data. The runtime
config may override any of the tables (``keywords:`` section) so new
synonyms or languages can be added without touching the parsing code.
"""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field

# Period tags in the order they are evaluated; first match wins.
PERIOD_ORDER = [
    "today",
    "yesterday",
    "this_week",
    "last_week",
    "this_month",
    "last_month",
    "this_year",
]


def _default_periods() -> Dict[str, List[str]]:
    return {
        "today": ["hari ini", "today"],
        "yesterday": ["kemarin", "yesterday"],
        "this_week": ["minggu ini", "this week"],
        "last_week": ["minggu lalu", "last week"],
        "this_month": ["bulan ini", "this month"],
        "last_month": ["bulan lalu", "last month"],
        "this_year": ["tahun ini", "this year"],
    }


class PhraseTable(BaseModel):
    periods: Dict[str, List[str]] = Field(default_factory=_default_periods)
    expense_words: List[str] = Field(
        default_factory=lambda: [
            "pengeluaran", "expense", "keluar", "bayar", "beli", "belanja", "boros",
        ]
    )
    income_words: List[str] = Field(
        default_factory=lambda: [
            "pemasukan", "income", "masuk", "gaji", "terima", "pendapatan",
        ]
    )
    million_words: List[str] = Field(default_factory=lambda: ["juta"])
    thousand_words: List[str] = Field(default_factory=lambda: ["ribu", "rb", "k"])
    min_phrases: List[str] = Field(
        default_factory=lambda: ["di atas", "lebih dari", "minimal", "min"]
    )
    max_phrases: List[str] = Field(
        default_factory=lambda: ["di bawah", "kurang dari", "maksimal", "max"]
    )

    def period_tag(self, text: str) -> str | None:
        """Return the first period tag (in ``PERIOD_ORDER``) whose phrase occurs in ``text``."""
        for tag in PERIOD_ORDER:
            if any(p in text for p in self.periods.get(tag, [])):
                return tag
        return None


def contains_any(text: str, words: List[str]) -> bool:
    return any(w in text for w in words)


DEFAULT_PHRASES = PhraseTable()
