from __future__ import annotations
from enum import Enum


class Intent(str, Enum):
    TOTAL = "total"
    TOP_CATEGORY = "top_category"
    AVERAGE = "average"
    COUNT = "count"
    BIGGEST = "biggest"
    SMALLEST = "smallest"
    LIST = "list"
    COMPARISON = "comparison"
    ADVICE = "advice"
    COMPLEX = "complex"


# Intents that can be answered from the data without the AI model.
DIRECT_INTENTS = {
    Intent.TOTAL,
    Intent.TOP_CATEGORY,
    Intent.AVERAGE,
    Intent.COUNT,
    Intent.BIGGEST,
    Intent.SMALLEST,
    Intent.LIST,
}

# Checked in order; first match wins.
INTENT_KEYWORDS: list[tuple[Intent, list[str]]] = [
    (Intent.TOTAL, ["total", "jumlah total", "berapa total"]),
    (Intent.TOP_CATEGORY, ["kategori", "category", "boros", "terbanyak", "terbesar per kategori"]),
    (Intent.AVERAGE, ["rata-rata", "average", "rerata"]),
    (Intent.COUNT, ["berapa banyak", "jumlah transaksi", "count"]),
    (Intent.BIGGEST, ["transaksi terbesar", "pengeluaran terbesar", "biggest"]),
    (Intent.SMALLEST, ["transaksi terkecil", "pengeluaran terkecil", "smallest"]),
    (Intent.LIST, ["daftar", "list", "lihat", "tampilkan"]),
    (Intent.COMPARISON, ["bandingkan", "compare", "vs", "lebih"]),
    (Intent.ADVICE, ["saran", "tips", "advice", "rekomendasi", "bagaimana", "gimana"]),
]


def detect_intent(question: str) -> Intent:
    q = question.lower()
    for intent, words in INTENT_KEYWORDS:
        if any(w in q for w in words):
            return intent
    return Intent.COMPLEX
