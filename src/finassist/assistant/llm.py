from __future__ import annotations
import json
import logging
from typing import List, Optional

from openai import OpenAI
from tenacity import retry, stop_after_attempt, wait_exponential_jitter

from ..analytics import top_categories, total
from ..config.runtime_config import AIConfig
from ..config.settings import settings
from ..formatting import format_currency
from ..store.models import Transaction

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "Kamu adalah asisten keuangan AI yang cerdas dan to the point."

INSTRUCTIONS = """Instruksi:
1. Jawab LANGSUNG dan TO THE POINT
2. Maksimal 3-4 kalimat untuk pertanyaan simple
3. Gunakan bullet points hanya jika perlu
4. Format angka dengan Rupiah
5. Tambahkan emoji untuk visual appeal
6. Jika memberi saran, maksimal 3 tips singkat

PENTING: Jangan bertele-tele! User ingin jawaban cepat dan jelas."""


def build_client(api_key: Optional[str] = None) -> OpenAI:
    key = api_key or settings.openai_api_key
    if not key:
        raise RuntimeError("OPENAI_API_KEY is not configured")
    return OpenAI(api_key=key)


def build_chat_prompt(question: str, transactions: List[Transaction], sample_size: int = 15) -> str:
    """Prompt with period totals, the top five expense categories and a sample of rows."""
    total_expense = total(transactions, "expense")
    total_income = total(transactions, "income")
    top = ", ".join(f"{cat} ({format_currency(amount)})" for cat, amount in top_categories(transactions))
    sample = [
        {
            "date": t.date.isoformat(),
            "title": t.title,
            "amount": float(t.amount),
            "type": t.type,
            "category": t.category_name or "Lainnya",
        }
        for t in transactions[:sample_size]
    ]
    return (
        f'Pertanyaan: "{question}"\n\n'
        "Data:\n"
        f"- Total Pengeluaran: {format_currency(total_expense)}\n"
        f"- Total Pemasukan: {format_currency(total_income)}\n"
        f"- Net Flow: {format_currency(total_income - total_expense)}\n"
        f"- Top Kategori: {top}\n"
        f"- Sample transaksi: {json.dumps(sample, ensure_ascii=False)}\n\n"
        f"{INSTRUCTIONS}"
    )


@retry(wait=wait_exponential_jitter(1, 3), stop=stop_after_attempt(3), reraise=True)
def complete(client: OpenAI, prompt: str, cfg: AIConfig, system: Optional[str] = None,
             temperature: Optional[float] = None, max_tokens: Optional[int] = None) -> str:
    resp = client.chat.completions.create(
        model=cfg.model,
        temperature=cfg.temperature if temperature is None else temperature,
        max_tokens=max_tokens or cfg.max_output_tokens,
        messages=[
            {"role": "system", "content": system or cfg.system_prompt or DEFAULT_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
    )
    return resp.choices[0].message.content or ""


def generate_ai_response(
    question: str,
    transactions: List[Transaction],
    client: OpenAI,
    cfg: Optional[AIConfig] = None,
    sample_size: int = 15,
) -> str:
    cfg = cfg or AIConfig()
    prompt = build_chat_prompt(question, transactions, sample_size)
    logger.info("Requesting AI reply for %d transactions", len(transactions))
    return complete(client, prompt, cfg)
