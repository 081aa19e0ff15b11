"""Chat pipeline: question -> filter -> transactions -> reply."""

from __future__ import annotations
import asyncio
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from ..config.runtime_config import RuntimeConfig
from ..config.settings import local_now
from ..logs import log_assistant
from ..nlp.parser import describe_filter, parse_user_query
from ..store.supabase import TransactionStore
from .answers import generate_direct_answer
from .intents import DIRECT_INTENTS, Intent, detect_intent
from .llm import generate_ai_response


class ChatMetadata(BaseModel):
    intent: Intent
    data_count: int
    used_ai: bool


class ChatReply(BaseModel):
    success: bool = True
    reply: str
    metadata: ChatMetadata


async def answer_question(
    message: str,
    user_id: str,
    store: TransactionStore,
    llm_client: Any = None,
    cfg: Optional[RuntimeConfig] = None,
    now: Optional[datetime] = None,
) -> ChatReply:
    """Answer a user's question about their transactions.

    Simple intents are answered from the data; comparisons, advice and
    anything the rules cannot answer go to the AI model via ``llm_client``.
    """
    cfg = cfg or RuntimeConfig()
    now = now or local_now()
    lower = message.lower()

    filters = parse_user_query(
        lower, now, phrases=cfg.keywords, magnitude_scope=cfg.query.magnitude_scope
    )
    log_assistant(f"user={user_id} filter: {describe_filter(filters)}")

    transactions = await store.fetch_transactions(user_id, filters, limit=cfg.query.result_limit)
    intent = detect_intent(lower)

    reply = None
    if intent in DIRECT_INTENTS:
        reply = generate_direct_answer(
            intent, transactions, filters, lower, list_size=cfg.query.list_size
        )

    used_ai = reply is None
    if used_ai:
        if llm_client is None:
            raise RuntimeError("An AI client is required to answer this question")
        reply = await asyncio.to_thread(
            generate_ai_response,
            message,
            transactions,
            llm_client,
            cfg.ai,
            cfg.query.ai_sample_size,
        )

    log_assistant(
        f"user={user_id} intent={intent.value} rows={len(transactions)} used_ai={used_ai}"
    )
    return ChatReply(
        reply=reply,
        metadata=ChatMetadata(intent=intent, data_count=len(transactions), used_ai=used_ai),
    )
