from __future__ import annotations
import re
from datetime import date, datetime
from typing import Literal, Optional, Union

from .keywords import DEFAULT_PHRASES, PhraseTable, contains_any
from .periods import resolve_period
from .schema import QueryFilter

MagnitudeScope = Literal["question", "adjacent"]


def _amount_pattern(phrases: PhraseTable) -> str:
    words = sorted(phrases.million_words + phrases.thousand_words, key=len, reverse=True)
    return r"(\d+)\s*(" + "|".join(re.escape(w) for w in words) + r")?"


def _today(now: Union[date, datetime]) -> date:
    return now.date() if isinstance(now, datetime) else now


def _extract_type(text: str, phrases: PhraseTable) -> Optional[str]:
    # expense words win when both sets match
    if contains_any(text, phrases.expense_words):
        return "expense"
    if contains_any(text, phrases.income_words):
        return "income"
    return None


def _multiplier(words: str, phrases: PhraseTable) -> int:
    if contains_any(words, phrases.million_words):
        return 1_000_000
    if contains_any(words, phrases.thousand_words):
        return 1_000
    return 1


def _extract_amount(text: str, phrases: PhraseTable, scope: MagnitudeScope) -> Optional[int]:
    """Return the first number in ``text`` scaled by its magnitude word.

    With ``scope="question"`` the magnitude word may appear anywhere in the
    question, so an unrelated "ribu" later on still scales the first number.
    ``scope="adjacent"`` only honours the word captured right after it.
    """
    m = re.search(_amount_pattern(phrases), text)
    if not m:
        return None
    amount = int(m.group(1))
    if scope == "adjacent":
        return amount * _multiplier(m.group(2) or "", phrases)
    return amount * _multiplier(text, phrases)


def parse_user_query(
    question: str,
    now: Union[date, datetime],
    phrases: Optional[PhraseTable] = None,
    magnitude_scope: MagnitudeScope = "question",
) -> QueryFilter:
    """Interpret a free-text finance question as a transaction filter.

    Never raises on odd input; anything unrecognised leaves the filter
    permissive (both types, no amount bounds, current month).
    """
    phrases = phrases or DEFAULT_PHRASES
    t = question.lower()

    dr = resolve_period(t, today=_today(now), phrases=phrases)
    fields: dict = {"date_start": dr.start, "date_end": dr.end}

    tx_type = _extract_type(t, phrases)
    if tx_type:
        fields["type"] = tx_type

    amount = _extract_amount(t, phrases, magnitude_scope)
    if amount is not None:
        if contains_any(t, phrases.min_phrases):
            fields["amount_min"] = amount
        elif contains_any(t, phrases.max_phrases):
            fields["amount_max"] = amount

    return QueryFilter(**fields)


def _number(value: float) -> str:
    return f"{value:.0f}" if float(value).is_integer() else str(value)


def describe_filter(f: QueryFilter) -> str:
    """English one-line summary of a filter, used in logs and CLI output."""
    kind = f"{f.type} transactions" if f.type else "all transactions"
    if f.date_start == f.date_end:
        label = f"{kind} on {f.date_start.isoformat()}"
    else:
        label = f"{kind} from {f.date_start.isoformat()} to {f.date_end.isoformat()}"
    if f.amount_min is not None:
        label += f", amount >= {_number(f.amount_min)}"
    if f.amount_max is not None:
        label += f", amount <= {_number(f.amount_max)}"
    return label
