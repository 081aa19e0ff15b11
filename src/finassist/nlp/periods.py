from __future__ import annotations
from datetime import date, timedelta
from typing import NamedTuple, Optional

from .keywords import DEFAULT_PHRASES, PhraseTable

class DateRange(NamedTuple):
    start: date
    end: date

def _week_start(d: date) -> date:
    # weeks start on Sunday
    return d - timedelta(days=(d.weekday() + 1) % 7)

def _month_start(d: date) -> date:
    return date(d.year, d.month, 1)

def resolve_period(text: str, today: date, phrases: Optional[PhraseTable] = None) -> DateRange:
    """Resolve a period phrase in ``text`` to an inclusive date range.

    ``text`` is expected lower-cased. Unrecognised text falls back to the
    current month up to ``today``.
    """
    tag = (phrases or DEFAULT_PHRASES).period_tag(text)

    if tag == "today":
        return DateRange(today, today)
    if tag == "yesterday":
        d = today - timedelta(days=1)
        return DateRange(d, d)
    if tag == "this_week":
        return DateRange(_week_start(today), today)
    if tag == "last_week":
        start = _week_start(today) - timedelta(days=7)
        return DateRange(start, start + timedelta(days=6))
    if tag == "last_month":
        end = _month_start(today) - timedelta(days=1)
        return DateRange(_month_start(end), end)
    if tag == "this_year":
        return DateRange(date(today.year, 1, 1), today)

    # "this_month" and default
    return DateRange(_month_start(today), today)

