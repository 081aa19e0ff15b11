"""finassist - personal finance chat assistant core package."""

from __future__ import annotations

from .nlp.parser import describe_filter, parse_user_query
from .nlp.periods import DateRange, resolve_period
from .nlp.schema import QueryFilter

__all__ = ["DateRange", "QueryFilter", "describe_filter", "parse_user_query", "resolve_period"]
