from __future__ import annotations
import datetime as dt
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..nlp.schema import TransactionType


class Category(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Any
    name: str
    type: Optional[str] = None


class Wallet(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Any
    name: str
    type: Optional[str] = None


class Transaction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Any
    title: str = ""
    amount: float
    type: TransactionType
    date: dt.date
    note: Optional[str] = None
    category_id: Any = None
    wallet_id: Any = None
    category: Optional[Category] = None
    wallet: Optional[Wallet] = None

    @property
    def category_name(self) -> Optional[str]:
        return self.category.name if self.category else None


class Budget(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Any = None
    category_id: Any
    amount: float
    month: int
    year: int
    category: Optional[Category] = None


class BudgetStatus(BaseModel):
    budget: Budget
    spent: float
    remaining: float
    percentage: float


INSIGHT_TITLE_MAX = 120


class Insight(BaseModel):
    title: str = Field(max_length=INSIGHT_TITLE_MAX)
    description: str
    type: str = "general"
    severity: str = "info"
    metadata: Dict[str, Any] = Field(default_factory=dict)
