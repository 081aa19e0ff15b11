from __future__ import annotations
from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

TransactionType = Literal["income", "expense"]


class QueryFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Optional[TransactionType] = None
    # reserved; the interpreter never fills it
    category_name: Optional[str] = None
    amount_min: Optional[float] = Field(default=None, ge=0)
    amount_max: Optional[float] = Field(default=None, ge=0)
    date_start: date
    date_end: date

    @model_validator(mode="after")
    def ordered_dates(self):
        if self.date_start > self.date_end:
            raise ValueError("date_start must be on or before date_end")
        return self
