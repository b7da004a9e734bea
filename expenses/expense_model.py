from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import Field

from schemas.base import ApiModel
from utils.periods import IsoDateTime

CURRENCIES = ("USD", "NGN")

Currency = Literal["USD", "NGN"]


class ExpenseCreate(ApiModel):
    amount: float = Field(gt=0)
    currency: Currency = "USD"
    description: str = Field(default="", max_length=500)
    category: Optional[str] = Field(default=None, max_length=50)
    category_id: Optional[str] = None
    date: Optional[IsoDateTime] = None


class ExpenseUpdate(ApiModel):
    amount: Optional[float] = Field(default=None, gt=0)
    currency: Optional[Currency] = None
    description: Optional[str] = Field(default=None, max_length=500)
    category: Optional[str] = Field(default=None, max_length=50)
    category_id: Optional[str] = None
    date: Optional[IsoDateTime] = None


class Expense(ApiModel):
    id: str
    user_id: Optional[str] = None
    amount: float
    currency: str
    description: str = ""
    category: str
    category_id: Optional[str] = None
    date: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Expense":
        return cls(
            id=record["id"],
            user_id=record.get("user_id"),
            amount=record.get("amount", 0),
            currency=record.get("currency", "USD"),
            description=record.get("description") or "",
            category=record.get("category") or "Uncategorized",
            category_id=record.get("category_id") or None,
            date=record.get("date"),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
        )
