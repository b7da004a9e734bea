from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field

from schemas.base import ApiModel


class BudgetCreate(ApiModel):
    category_id: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=50)
    period_start: Optional[str] = None
    amount: float = Field(gt=0)


class BudgetUpdate(ApiModel):
    category_id: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=50)
    period_start: Optional[str] = None
    amount: Optional[float] = Field(default=None, gt=0)


class Budget(ApiModel):
    id: str
    user_id: Optional[str] = None
    category: str
    category_id: Optional[str] = None
    period_start: Optional[str] = None  # first day of month, UTC
    amount: float
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Budget":
        return cls(
            id=record["id"],
            user_id=record.get("user_id"),
            category=record.get("category") or "Uncategorized",
            category_id=record.get("category_id") or None,
            period_start=record.get("period_start"),
            amount=record.get("amount", 0),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
        )
