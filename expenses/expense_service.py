from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Tuple

from fastapi import Depends, status
from surrealdb import AsyncSurreal

from categories.category_model import UNCATEGORIZED
from categories.category_service import CategoryService
from expenses.expense_model import Expense, ExpenseCreate, ExpenseUpdate
from expenses.expense_repo import ExpenseRepo
from settings.db import get_db
from settings.errors import ApiError
from utils.periods import to_iso, utcnow


def _not_found() -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, "not_found", "Expense not found.")


class ExpenseService:
    def __init__(self, db: AsyncSurreal):
        self.repo = ExpenseRepo(db)
        self.categories = CategoryService(db)

    async def _resolve_category(
        self, user_id: str, category_id: Optional[str], category: Optional[str]
    ) -> Tuple[Optional[str], str]:
        """(category_id, category name) from whichever of the two the client sent."""
        if category_id:
            record = await self.categories.resolve_by_id(user_id, category_id)
            return record["id"], record["name"]
        if category and category.strip():
            record = await self.categories.resolve_by_name(user_id, category.strip())
            if record:
                return record["id"], record["name"]
            return None, category.strip()
        return None, UNCATEGORIZED

    async def create(self, user_id: str, payload: ExpenseCreate) -> Expense:
        category_id, category = await self._resolve_category(user_id, payload.category_id, payload.category)
        now = utcnow()
        doc = {
            "user_id": user_id,
            "amount": payload.amount,
            "currency": payload.currency,
            "description": payload.description.strip(),
            "category": category,
            "category_id": category_id,
            "date": to_iso(payload.date or now),
            "created_at": to_iso(now),
            "updated_at": to_iso(now),
        }
        return Expense.from_record(await self.repo.insert(doc))

    async def get(self, user_id: str, expense_id: str) -> Expense:
        record = await self.repo.get(expense_id, user_id)
        if record is None:
            raise _not_found()
        return Expense.from_record(record)

    async def update(self, user_id: str, expense_id: str, payload: ExpenseUpdate) -> Expense:
        updates = payload.model_dump(exclude_unset=True)
        if not updates:
            raise ApiError(status.HTTP_400_BAD_REQUEST, "no_updates", "Provide at least one field to update.")
        if await self.repo.get(expense_id, user_id) is None:
            raise _not_found()

        changes: Dict[str, Any] = {}
        for field in ("amount", "currency"):
            if updates.get(field) is not None:
                changes[field] = updates[field]
        if updates.get("description") is not None:
            changes["description"] = updates["description"].strip()
        if updates.get("date") is not None:
            changes["date"] = to_iso(updates["date"])
        if "category_id" in updates or "category" in updates:
            changes["category_id"], changes["category"] = await self._resolve_category(
                user_id, updates.get("category_id"), updates.get("category")
            )
        changes["updated_at"] = to_iso(utcnow())

        record = await self.repo.update(expense_id, user_id, changes)
        if record is None:
            raise _not_found()
        return Expense.from_record(record)

    async def delete(self, user_id: str, expense_id: str) -> None:
        if not await self.repo.delete(expense_id, user_id):
            raise _not_found()

    async def search(
        self,
        user_id: str,
        *,
        start_iso: Optional[str],
        end_iso: Optional[str],
        category_ids: Optional[Sequence[str]],
        category: Optional[str],
        q: Optional[str],
        page: int,
        limit: int,
    ) -> Dict[str, Any]:
        total, rows = await self.repo.search(
            user_id,
            start_iso=start_iso,
            end_iso=end_iso,
            category_ids=category_ids,
            category=category,
            q=q,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return {
            "total": total,
            "page": page,
            "limit": limit,
            "data": [Expense.from_record(r).model_dump(by_alias=True) for r in rows],
        }


def get_expense_service(db: AsyncSurreal = Depends(get_db)) -> ExpenseService:
    return ExpenseService(db)
