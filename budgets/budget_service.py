from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, status
from surrealdb import AsyncSurreal

from budgets.budget_model import Budget, BudgetCreate, BudgetUpdate
from budgets.budget_repo import BudgetRepo
from categories.category_model import UNCATEGORIZED
from categories.category_service import CategoryService
from settings.db import get_db, is_unique_violation
from settings.errors import ApiError
from utils.periods import month_start, parse_iso_datetime, to_iso, utcnow

logger = logging.getLogger(__name__)


def _conflict() -> ApiError:
    return ApiError(
        status.HTTP_409_CONFLICT,
        "budget_exists",
        "Budget for this category and period already exists.",
    )


def _not_found() -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, "not_found", "Budget not found.")


def _canonical_period(raw: Optional[str]) -> str:
    """First instant of the given date's month as a stored ISO string."""
    try:
        return to_iso(month_start(parse_iso_datetime(raw)))
    except ValueError:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "invalid_period",
            "periodStart is required and must be a valid date.",
        ) from None


class BudgetService:
    """Budgets keyed by (user, category, month).

    Every period date is stored as the first instant of its month in UTC, so a
    budget created from any timezone lands in the same slot. The slot is checked
    explicitly before writes; the ``budget_unique`` index catches races.
    """

    def __init__(self, db: AsyncSurreal):
        self.repo = BudgetRepo(db)
        self.categories = CategoryService(db)

    async def list(self, user_id: str, period_start=None, category_id: Optional[str] = None) -> List[Budget]:
        period_iso = to_iso(month_start(period_start)) if period_start else None
        rows = await self.repo.list_for_user(user_id, period_iso, category_id)
        return [Budget.from_record(r) for r in rows]

    async def get(self, user_id: str, budget_id: str) -> Budget:
        record = await self.repo.get(budget_id, user_id)
        if record is None:
            raise _not_found()
        return Budget.from_record(record)

    async def create(self, user_id: str, payload: BudgetCreate) -> Budget:
        if not payload.category_id or not payload.category_id.strip():
            raise ApiError(status.HTTP_400_BAD_REQUEST, "missing_category", "categoryId is required for budgets.")
        category = await self.categories.resolve_by_id(user_id, payload.category_id.strip())
        period_iso = _canonical_period(payload.period_start)

        if await self.repo.find_for_slot(user_id, category["id"], period_iso):
            raise _conflict()

        now = to_iso(utcnow())
        doc = {
            "user_id": user_id,
            "category_id": category["id"],
            "category": category["name"],
            "period_start": period_iso,
            "amount": payload.amount,
            "created_at": now,
            "updated_at": now,
        }
        try:
            record = await self.repo.insert(doc)
        except Exception as exc:
            if is_unique_violation(exc):
                raise _conflict() from exc
            raise
        logger.info("Created budget %s for user %s (%s, %s)", record["id"], user_id, category["name"], period_iso)
        return Budget.from_record(record)

    async def update(self, user_id: str, budget_id: str, payload: BudgetUpdate) -> Budget:
        updates = payload.model_dump(exclude_unset=True)
        if not updates:
            raise ApiError(status.HTTP_400_BAD_REQUEST, "no_updates", "Provide at least one field to update.")

        current = await self.repo.get(budget_id, user_id)
        if current is None:
            raise _not_found()

        changes: Dict[str, Any] = {}
        if updates.get("amount") is not None:
            changes["amount"] = updates["amount"]

        if "category_id" in updates:
            if updates["category_id"] is None:
                changes["category_id"] = None
                changes["category"] = UNCATEGORIZED
            else:
                category = await self.categories.resolve_by_id(user_id, updates["category_id"])
                changes["category_id"] = category["id"]
                changes["category"] = category["name"]
        elif updates.get("category"):
            category = await self.categories.resolve_by_name(user_id, updates["category"])
            if category:
                changes["category_id"] = category["id"]
                changes["category"] = category["name"]
            else:
                changes["category_id"] = None
                changes["category"] = updates["category"]

        if updates.get("period_start") is not None:
            changes["period_start"] = _canonical_period(updates["period_start"])

        effective_category = changes.get("category_id", current.get("category_id"))
        effective_period = changes.get("period_start", current.get("period_start"))
        slot_changed = "category_id" in changes or "period_start" in changes
        if slot_changed and effective_category:
            clashes = await self.repo.find_for_slot(user_id, effective_category, effective_period)
            if any(c["id"] != budget_id for c in clashes):
                raise _conflict()

        changes["updated_at"] = to_iso(utcnow())
        try:
            record = await self.repo.update(budget_id, user_id, changes)
        except Exception as exc:
            if is_unique_violation(exc):
                raise _conflict() from exc
            raise
        if record is None:
            raise _not_found()
        return Budget.from_record(record)

    async def delete(self, user_id: str, budget_id: str) -> None:
        if not await self.repo.delete(budget_id, user_id):
            raise _not_found()


def get_budget_service(db: AsyncSurreal = Depends(get_db)) -> BudgetService:
    return BudgetService(db)
