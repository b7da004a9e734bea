from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, status
from surrealdb import AsyncSurreal

from budgets.budget_repo import BudgetRepo
from categories.category_model import Category, CategoryCreate, CategoryUpdate
from categories.category_repo import CategoryRepo
from expenses.expense_repo import ExpenseRepo
from settings.db import get_db
from settings.errors import ApiError
from utils.periods import to_iso, utcnow

logger = logging.getLogger(__name__)


def is_visible(record: Dict[str, Any], user_id: str) -> bool:
    owner = record.get("user_id")
    return not owner or owner == user_id


class CategoryService:
    """Category CRUD plus the scope rules shared by expenses and budgets.

    A name is unique, case-insensitively, across the global categories and the
    caller's own. Global categories are read-only for every user.
    """

    def __init__(self, db: AsyncSurreal):
        self.repo = CategoryRepo(db)
        self.expenses = ExpenseRepo(db)
        self.budgets = BudgetRepo(db)

    async def list(self, user_id: str, include_global: bool = True) -> List[Category]:
        if include_global:
            rows = await self.repo.list_visible(user_id)
        else:
            rows = await self.repo.list_owned(user_id)
        return [Category.from_record(r) for r in rows]

    async def get(self, user_id: str, category_id: str) -> Category:
        record = await self.repo.get(category_id)
        if record is None or not is_visible(record, user_id):
            raise ApiError(status.HTTP_404_NOT_FOUND, "not_found", "Category not found.")
        return Category.from_record(record)

    async def create(self, user_id: str, payload: CategoryCreate) -> Category:
        if await self.repo.find_by_name(user_id, payload.name):
            raise ApiError(
                status.HTTP_409_CONFLICT,
                "category_exists",
                "Category with that name already exists (global or yours).",
            )
        now = to_iso(utcnow())
        record = await self.repo.insert({
            "name": payload.name,
            "color": payload.color,
            "user_id": user_id,
            "created_at": now,
            "updated_at": now,
        })
        logger.info("Created category %s for user %s", record["id"], user_id)
        return Category.from_record(record)

    async def update(self, user_id: str, category_id: str, payload: CategoryUpdate) -> Category:
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            raise ApiError(status.HTTP_400_BAD_REQUEST, "no_updates", "Provide at least one field to update.")
        current = await self._owned(user_id, category_id)

        renamed = "name" in changes and changes["name"] is not None and changes["name"] != current["name"]
        if renamed:
            clashes = [c for c in await self.repo.find_by_name(user_id, changes["name"]) if c["id"] != category_id]
            if clashes:
                raise ApiError(
                    status.HTTP_409_CONFLICT,
                    "category_exists",
                    "Category with that name already exists (global or yours).",
                )
        changes = {k: v for k, v in changes.items() if not (k == "name" and v is None)}
        changes["updated_at"] = to_iso(utcnow())
        record = await self.repo.update(category_id, user_id, changes)
        if record is None:
            raise ApiError(status.HTTP_404_NOT_FOUND, "not_found", "Category not found or not owned by user.")
        if renamed:
            await self.expenses.rename_category(category_id, user_id, record["name"])
            await self.budgets.rename_category(category_id, user_id, record["name"])
        return Category.from_record(record)

    async def delete(self, user_id: str, category_id: str) -> None:
        await self._owned(user_id, category_id)
        if not await self.repo.delete(category_id, user_id):
            raise ApiError(status.HTTP_404_NOT_FOUND, "not_found", "Category not found or not owned by user.")
        # cascade: affected expenses fall back to Uncategorized
        await self.expenses.uncategorize(category_id, user_id)
        logger.info("Deleted category %s for user %s", category_id, user_id)

    async def resolve_by_id(self, user_id: str, category_id: str) -> Dict[str, Any]:
        """Category record visible to the user, or a 400 ``invalid_category``."""
        record = await self.repo.get(category_id)
        if record is None or not is_visible(record, user_id):
            raise ApiError(status.HTTP_400_BAD_REQUEST, "invalid_category", "Category not found or not accessible.")
        return record

    async def resolve_by_name(self, user_id: str, name: str) -> Optional[Dict[str, Any]]:
        """Visible category with this name; the user's own wins over a global one."""
        matches = await self.repo.find_by_name(user_id, name)
        own = [m for m in matches if m.get("user_id") == user_id]
        if own:
            return own[0]
        return matches[0] if matches else None

    async def _owned(self, user_id: str, category_id: str) -> Dict[str, Any]:
        record = await self.repo.get(category_id)
        if record is None or (record.get("user_id") and record["user_id"] != user_id):
            raise ApiError(status.HTTP_404_NOT_FOUND, "not_found", "Category not found or not owned by user.")
        if not record.get("user_id"):
            raise ApiError(status.HTTP_403_FORBIDDEN, "forbidden", "Global categories cannot be modified.")
        return record


def get_category_service(db: AsyncSurreal = Depends(get_db)) -> CategoryService:
    return CategoryService(db)
