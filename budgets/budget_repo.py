from __future__ import annotations

from typing import Any, Dict, List, Optional

from surrealdb import AsyncSurreal

from settings.db import first_row, rows_of

INSERT_BUDGET = "CREATE budget CONTENT $data;"
SELECT_BUDGET = "SELECT * FROM type::thing('budget', $id) WHERE user_id = $user_id;"
LIST_BUDGETS = (
    "SELECT * FROM budget WHERE user_id = $user_id "
    "AND (!$period_start OR period_start = $period_start) "
    "AND (!$category_id OR category_id = $category_id) "
    "ORDER BY period_start DESC;"
)
SELECT_BUDGETS_FOR_SLOT = (
    "SELECT * FROM budget WHERE user_id = $user_id AND category_id = $category_id "
    "AND period_start = $period_start;"
)
UPDATE_BUDGET = "UPDATE type::thing('budget', $id) MERGE $data WHERE user_id = $user_id RETURN AFTER;"
DELETE_BUDGET = "DELETE type::thing('budget', $id) WHERE user_id = $user_id RETURN BEFORE;"
RENAME_BUDGET_CATEGORY = "UPDATE budget SET category = $name WHERE category_id = $category_id AND user_id = $user_id;"


class BudgetRepo:
    def __init__(self, db: AsyncSurreal):
        self.db = db

    async def insert(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return first_row(await self.db.query(INSERT_BUDGET, {"data": data}))

    async def get(self, budget_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        return first_row(await self.db.query(SELECT_BUDGET, {"id": budget_id, "user_id": user_id}))

    async def list_for_user(
        self, user_id: str, period_start_iso: Optional[str] = None, category_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        vars = {"user_id": user_id, "period_start": period_start_iso, "category_id": category_id}
        return rows_of(await self.db.query(LIST_BUDGETS, vars))

    async def find_for_slot(self, user_id: str, category_id: str, period_start_iso: str) -> List[Dict[str, Any]]:
        """Budgets occupying the (user, category, month) slot."""
        vars = {"user_id": user_id, "category_id": category_id, "period_start": period_start_iso}
        return rows_of(await self.db.query(SELECT_BUDGETS_FOR_SLOT, vars))

    async def update(self, budget_id: str, user_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return first_row(await self.db.query(UPDATE_BUDGET, {"id": budget_id, "user_id": user_id, "data": data}))

    async def delete(self, budget_id: str, user_id: str) -> bool:
        return bool(rows_of(await self.db.query(DELETE_BUDGET, {"id": budget_id, "user_id": user_id})))

    async def rename_category(self, category_id: str, user_id: str, name: str) -> None:
        await self.db.query(RENAME_BUDGET_CATEGORY, {"category_id": category_id, "user_id": user_id, "name": name})
