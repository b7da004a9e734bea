from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from surrealdb import AsyncSurreal

from settings.db import first_row, rows_of

INSERT_EXPENSE = "CREATE expense CONTENT $data;"
SELECT_EXPENSE = "SELECT * FROM type::thing('expense', $id) WHERE user_id = $user_id;"
UPDATE_EXPENSE = "UPDATE type::thing('expense', $id) MERGE $data WHERE user_id = $user_id RETURN AFTER;"
DELETE_EXPENSE = "DELETE type::thing('expense', $id) WHERE user_id = $user_id RETURN BEFORE;"

# Unset parameters are passed as NONE and switch their clause off.
EXPENSE_FILTER = (
    "user_id = $user_id"
    " AND (!$from OR date >= $from)"
    " AND (!$to OR date <= $to)"
    " AND (!$category_ids OR category_id INSIDE $category_ids)"
    " AND (!$category OR category = $category)"
    " AND (!$q OR string::contains(string::lowercase(description ?? ''), $q)"
    " OR ($q_category AND string::contains(string::lowercase(category ?? ''), $q)))"
)
SEARCH_EXPENSES = f"SELECT * FROM expense WHERE {EXPENSE_FILTER} ORDER BY date DESC LIMIT $limit START $start;"
COUNT_EXPENSES = f"SELECT count() AS total FROM expense WHERE {EXPENSE_FILTER} GROUP ALL;"

SELECT_EXPENSES_IN_RANGE = (
    "SELECT * FROM expense WHERE user_id = $user_id AND date >= $start AND date < $end "
    "ORDER BY date DESC;"
)
SELECT_EXPENSES_IN_RANGE_LIMITED = (
    "SELECT * FROM expense WHERE user_id = $user_id AND date >= $start AND date < $end "
    "ORDER BY date DESC LIMIT $limit;"
)

UNCATEGORIZE_EXPENSES = "UPDATE expense SET category_id = NONE, category = 'Uncategorized' WHERE category_id = $category_id AND user_id = $user_id;"
RENAME_EXPENSE_CATEGORY = "UPDATE expense SET category = $name WHERE category_id = $category_id AND user_id = $user_id;"


class ExpenseRepo:
    def __init__(self, db: AsyncSurreal):
        self.db = db

    async def insert(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return first_row(await self.db.query(INSERT_EXPENSE, {"data": data}))

    async def get(self, expense_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        return first_row(await self.db.query(SELECT_EXPENSE, {"id": expense_id, "user_id": user_id}))

    async def update(self, expense_id: str, user_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return first_row(await self.db.query(UPDATE_EXPENSE, {"id": expense_id, "user_id": user_id, "data": data}))

    async def delete(self, expense_id: str, user_id: str) -> bool:
        return bool(rows_of(await self.db.query(DELETE_EXPENSE, {"id": expense_id, "user_id": user_id})))

    async def search(
        self,
        user_id: str,
        *,
        start_iso: Optional[str] = None,
        end_iso: Optional[str] = None,
        category_ids: Optional[Sequence[str]] = None,
        category: Optional[str] = None,
        q: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[int, List[Dict[str, Any]]]:
        """Filtered, paginated listing; returns ``(total, rows)``."""
        term = q.strip().lower() if q and q.strip() else None
        # with an explicit category filter the search term only applies to descriptions
        has_category_filter = bool(category_ids) or bool(category)
        vars = {
            "user_id": user_id,
            "from": start_iso,
            "to": end_iso,
            "category_ids": list(category_ids) if category_ids else None,
            "category": category or None,
            "q": term,
            "q_category": not has_category_filter,
        }
        counted = first_row(await self.db.query(COUNT_EXPENSES, vars))
        total = int(counted.get("total", 0)) if counted else 0
        rows = rows_of(await self.db.query(SEARCH_EXPENSES, {**vars, "limit": limit, "start": offset}))
        return total, rows

    async def find_in_range(
        self, user_id: str, start_iso: str, end_iso: str, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Expenses with ``start <= date < end``, newest first; all of them unless ``limit`` is given."""
        vars = {"user_id": user_id, "start": start_iso, "end": end_iso}
        if limit is None:
            return rows_of(await self.db.query(SELECT_EXPENSES_IN_RANGE, vars))
        return rows_of(await self.db.query(SELECT_EXPENSES_IN_RANGE_LIMITED, {**vars, "limit": limit}))

    async def uncategorize(self, category_id: str, user_id: str) -> None:
        await self.db.query(UNCATEGORIZE_EXPENSES, {"category_id": category_id, "user_id": user_id})

    async def rename_category(self, category_id: str, user_id: str, name: str) -> None:
        await self.db.query(RENAME_EXPENSE_CATEGORY, {"category_id": category_id, "user_id": user_id, "name": name})
