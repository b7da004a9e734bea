from __future__ import annotations

from typing import Any, Dict, List, Optional

from surrealdb import AsyncSurreal

from settings.db import first_row, rows_of

# Global categories carry no user_id; `!user_id` matches both NONE and NULL.
SELECT_VISIBLE_CATEGORIES = "SELECT * FROM category WHERE !user_id OR user_id = $user_id ORDER BY name ASC;"
SELECT_OWN_CATEGORIES = "SELECT * FROM category WHERE user_id = $user_id ORDER BY name ASC;"
SELECT_CATEGORY = "SELECT * FROM type::thing('category', $id);"
SELECT_CATEGORIES_BY_NAME = (
    "SELECT * FROM category WHERE string::lowercase(name) = string::lowercase($name) "
    "AND (!user_id OR user_id = $user_id);"
)
INSERT_CATEGORY = "CREATE category CONTENT $data;"
UPDATE_CATEGORY = "UPDATE type::thing('category', $id) MERGE $data WHERE user_id = $user_id RETURN AFTER;"
DELETE_CATEGORY = "DELETE type::thing('category', $id) WHERE user_id = $user_id RETURN BEFORE;"


class CategoryRepo:
    def __init__(self, db: AsyncSurreal):
        self.db = db

    async def list_visible(self, user_id: str) -> List[Dict[str, Any]]:
        return rows_of(await self.db.query(SELECT_VISIBLE_CATEGORIES, {"user_id": user_id}))

    async def list_owned(self, user_id: str) -> List[Dict[str, Any]]:
        return rows_of(await self.db.query(SELECT_OWN_CATEGORIES, {"user_id": user_id}))

    async def get(self, category_id: str) -> Optional[Dict[str, Any]]:
        return first_row(await self.db.query(SELECT_CATEGORY, {"id": category_id}))

    async def find_by_name(self, user_id: Optional[str], name: str) -> List[Dict[str, Any]]:
        """Case-insensitive name lookup across global categories and the user's own."""
        return rows_of(await self.db.query(SELECT_CATEGORIES_BY_NAME, {"user_id": user_id, "name": name}))

    async def insert(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return first_row(await self.db.query(INSERT_CATEGORY, {"data": data}))

    async def update(self, category_id: str, user_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return first_row(await self.db.query(UPDATE_CATEGORY, {"id": category_id, "user_id": user_id, "data": data}))

    async def delete(self, category_id: str, user_id: str) -> bool:
        deleted = rows_of(await self.db.query(DELETE_CATEGORY, {"id": category_id, "user_id": user_id}))
        return bool(deleted)
