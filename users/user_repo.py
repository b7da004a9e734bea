from typing import Optional, Union, Any, Dict
import logging

from fastapi import Depends
from fastapi_users.db import BaseUserDatabase
from surrealdb import AsyncSurreal

from auth.models import User
from settings.db import first_row, get_db
from settings.errors import ApiError
from utils.periods import to_iso, utcnow


logger = logging.getLogger(__name__)

SELECT_USER_BY_ID = "SELECT * FROM type::thing('users', $id);"
SELECT_USER_BY_EMAIL = "SELECT * FROM users WHERE email = $email;"
CREATE_USER = "CREATE users CONTENT $data;"
UPDATE_USER = "UPDATE type::thing('users', $id) MERGE $data RETURN AFTER;"
DELETE_USER = "DELETE type::thing('users', $id);"


class SurrealUserDatabase(BaseUserDatabase[User, str]):
    def __init__(self, db: AsyncSurreal, collection: str = "users") -> None:
        self.db = db
        self.collection = collection

    async def get(self, id: Union[str, int]) -> Optional[User]:
        result = await self.db.query(SELECT_USER_BY_ID, {"id": str(id).split(":")[-1]})
        record = first_row(result)
        if record:
            return User(**record)
        return None

    async def get_by_email(self, email: str) -> Optional[User]:
        try:
            result = await self.db.query(SELECT_USER_BY_EMAIL, {"email": email})
        except Exception as exc:
            logger.exception("Error querying user by email from collection '%s': %s", self.collection, exc)
            raise ApiError(500, "server_error", "Error querying user by email") from exc
        record = first_row(result)
        return User(**record) if record else None

    async def create(self, create_dict: Dict[str, Any]) -> User:
        now_iso = to_iso(utcnow())
        # Ensure required flags and timestamps exist on create
        payload = {
            **create_dict,
            "is_active": create_dict.get("is_active", True),
            "is_superuser": create_dict.get("is_superuser", False),
            "is_verified": create_dict.get("is_verified", False),
            "created_at": create_dict.get("created_at", now_iso),
            "updated_at": create_dict.get("updated_at", now_iso),
        }
        record = first_row(await self.db.query(CREATE_USER, {"data": payload}))
        return User(**record)

    async def update(self, user: User, update_dict: Dict[str, Any]) -> User:
        payload = {
            **update_dict,
            "updated_at": to_iso(utcnow()),
        }
        record = first_row(await self.db.query(UPDATE_USER, {"id": user.id, "data": payload}))
        return User(**record)

    async def delete(self, user: User) -> None:
        await self.db.query(DELETE_USER, {"id": user.id})


async def get_user_db(db: AsyncSurreal = Depends(get_db)):
    yield SurrealUserDatabase(db, "users")
