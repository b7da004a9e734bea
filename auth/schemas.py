from __future__ import annotations

from typing import Optional

from fastapi_users import schemas
from pydantic import Field


class UserRead(schemas.BaseUser[str]):
    name: Optional[str] = None


class UserCreate(schemas.BaseUserCreate):
    name: str = Field(min_length=1, max_length=100)


class UserUpdate(schemas.BaseUserUpdate):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
