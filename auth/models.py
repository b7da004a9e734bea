from __future__ import annotations

from pydantic import BaseModel, EmailStr


class User(BaseModel):
    id: str
    name: str | None = None
    email: EmailStr
    hashed_password: str
    is_active: bool = True
    is_superuser: bool = False
    is_verified: bool = False
    created_at: str | None = None
    updated_at: str | None = None
