from __future__ import annotations

from fastapi import APIRouter

from .auth import auth_backend, fastapi_users
from .schemas import UserCreate, UserRead, UserUpdate


router = APIRouter(prefix="/api/auth", tags=["auth"])

router.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/jwt")
router.include_router(fastapi_users.get_register_router(UserRead, UserCreate))
router.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users")
