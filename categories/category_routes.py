from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, Response, status

from auth.auth import get_current_user
from categories.category_model import CategoryCreate, CategoryUpdate
from categories.category_service import CategoryService, get_category_service


router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("")
async def list_categories(
    include_global: bool = Query(default=True, alias="includeGlobal"),
    user_id: str = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
) -> Dict[str, Any]:
    categories = await service.list(user_id, include_global)
    return {"data": [c.model_dump(by_alias=True) for c in categories]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_category(
    body: CategoryCreate,
    user_id: str = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
) -> Dict[str, Any]:
    category = await service.create(user_id, body)
    return {"data": category.model_dump(by_alias=True)}


@router.get("/{category_id}")
async def get_category(
    category_id: str,
    user_id: str = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
) -> Dict[str, Any]:
    category = await service.get(user_id, category_id)
    return {"data": category.model_dump(by_alias=True)}


@router.api_route("/{category_id}", methods=["PUT", "PATCH"])
async def update_category(
    category_id: str,
    body: CategoryUpdate,
    user_id: str = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
) -> Dict[str, Any]:
    category = await service.update(user_id, category_id, body)
    return {"data": category.model_dump(by_alias=True)}


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: str,
    user_id: str = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
) -> Response:
    await service.delete(user_id, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
