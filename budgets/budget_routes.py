from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from auth.auth import get_current_user
from budgets.budget_model import BudgetCreate, BudgetUpdate
from budgets.budget_service import BudgetService, get_budget_service
from settings.errors import validation_error
from utils.periods import parse_iso_datetime


router = APIRouter(prefix="/api/budgets", tags=["budgets"])


@router.get("")
async def list_budgets(
    period_start: Optional[str] = Query(default=None, alias="periodStart"),
    category_id: Optional[str] = Query(default=None, alias="categoryId"),
    user_id: str = Depends(get_current_user),
    service: BudgetService = Depends(get_budget_service),
) -> Dict[str, Any]:
    period = None
    if period_start:
        try:
            period = parse_iso_datetime(period_start)
        except ValueError:
            raise validation_error([{"path": "periodStart", "message": "invalid periodStart"}], "Invalid query") from None
    budgets = await service.list(user_id, period, category_id or None)
    return {"data": [b.model_dump(by_alias=True) for b in budgets]}


@router.get("/{budget_id}")
async def get_budget(
    budget_id: str,
    user_id: str = Depends(get_current_user),
    service: BudgetService = Depends(get_budget_service),
) -> Dict[str, Any]:
    budget = await service.get(user_id, budget_id)
    return {"data": budget.model_dump(by_alias=True)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_budget(
    body: BudgetCreate,
    user_id: str = Depends(get_current_user),
    service: BudgetService = Depends(get_budget_service),
) -> Dict[str, Any]:
    budget = await service.create(user_id, body)
    return {"id": budget.id, "data": budget.model_dump(by_alias=True)}


@router.api_route("/{budget_id}", methods=["PUT", "PATCH"])
async def update_budget(
    budget_id: str,
    body: BudgetUpdate,
    user_id: str = Depends(get_current_user),
    service: BudgetService = Depends(get_budget_service),
) -> Dict[str, Any]:
    budget = await service.update(user_id, budget_id, body)
    return {"data": budget.model_dump(by_alias=True)}


@router.delete("/{budget_id}")
async def delete_budget(
    budget_id: str,
    user_id: str = Depends(get_current_user),
    service: BudgetService = Depends(get_budget_service),
) -> Dict[str, bool]:
    await service.delete(user_id, budget_id)
    return {"success": True}
