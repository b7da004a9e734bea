from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status

from auth.auth import get_current_user
from expenses.expense_model import ExpenseCreate, ExpenseUpdate
from expenses.expense_service import ExpenseService, get_expense_service
from settings.errors import validation_error
from utils.periods import parse_iso_datetime, to_iso


router = APIRouter(prefix="/api/expenses", tags=["expenses"])


@router.get("")
async def list_expenses(
    from_: Optional[str] = Query(default=None, alias="from"),
    to: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None, min_length=1),
    category_id: Optional[str] = Query(default=None, alias="categoryId"),
    category_ids: Optional[str] = Query(default=None, alias="categoryIds"),
    q: Optional[str] = Query(default=None),
    limit: int = Query(default=20),
    page: int = Query(default=1),
    user_id: str = Depends(get_current_user),
    service: ExpenseService = Depends(get_expense_service),
) -> Dict[str, Any]:
    details: List[Dict[str, str]] = []
    bounds: Dict[str, Optional[str]] = {"from": None, "to": None}
    for name, raw in (("from", from_), ("to", to)):
        if raw:
            try:
                bounds[name] = to_iso(parse_iso_datetime(raw))
            except ValueError:
                details.append({"path": name, "message": f"invalid {name} date"})
    if details:
        raise validation_error(details, "Invalid query parameters")

    # categoryIds takes precedence over categoryId, which takes precedence over the name
    ids: Optional[List[str]] = None
    if category_ids:
        ids = [part.strip() for part in category_ids.split(",") if part.strip()]
    elif category_id:
        ids = [category_id]

    return await service.search(
        user_id,
        start_iso=bounds["from"],
        end_iso=bounds["to"],
        category_ids=ids,
        category=None if ids else category,
        q=q,
        page=max(1, page),
        limit=max(1, min(100, limit)),
    )


@router.get("/{expense_id}")
async def get_expense(
    expense_id: str,
    user_id: str = Depends(get_current_user),
    service: ExpenseService = Depends(get_expense_service),
) -> Dict[str, Any]:
    expense = await service.get(user_id, expense_id)
    return {"data": expense.model_dump(by_alias=True)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_expense(
    body: ExpenseCreate,
    user_id: str = Depends(get_current_user),
    service: ExpenseService = Depends(get_expense_service),
) -> Dict[str, Any]:
    expense = await service.create(user_id, body)
    return {"id": expense.id, "data": expense.model_dump(by_alias=True)}


@router.api_route("/{expense_id}", methods=["PUT", "PATCH"])
async def update_expense(
    expense_id: str,
    body: ExpenseUpdate,
    user_id: str = Depends(get_current_user),
    service: ExpenseService = Depends(get_expense_service),
) -> Dict[str, Any]:
    expense = await service.update(user_id, expense_id, body)
    return {"data": expense.model_dump(by_alias=True)}


@router.delete("/{expense_id}")
async def delete_expense(
    expense_id: str,
    user_id: str = Depends(get_current_user),
    service: ExpenseService = Depends(get_expense_service),
) -> Dict[str, bool]:
    await service.delete(user_id, expense_id)
    return {"success": True}
