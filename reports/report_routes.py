from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Tuple

from fastapi import APIRouter, Depends, Query, Response, status

from auth.auth import get_current_user
from reports.csv_export import build_expenses_csv, export_filename
from reports.report_service import ReportService, get_report_service
from settings.errors import ApiError, validation_error
from utils.periods import inclusive_end, month_bounds, parse_iso_datetime


router = APIRouter(prefix="/api/reports", tags=["reports"])

MAX_TREND_MONTHS = 24


def _date_range(from_raw: str, to_raw: str) -> Tuple[datetime, datetime]:
    """``[from, end)`` where a midnight ``to`` covers that whole day."""
    details: List[Dict[str, str]] = []
    parsed: Dict[str, datetime] = {}
    for name, raw in (("from", from_raw), ("to", to_raw)):
        try:
            parsed[name] = parse_iso_datetime(raw)
        except ValueError:
            details.append({"path": name, "message": f"invalid {name}"})
    if details:
        raise validation_error(details)
    try:
        end = inclusive_end(parsed["to"])
    except OverflowError:
        raise validation_error([{"path": "to", "message": "to is out of range"}]) from None
    return parsed["from"], end


@router.get("/trends")
async def trends(
    months: int = Query(default=6),
    user_id: str = Depends(get_current_user),
    service: ReportService = Depends(get_report_service),
) -> Dict[str, Any]:
    months = max(1, min(MAX_TREND_MONTHS, months))
    return await service.trends(user_id, months)


@router.get("/by-category")
async def by_category(
    from_: str = Query(alias="from"),
    to: str = Query(),
    user_id: str = Depends(get_current_user),
    service: ReportService = Depends(get_report_service),
) -> Dict[str, Any]:
    start, end = _date_range(from_, to)
    rows = await service.by_category(user_id, start, end)
    return {"from": from_, "to": to, "byCategory": rows}


@router.get("/monthly")
async def monthly(
    year: str = Query(pattern=r"^\d{4}$"),
    month: str = Query(pattern=r"^\d{1,2}$"),
    user_id: str = Depends(get_current_user),
    service: ReportService = Depends(get_report_service),
) -> Dict[str, Any]:
    if not 1 <= int(month) <= 12:
        raise validation_error([{"path": "month", "message": "month must be between 1 and 12"}])
    try:
        month_bounds(int(year), int(month))
    except (ValueError, OverflowError):
        raise validation_error([{"path": "year", "message": "year is out of range"}]) from None
    return await service.monthly(user_id, int(year), int(month))


@router.get("/export")
async def export_expenses(
    from_: str = Query(alias="from"),
    to: str = Query(),
    format: str = Query(default="csv"),
    user_id: str = Depends(get_current_user),
    service: ReportService = Depends(get_report_service),
) -> Response:
    start, end = _date_range(from_, to)
    if format != "csv":
        raise ApiError(status.HTTP_400_BAD_REQUEST, "unsupported_format", "Only CSV supported for now.")

    rows = await service.export_rows(user_id, start, end)
    return Response(
        content=build_expenses_csv(rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(from_, to)}"'},
    )
