from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from fastapi import Depends, status
from surrealdb import AsyncSurreal

from expenses.expense_repo import ExpenseRepo
from settings.config import settings
from settings.db import get_db
from settings.errors import ApiError
from utils.periods import month_bounds, to_iso, trailing_months

logger = logging.getLogger(__name__)

REPORT_CURRENCIES = ("USD", "NGN")
TOP_CATEGORY_COUNT = 5
EXPENSE_COLUMNS = ["date", "amount", "currency", "category_id", "category", "description"]


def _none(value: Any) -> Any:
  return None if pd.isna(value) else value


def expenses_frame(rows: List[Dict[str, Any]]) -> pd.DataFrame:
  """
  Expense rows as a typed DataFrame with per-currency amount columns.
  ``totalUSD``/``totalNGN`` hold the amount when the row is in that currency, else 0.
  """
  if not rows:
    df = pd.DataFrame(columns=EXPENSE_COLUMNS).astype({
      "date": "datetime64[ns, UTC]", "amount": "float64", "currency": "object",
      "category_id": "object", "category": "object", "description": "object",
    })
  else:
    df = pd.DataFrame(rows)
    for col in EXPENSE_COLUMNS:
      if col not in df.columns:
        df[col] = None
    df = df[EXPENSE_COLUMNS].copy()
    df["date"] = pd.to_datetime(df["date"], utc=True, errors="coerce", format="ISO8601")
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce").fillna(0.0).astype("float64")
    df["currency"] = df["currency"].fillna("").astype("object")
    # "" and missing ids both mean uncategorised
    df["category_id"] = df["category_id"].map(lambda v: v if isinstance(v, str) and v else None)

  for currency in REPORT_CURRENCIES:
    df[f"total{currency}"] = np.where(df["currency"] == currency, df["amount"], 0.0).astype("float64")
  return df


def trend_series(df: pd.DataFrame, month_keys: List[str]) -> List[Dict[str, Any]]:
  """Dense month series: one entry per key, zero where the month has no expenses."""
  months = df["date"].dt.strftime("%Y-%m")
  grouped = df.assign(month=months).groupby("month")[["totalUSD", "totalNGN"]].sum()
  grouped = grouped.reindex(month_keys, fill_value=0.0)
  return [
    {"month": key, "totalUSD": float(row["totalUSD"]), "totalNGN": float(row["totalNGN"])}
    for key, row in grouped.iterrows()
  ]


def category_breakdown(df: pd.DataFrame) -> List[Dict[str, Any]]:
  """Per (categoryId, category) currency totals, largest combined total first."""
  if df.empty:
    return []
  grp = (
    df.assign(total_all=df["amount"])
    .groupby(["category_id", "category"], dropna=False, sort=False)[["totalUSD", "totalNGN", "total_all"]]
    .sum()
    .reset_index()
    .sort_values("total_all", ascending=False, kind="mergesort")
  )
  return [
    {
      "categoryId": _none(row["category_id"]),
      "category": _none(row["category"]),
      "totalUSD": float(row["totalUSD"]),
      "totalNGN": float(row["totalNGN"]),
    }
    for _, row in grp.iterrows()
  ]


def currency_totals(df: pd.DataFrame) -> List[Dict[str, Any]]:
  """total/count/avg for each supported currency that has expenses."""
  subset = df[df["currency"].isin(REPORT_CURRENCIES)]
  if subset.empty:
    return []
  agg = subset.groupby("currency").agg(
    total=("amount", "sum"),
    count=("amount", "size"),
    avg=("amount", "mean"),
  )
  return [
    {
      "currency": currency,
      "total": float(agg.loc[currency, "total"]),
      "count": int(agg.loc[currency, "count"]),
      "avg": float(agg.loc[currency, "avg"]),
    }
    for currency in REPORT_CURRENCIES
    if currency in agg.index
  ]


def top_categories(df: pd.DataFrame, limit: int = TOP_CATEGORY_COUNT) -> List[Dict[str, Any]]:
  if df.empty:
    return []
  grp = (
    df.groupby(["category_id", "category"], dropna=False, sort=False)["amount"]
    .sum()
    .reset_index(name="total")
    .sort_values("total", ascending=False, kind="mergesort")
    .head(limit)
  )
  return [
    {"categoryId": _none(row["category_id"]), "category": _none(row["category"]), "total": float(row["total"])}
    for _, row in grp.iterrows()
  ]


class ReportService():

  def __init__(self, db: AsyncSurreal) -> None:
    self.expenses = ExpenseRepo(db)

  async def trends(self, user_id: str, months: int, now: Optional[datetime] = None) -> Dict[str, Any]:
    start, end, keys = trailing_months(months, now)
    rows = await self.expenses.find_in_range(user_id, to_iso(start), to_iso(end))
    return {"months": trend_series(expenses_frame(rows), keys)}

  async def by_category(self, user_id: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
    rows = await self.expenses.find_in_range(user_id, to_iso(start), to_iso(end))
    return category_breakdown(expenses_frame(rows))

  async def monthly(self, user_id: str, year: int, month: int) -> Dict[str, Any]:
    start, end = month_bounds(year, month)
    rows = await self.expenses.find_in_range(user_id, to_iso(start), to_iso(end))
    df = expenses_frame(rows)
    return {
      "period": f"{year:04d}-{month:02d}",
      "totals": currency_totals(df),
      "topCategories": top_categories(df),
    }

  async def export_rows(self, user_id: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
    """Rows for an inline export; one row past the cap is fetched to detect overflow."""
    max_rows = settings.EXPORT_MAX_ROWS
    rows = await self.expenses.find_in_range(user_id, to_iso(start), to_iso(end), limit=max_rows + 1)
    if len(rows) > max_rows:
      logger.info("Export for user %s refused: more than %s rows", user_id, max_rows)
      raise ApiError(
        status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        "too_large",
        f"Export too large for inline CSV; narrow the date range. Rows > {max_rows}",
      )
    return rows


def get_report_service(db: AsyncSurreal = Depends(get_db)) -> ReportService:
  return ReportService(db)
