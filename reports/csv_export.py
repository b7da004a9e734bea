"""
Inline CSV rendering for the expenses export.

The layout is tuned for opening in a spreadsheet by hand: fields are separated
by ", " rather than a bare comma, a blank line follows the header and every
record, and the file starts with a UTF-8 BOM so Excel picks the right encoding.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List

from utils.periods import parse_iso_datetime

BOM = "\ufeff"
HEADER = ("Date", "Description", "Category", "Amount")
FIELD_SEPARATOR = ", "
_NEEDS_QUOTING = re.compile(r'[",\n\r]')


def csv_cell(value: Any) -> str:
    if value is None:
        return ""
    text = str(value)
    escaped = text.replace('"', '""')
    if _NEEDS_QUOTING.search(text):
        return f'"{escaped}"'
    return escaped


def csv_row(values: Iterable[Any]) -> str:
    return FIELD_SEPARATOR.join(csv_cell(v) for v in values)


def format_amount(value: Any) -> str:
    """Two decimals with thousands separators, e.g. ``12,345.00``."""
    try:
        number = float(value if value is not None else 0)
    except (TypeError, ValueError):
        return str(value)
    if number != number:  # NaN
        return str(value)
    return f"{number:,.2f}"


def format_date(value: Any) -> str:
    """``YYYY-MM-DD`` in UTC."""
    if not value:
        return ""
    if hasattr(value, "astimezone"):
        return parse_iso_datetime(value.isoformat()).date().isoformat()
    try:
        return parse_iso_datetime(str(value)).date().isoformat()
    except ValueError:
        return str(value)


def build_expenses_csv(rows: List[Dict[str, Any]]) -> str:
    lines = [csv_row(HEADER), ""]
    for row in rows:
        lines.append(csv_row((
            format_date(row.get("date")),
            row.get("description") or "",
            row.get("category") or "",
            format_amount(row.get("amount")),
        )))
        lines.append("")
    return BOM + "\n".join(lines)


def export_filename(from_raw: str, to_raw: str) -> str:
    return f"expenses_{from_raw}_to_{to_raw}.csv"
