"""
Spreadsheet export of the filtered applicant list.

The caller passes rows that already went through ``filters.apply_filters``;
nothing here queries or mutates storage.
"""

from __future__ import annotations

import io
import re
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from config import APP_TIMEZONE
from filters import Record, display_name, effective_status, registrations, submitted_local

CSV = "csv"
XLSX = "xlsx"
MEDIA_TYPES = {
    CSV: "text/csv",
    XLSX: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def _app_date(record: Record) -> str:
    local = submitted_local(record, APP_TIMEZONE)
    return local.strftime("%d/%m/%Y") if local else ""


def _admin_row(r: Record) -> Dict[str, Any]:
    return {
        "Name": display_name(r),
        "Phone": r.get("phone"),
        "Email": r.get("email"),
        "City": r.get("city"),
        "Age": r.get("age"),
        "Gender": r.get("gender"),
        "Education": r.get("education"),
        "Current Position": r.get("currentPosition"),
        "Reference": r.get("reference"),
        "Application Date": _app_date(r),
        "Status": effective_status(r),
        "Starred": "Yes" if r.get("starred") else "No",
        "Registrations": registrations(r),
    }


def _agent_row(r: Record) -> Dict[str, Any]:
    return {
        "Name": display_name(r),
        "Phone": r.get("phone"),
        "City": r.get("city"),
        "Age": r.get("age"),
        "Gender": r.get("gender"),
        "Education": r.get("education"),
        "Current Position": r.get("currentPosition"),
        "Reference": r.get("reference"),
        "Registration Date": _app_date(r),
        "Status": effective_status(r),
    }


def _reference_row(r: Record) -> Dict[str, Any]:
    return {
        "Name": display_name(r),
        "Email": r.get("email"),
        "Phone": r.get("phone"),
        "City": r.get("city"),
        "Status": effective_status(r),
        "Application Date": _app_date(r),
        "Notes": r.get("notes") or "",
    }


ROW_BUILDERS = {"admin": _admin_row, "agent": _agent_row, "reference": _reference_row}
COLUMNS = {role: list(builder({}).keys()) for role, builder in ROW_BUILDERS.items()}
SHEET_NAMES = {"admin": "Applications", "agent": "Referrals", "reference": "Applications"}


def export_rows(records: Iterable[Record], role: str = "admin") -> List[Dict[str, Any]]:
    build = ROW_BUILDERS[role]
    return [build(r) for r in records]


def _frame(rows: List[Dict[str, Any]], columns: List[str]) -> pd.DataFrame:
    # object dtype keeps ints as ints when a column has gaps
    return pd.DataFrame(rows, columns=columns, dtype=object)


def to_csv_bytes(rows: List[Dict[str, Any]], columns: List[str]) -> bytes:
    return _frame(rows, columns).to_csv(index=False).encode("utf-8")


def to_xlsx_bytes(rows: List[Dict[str, Any]], columns: List[str], sheet_name: str = "Applications") -> bytes:
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        _frame(rows, columns).to_excel(writer, sheet_name=sheet_name, index=False)
    return buf.getvalue()


def slug(label: Optional[str], fallback: str = "reference") -> str:
    """ASCII-only file name part; Content-Disposition headers are latin-1."""
    return re.sub(r"[^a-z0-9]+", "-", (label or "").lower()).strip("-") or fallback


def export_filename(
    role: str,
    fmt: str,
    reference_filter: Optional[str] = None,
    label: Optional[str] = None,
    today: Optional[date] = None,
) -> str:
    if role == "agent":
        stamp = (today or date.today()).isoformat()
        return f"referrals-{slug(label)}-{stamp}.{fmt}"
    if role == "reference":
        return f"mana-reference-{slug(label)}.{fmt}"
    if reference_filter:
        return f"mana-levelup-{slug(reference_filter)}-applications.{fmt}"
    return f"mana-levelup-all-applications.{fmt}"


def export(records: Iterable[Record], role: str, fmt: str = XLSX) -> bytes:
    rows = export_rows(records, role)
    if fmt == CSV:
        return to_csv_bytes(rows, COLUMNS[role])
    if fmt == XLSX:
        return to_xlsx_bytes(rows, COLUMNS[role], SHEET_NAMES[role])
    raise ValueError(f"Unsupported export format: {fmt}")
