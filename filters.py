"""
Dashboard filter pipeline.

Records are applicant documents as returned by the repository (plain dicts
with an ``id``). Everything here is pure so that the table, the KPI cards
and the export are all derived from the same ``apply_filters`` call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from config import APP_TIMEZONE, MONTHLY_REGISTRATION_TARGET
from schemas import DEFAULT_STATUS, STATUSES

Record = Dict[str, Any]


def is_unset(value: Optional[str]) -> bool:
    """'', None and 'All' (any case) mean: no constraint from this filter."""
    if value is None:
        return True
    v = str(value).strip()
    return not v or v.lower() == "all"


def effective_status(record: Record) -> str:
    return record.get("status") or DEFAULT_STATUS


def display_name(record: Record) -> str:
    return record.get("fullName") or record.get("name") or ""


def registrations(record: Record) -> int:
    """Student registrations driven by a hired SRM; older documents use registrationCompleted."""
    value = record.get("salesCompleted")
    if value is None:
        value = record.get("registrationCompleted")
    return int(value or 0)


def as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value:
        try:
            return as_datetime(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def submitted_local(record: Record, tz: str = APP_TIMEZONE) -> Optional[datetime]:
    ts = as_datetime(record.get("submittedAt")) or as_datetime(record.get("createdAt"))
    return ts.astimezone(ZoneInfo(tz)) if ts else None


@dataclass
class FilterSelection:
    search: Optional[str] = None
    status: Optional[str] = None
    city: Optional[str] = None
    reference: Optional[str] = None
    date: Optional[date] = None


def _matches_search(record: Record, term: str) -> bool:
    needle = term.strip().lower()
    haystack = (
        display_name(record),
        record.get("email") or "",
        record.get("city") or "",
        str(record.get("phone") or ""),
    )
    return any(needle in h.lower() for h in haystack)


def matches(record: Record, selection: FilterSelection, tz: str = APP_TIMEZONE) -> bool:
    if not is_unset(selection.search) and not _matches_search(record, selection.search):
        return False
    if not is_unset(selection.status) and effective_status(record) != selection.status.strip():
        return False
    if not is_unset(selection.city) and record.get("city") != selection.city.strip():
        return False
    if not is_unset(selection.reference) and record.get("reference") != selection.reference.strip():
        return False
    if selection.date is not None:
        local = submitted_local(record, tz)
        if local is None or local.date() != selection.date:
            return False
    return True


def apply_filters(records: Iterable[Record], selection: FilterSelection, tz: str = APP_TIMEZONE) -> List[Record]:
    """AND of every set filter; input order is kept."""
    return [r for r in records if matches(r, selection, tz)]


def compute_kpis(
    records: Iterable[Record],
    selection: FilterSelection,
    now: Optional[datetime] = None,
    target: int = MONTHLY_REGISTRATION_TARGET,
    tz: str = APP_TIMEZONE,
) -> Dict[str, Any]:
    visible = apply_filters(records, selection, tz)
    today = (as_datetime(now) or datetime.now(timezone.utc)).astimezone(ZoneInfo(tz))

    by_status = {s: 0 for s in STATUSES}
    this_month = 0
    total_registrations = 0
    hired: List[Record] = []
    for r in visible:
        status = effective_status(r)
        by_status[status] = by_status.get(status, 0) + 1
        local = submitted_local(r, tz)
        if local is not None and (local.year, local.month) == (today.year, today.month):
            this_month += 1
        total_registrations += registrations(r)
        if status == "Hired":
            hired.append(r)

    achieved = sum(1 for r in hired if registrations(r) >= target)
    pct = round(100.0 * achieved / len(hired), 1) if hired else 0.0
    return {
        "total": len(visible),
        "byStatus": by_status,
        "thisMonth": this_month,
        "hired": len(hired),
        "totalRegistrations": total_registrations,
        "targetAchievedPct": pct,
    }


@dataclass
class DashboardState:
    """Loaded records plus the current filter selection of one dashboard."""

    records: List[Record] = field(default_factory=list)
    selection: FilterSelection = field(default_factory=FilterSelection)

    def visible(self) -> List[Record]:
        return apply_filters(self.records, self.selection)

    def page(self, page: int = 1, page_size: Optional[int] = None) -> List[Record]:
        rows = self.visible()
        if not page_size:
            return rows
        start = (max(page, 1) - 1) * page_size
        return rows[start:start + page_size]

    def kpis(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        return compute_kpis(self.records, self.selection, now=now)
