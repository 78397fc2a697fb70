"""Stable date ordering of review results for display.

Works on the wire dicts (`OverallResult.to_dict()`), since that is what
presentation layers consume. Inputs are never modified.
"""

from __future__ import annotations

import re
from datetime import date
from functools import cmp_to_key
from typing import Any

from src.backend.v1.use_cases.expense_review_checks import normalize_date

_UNKNOWN_DATE = date(9999, 12, 31)
_FIRST_DATE_RE = re.compile(r"\d{4}[-/年]\d{1,2}[-/月]\d{1,2}")

SORT_ORDERS = {"asc", "desc"}


def _issue_date(text: Any) -> date:
    iso = normalize_date(text) if isinstance(text, str) else None
    return date.fromisoformat(iso) if iso else _UNKNOWN_DATE


def _first_date_in(text: Any) -> date:
    if not isinstance(text, str):
        return _UNKNOWN_DATE
    m = _FIRST_DATE_RE.search(text)
    if not m:
        return _UNKNOWN_DATE
    return _issue_date(m.group(0))


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def sort_errors(errors: list[dict[str, Any]], order: str = "asc") -> list[dict[str, Any]]:
    """Sort by date; duplicates sharing a date stay grouped with deletes before the keep."""

    sign = 1 if order == "asc" else -1
    indexed = list(enumerate(errors))

    def compare(x: tuple[int, dict[str, Any]], y: tuple[int, dict[str, Any]]) -> int:
        ia, a = x
        ib, b = y
        da, db = _issue_date(a.get("date")), _issue_date(b.get("date"))
        if da != db:
            return sign * _cmp(da, db)

        ga, gb = a.get("groupId"), b.get("groupId")
        if ga and gb:
            if ga != gb:
                return _cmp(ga, gb)
            if a.get("subType") == "delete" and b.get("subType") == "keep":
                return -1
            if a.get("subType") == "keep" and b.get("subType") == "delete":
                return 1

        return ia - ib

    return [e for _, e in sorted(indexed, key=cmp_to_key(compare))]


def sort_warnings(warnings: list[dict[str, Any]], order: str = "asc") -> list[dict[str, Any]]:
    """Sort by the first date mentioned in each warning's date text."""

    sign = 1 if order == "asc" else -1
    indexed = list(enumerate(warnings))

    def compare(x: tuple[int, dict[str, Any]], y: tuple[int, dict[str, Any]]) -> int:
        ia, a = x
        ib, b = y
        da, db = _first_date_in(a.get("date")), _first_date_in(b.get("date"))
        if da == db:
            return ia - ib
        return sign * _cmp(da, db)

    return [w for _, w in sorted(indexed, key=cmp_to_key(compare))]


def sort_table_result(table: dict[str, Any], order: str = "asc") -> dict[str, Any]:
    if order not in SORT_ORDERS:
        raise ValueError(f"order must be one of {sorted(SORT_ORDERS)}")
    out = dict(table)
    out["errors"] = sort_errors(list(table.get("errors") or []), order)
    out["warnings"] = sort_warnings(list(table.get("warnings") or []), order)
    return out


def sort_overall_result(overall: dict[str, Any], order: str = "asc") -> dict[str, Any]:
    out = dict(overall)
    out["tables"] = [sort_table_result(t, order) for t in (overall.get("tables") or [])]
    return out
