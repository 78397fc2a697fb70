"""Deterministic commute expense checks.

This is the "middle layer" between:
- Integrations (record extraction, holiday calendar lookups)
- The rule engine (deciding which checks run, in which order)

No network calls here: functions accept already-fetched records and holidays.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import AbstractSet, Iterable, Sequence

from src.backend.v1.use_cases.expense_models import (
    AmountMismatchIssue,
    ExpenseTable,
    HolidayIssue,
    IndexedExpense,
    Issue,
    OddRoundTripIssue,
)

# holiday work, business trip, emergency response, attended office
DEFAULT_AUTHORIZED_KEYWORDS: tuple[str, ...] = ("休日出勤", "出張", "緊急対応", "出社")

_SATURDAY = 5
_SUNDAY = 6

_DATE_RE = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})(?:\D.*)?$")


@dataclass(frozen=True, slots=True)
class CheckOutcome:
    check_id: str
    errors: tuple[Issue, ...] = ()
    warnings: tuple[Issue, ...] = ()
    excluded_row_ids: frozenset[str] = field(default_factory=frozenset)


def normalize_date(text: str | None) -> str | None:
    """Canonicalize free-text dates like '2025年10月1日' or '2025/10/01' to 'YYYY-MM-DD'.

    Returns None when the text does not resolve to a real calendar date.
    """

    if not isinstance(text, str):
        return None

    cleaned = re.sub(r"[年月]", "-", text).replace("日", "").strip()
    m = _DATE_RE.match(cleaned)
    if not m:
        return None
    try:
        d = date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None
    return d.isoformat()


def index_expenses(table: ExpenseTable) -> list[IndexedExpense]:
    return [
        IndexedExpense(original_index=i, record=rec, normalized_date=normalize_date(rec.date))
        for i, rec in enumerate(table.expenses)
    ]


def is_weekend(d: date) -> bool:
    return d.weekday() in (_SATURDAY, _SUNDAY)


def non_business_day_type(iso_date: str, holidays: AbstractSet[str]) -> str | None:
    """Return 'holiday', 'Sunday' or 'Saturday' for non-business days, else None.

    A public holiday takes precedence over the weekday name.
    """

    if iso_date in holidays:
        return "holiday"
    wd = date.fromisoformat(iso_date).weekday()
    if wd == _SUNDAY:
        return "Sunday"
    if wd == _SATURDAY:
        return "Saturday"
    return None


def has_authorized_reason(*texts: str | None, keywords: Iterable[str] = DEFAULT_AUTHORIZED_KEYWORDS) -> bool:
    """Case-sensitive substring match of any keyword in any of the given texts."""

    kws = [k for k in keywords if k]
    for t in texts:
        if not t:
            continue
        if any(k in t for k in kws):
            return True
    return False


def check_non_business_days(
    *,
    expenses: Sequence[IndexedExpense],
    holidays: AbstractSet[str],
    authorized_keywords: Sequence[str] = DEFAULT_AUTHORIZED_KEYWORDS,
) -> CheckOutcome:
    """Flag weekend/holiday records without an authorized reason in remarks or purpose.

    Flagged records are returned in `excluded_row_ids` so the duplicate
    resolver can skip them.
    """

    errors: list[Issue] = []
    excluded: set[str] = set()

    for item in expenses:
        if item.normalized_date is None:
            continue
        day_type = non_business_day_type(item.normalized_date, holidays)
        if day_type is None:
            continue

        rec = item.record
        if has_authorized_reason(rec.remarks, rec.purpose, keywords=authorized_keywords):
            continue

        errors.append(
            HolidayIssue(
                date=rec.date,
                row_id=rec.row_id,
                day_type=day_type,
                detail="Submitted for a public holiday" if day_type == "holiday" else f"Submitted for a {day_type}",
                action="Enter the reason for working in the remarks, or delete the entry if it is not needed",
            )
        )
        excluded.add(rec.row_id)

    return CheckOutcome(check_id="holiday", errors=tuple(errors), excluded_row_ids=frozenset(excluded))


@dataclass(frozen=True, slots=True)
class _RouteFare:
    item: IndexedExpense
    one_way_amount: int


def _mode_first_seen(values: Sequence[int]) -> int:
    """Most common value; ties go to the value seen first."""

    counts = Counter(values)
    best_value = values[0]
    best_count = 0
    for v in dict.fromkeys(values):
        if counts[v] > best_count:
            best_value = v
            best_count = counts[v]
    return best_value


def _mismatch_detail(*, route: str, round_trip: bool, submitted: int, expected: int, one_way: int) -> str:
    if round_trip:
        return (
            f"Fare for \"{route}\" (round trip) differs from the usual fare\n"
            f"Submitted: {submitted} yen\n"
            f"Expected: {expected} yen (one way {one_way} yen)"
        )
    return (
        f"Fare for \"{route}\" (one way) differs from the usual fare\n"
        f"Submitted: {submitted} yen\n"
        f"Expected: {expected} yen"
    )


def check_amount_consistency(*, expenses: Sequence[IndexedExpense]) -> CheckOutcome:
    """Compare one-way-normalized fares per route against the route's most common fare.

    Odd round-trip amounts cannot be halved; they are reported and left out of
    the comparison. Expected amounts are stated in the outlier's own trip type.
    """

    errors: list[Issue] = []
    by_route: dict[str, list[_RouteFare]] = {}

    for item in expenses:
        rec = item.record
        if item.normalized_date is None:
            continue
        if not rec.amount or rec.amount <= 0:
            continue

        if rec.round_trip and rec.amount % 2 != 0:
            errors.append(
                OddRoundTripIssue(
                    date=rec.date,
                    row_id=rec.row_id,
                    amount=rec.amount,
                    detail=f"Round-trip amount is odd: {rec.amount} yen (cannot derive a one-way fare)",
                    action="Check the amount",
                )
            )
            continue

        one_way = rec.amount // 2 if rec.round_trip else rec.amount
        by_route.setdefault(rec.route, []).append(_RouteFare(item=item, one_way_amount=one_way))

    for route, fares in by_route.items():
        if len(fares) < 2:
            continue

        normal = _mode_first_seen([f.one_way_amount for f in fares])
        for f in fares:
            if f.one_way_amount == normal:
                continue
            rec = f.item.record
            expected = normal * 2 if rec.round_trip else normal
            errors.append(
                AmountMismatchIssue(
                    date=rec.date,
                    row_id=rec.row_id,
                    route=route,
                    round_trip=rec.round_trip,
                    submitted_amount=rec.amount,
                    expected_amount=expected,
                    normal_one_way_amount=normal,
                    detail=_mismatch_detail(
                        route=route,
                        round_trip=rec.round_trip,
                        submitted=rec.amount,
                        expected=expected,
                        one_way=normal,
                    ),
                    action="Check the amount",
                )
            )

    return CheckOutcome(check_id="amount", errors=tuple(errors))
