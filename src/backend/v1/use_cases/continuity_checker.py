"""Weekday coverage check.

Finds business days between the earliest and latest submitted dates that have
no record at all, and reports them as one warning per Monday-start week.
Warnings never affect a table's success.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import AbstractSet, Iterable, Sequence

from src.backend.v1.use_cases.expense_models import ContinuityWarning, IndexedExpense, Issue
from src.backend.v1.use_cases.expense_review_checks import CheckOutcome, is_weekend


def format_slash_date(d: date) -> str:
    return f"{d.year}/{d.month:02d}/{d.day:02d}"


def format_month_day(d: date) -> str:
    return f"{d.month:02d}/{d.day:02d}"


def week_start(d: date) -> date:
    return d - timedelta(days=d.weekday())


def find_missing_business_days(present_dates: Iterable[str], holidays: AbstractSet[str]) -> list[date]:
    """Return weekdays that are not holidays, strictly between consecutive present dates."""

    ordered = sorted({date.fromisoformat(d) for d in present_dates})
    missing: list[date] = []
    for current, nxt in zip(ordered, ordered[1:]):
        gap = (nxt - current).days
        for offset in range(1, gap):
            day = current + timedelta(days=offset)
            if is_weekend(day) or day.isoformat() in holidays:
                continue
            missing.append(day)
    return missing


def group_by_week(days: Iterable[date]) -> dict[date, list[date]]:
    weeks: dict[date, list[date]] = {}
    for d in days:
        weeks.setdefault(week_start(d), []).append(d)
    for bucket in weeks.values():
        bucket.sort()
    return weeks


def _split_runs(days: Sequence[date]) -> list[list[date]]:
    runs: list[list[date]] = []
    for d in days:
        if runs and (d - runs[-1][-1]).days == 1:
            runs[-1].append(d)
        else:
            runs.append([d])
    return runs


def format_day_runs(days: Sequence[date]) -> str:
    """Render sorted days compactly.

    '2025/10/02' for one day, '2025/10/02, 2025/10/03' for two consecutive
    days, '2025/10/01～2025/10/03' for three or more; runs joined with ', '.
    """

    parts: list[str] = []
    for run in _split_runs(days):
        if len(run) == 1:
            parts.append(format_slash_date(run[0]))
        elif len(run) == 2:
            parts.append(f"{format_slash_date(run[0])}, {format_slash_date(run[1])}")
        else:
            parts.append(f"{format_slash_date(run[0])}～{format_slash_date(run[-1])}")
    return ", ".join(parts)


def check_continuity(*, expenses: Sequence[IndexedExpense], holidays: AbstractSet[str]) -> CheckOutcome:
    present = {e.normalized_date for e in expenses if e.normalized_date is not None}
    if len(present) < 2:
        return CheckOutcome(check_id="continuity")

    warnings: list[Issue] = []
    for monday, days in group_by_week(find_missing_business_days(present, holidays)).items():
        friday = monday + timedelta(days=4)
        week_range = f"{format_month_day(monday)}～{format_month_day(friday)}"
        warnings.append(
            ContinuityWarning(
                date=f"{format_day_runs(days)} (week: {week_range})",
                week_start=monday.isoformat(),
                missing_dates=tuple(d.isoformat() for d in days),
                detail=f"Commute expenses are missing for weekdays ({len(days)} days)",
                action="Confirm that there was no actual attendance on these days",
            )
        )

    return CheckOutcome(check_id="continuity", warnings=tuple(warnings))
