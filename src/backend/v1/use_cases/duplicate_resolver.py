"""Duplicate route detection with an adjacency-based keep heuristic.

Records are grouped by (normalized date, route). When a group has more than
one entry, exactly one is kept. The keeper is the entry that best "fits" the
sequence the employee was entering: one sandwiched between other dates wins
over one at the edge of a run, which wins over one inside a block of
identical dates.

Scoring always uses the record's index in the full table (`IndexedExpense`),
never its position inside a filtered group.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Sequence

from src.backend.v1.use_cases.expense_models import DuplicateIssue, IndexedExpense, Issue
from src.backend.v1.use_cases.expense_review_checks import CheckOutcome


@dataclass(frozen=True, slots=True)
class RouteDuplicateGroup:
    date: str
    route: str
    keep: IndexedExpense
    deletes: tuple[IndexedExpense, ...]


def _nearest_different_date(
    all_expenses: Sequence[IndexedExpense], start: int, step: int, target: str | None
) -> str | None:
    # The scan stops at the first differing record; an unparseable date there
    # counts as no neighbor.
    i = start + step
    while 0 <= i < len(all_expenses):
        d = all_expenses[i].normalized_date
        if d != target:
            return d
        i += step
    return None


def adjacency_score(item: IndexedExpense, all_expenses: Sequence[IndexedExpense]) -> float:
    """Score how well a duplicate fits its surroundings in the original table.

    - differing dates on both sides: 100 - 0.1 * distance from the table midpoint
    - differing date on one side:    50 - 0.5 * index
    - none (homogeneous run):        -index
    """

    pos = item.original_index
    target = item.normalized_date
    prev_date = _nearest_different_date(all_expenses, pos, -1, target)
    next_date = _nearest_different_date(all_expenses, pos, 1, target)

    if prev_date and next_date:
        return 100 - abs(pos - len(all_expenses) / 2) * 0.1
    if prev_date or next_date:
        return 50 - pos * 0.5
    return float(-pos)


def select_keep_expense(
    duplicates: Sequence[IndexedExpense], all_expenses: Sequence[IndexedExpense]
) -> IndexedExpense:
    """Pick the entry to keep; ties resolve to the earliest entry in table order."""

    if not duplicates:
        raise ValueError("duplicates must not be empty")
    if len(duplicates) == 1:
        return duplicates[0]

    best = duplicates[0]
    best_score = adjacency_score(best, all_expenses)
    for candidate in duplicates[1:]:
        score = adjacency_score(candidate, all_expenses)
        if score > best_score:
            best, best_score = candidate, score
    return best


def find_duplicate_groups(
    *,
    expenses: Sequence[IndexedExpense],
    excluded_row_ids: AbstractSet[str] = frozenset(),
) -> list[RouteDuplicateGroup]:
    """Return route groups with more than one entry, in first-seen key order."""

    by_key: dict[tuple[str, str], list[IndexedExpense]] = {}
    for item in expenses:
        if item.record.row_id in excluded_row_ids:
            continue
        if item.normalized_date is None:
            continue
        by_key.setdefault((item.normalized_date, item.record.route), []).append(item)

    groups: list[RouteDuplicateGroup] = []
    for (d, route), items in by_key.items():
        if len(items) < 2:
            continue
        keep = select_keep_expense(items, expenses)
        deletes = tuple(i for i in items if i.original_index != keep.original_index)
        groups.append(RouteDuplicateGroup(date=d, route=route, keep=keep, deletes=deletes))
    return groups


def check_duplicates(
    *,
    expenses: Sequence[IndexedExpense],
    excluded_row_ids: AbstractSet[str] = frozenset(),
) -> CheckOutcome:
    """Emit duplicate issues bundled per date under a shared group id.

    Within a route group every "delete" issue precedes the "keep" issue.
    """

    by_date: dict[str, list[RouteDuplicateGroup]] = {}
    for g in find_duplicate_groups(expenses=expenses, excluded_row_ids=excluded_row_ids):
        by_date.setdefault(g.date, []).append(g)

    errors: list[Issue] = []
    for n, route_groups in enumerate(by_date.values()):
        group_id = f"dup-group-{n}"
        for g in route_groups:
            detail = f"\"{g.route}\" was submitted more than once on the same day"
            for d in g.deletes:
                errors.append(
                    DuplicateIssue(
                        date=d.record.date,
                        row_id=d.record.row_id,
                        group_id=group_id,
                        sub_type="delete",
                        route=g.route,
                        detail=detail,
                        action="Delete the duplicate entry",
                    )
                )
            errors.append(
                DuplicateIssue(
                    date=g.keep.record.date,
                    row_id=g.keep.record.row_id,
                    group_id=group_id,
                    sub_type="keep",
                    route=g.route,
                    detail=detail,
                    action="Keep this entry",
                    duplicate_count=len(g.deletes),
                )
            )

    return CheckOutcome(check_id="duplicate", errors=tuple(errors))
