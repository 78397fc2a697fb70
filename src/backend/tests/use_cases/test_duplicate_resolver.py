from __future__ import annotations

from src.backend.v1.use_cases.duplicate_resolver import (
    adjacency_score,
    check_duplicates,
    find_duplicate_groups,
    select_keep_expense,
)
from src.backend.v1.use_cases.expense_models import ExpenseTable
from src.backend.v1.use_cases.expense_review_checks import index_expenses


def _indexed(make_table, rows):
    return index_expenses(ExpenseTable.from_dict(make_table(rows)))


def _summary(errors):
    return [(e.group_id, e.sub_type, e.row_id) for e in errors]


def test_scattered_duplicates_keep_best_fitting_entry(make_table, october_fixture_dates) -> None:
    expenses = _indexed(make_table, [(d, "A", "B", 500, False) for d in october_fixture_dates])

    res = check_duplicates(expenses=expenses)

    assert _summary(res.errors) == [
        ("dup-group-0", "delete", "row15"),
        ("dup-group-0", "keep", "row0"),
        ("dup-group-1", "delete", "row2"),
        ("dup-group-1", "delete", "row10"),
        ("dup-group-1", "delete", "row14"),
        ("dup-group-1", "keep", "row6"),
    ]
    keeps = [e for e in res.errors if e.sub_type == "keep"]
    assert [k.duplicate_count for k in keeps] == [1, 3]
    assert all(e.duplicate_count is None for e in res.errors if e.sub_type == "delete")
    assert res.errors[0].route == "A→B"


def test_adjacency_scores_use_full_table_positions(make_table, october_fixture_dates) -> None:
    expenses = _indexed(make_table, [(d, "A", "B", 500, False) for d in october_fixture_dates])

    # Both neighbors differ: 100 - 0.1 * |index - 8|.
    assert adjacency_score(expenses[6], expenses) == 100 - 2 * 0.1
    assert adjacency_score(expenses[10], expenses) == 100 - 2 * 0.1
    # Only one side differs: 50 - 0.5 * index.
    assert adjacency_score(expenses[0], expenses) == 50
    assert adjacency_score(expenses[15], expenses) == 50 - 7.5


def test_equal_scores_keep_the_earliest_entry(make_table, october_fixture_dates) -> None:
    expenses = _indexed(make_table, [(d, "A", "B", 500, False) for d in october_fixture_dates])

    keep = select_keep_expense([expenses[10], expenses[6]], expenses)

    # The first candidate given wins on a tie.
    assert keep.original_index == 10


def test_unparseable_neighbor_counts_as_no_neighbor(make_table) -> None:
    expenses = _indexed(
        make_table,
        [
            ("2025-10-07", "A", "B"),
            ("2025-10-08", "A", "B"),
            ("invalid", "A", "B"),
            ("2025-10-08", "A", "B"),
            ("2025-10-09", "A", "B"),
        ],
    )

    res = check_duplicates(expenses=expenses)

    assert _summary(res.errors) == [
        ("dup-group-0", "delete", "row3"),
        ("dup-group-0", "keep", "row1"),
    ]


def test_homogeneous_run_keeps_first_entry(make_table) -> None:
    expenses = _indexed(make_table, [("2025-10-08", "A", "B")] * 3)

    res = check_duplicates(expenses=expenses)

    assert _summary(res.errors) == [
        ("dup-group-0", "delete", "row1"),
        ("dup-group-0", "delete", "row2"),
        ("dup-group-0", "keep", "row0"),
    ]


def test_routes_on_same_date_share_one_group_id(make_table) -> None:
    expenses = _indexed(
        make_table,
        [
            ("2025-10-08", "A", "B"),
            ("2025-10-08", "C", "D"),
            ("2025-10-08", "A", "B"),
            ("2025-10-08", "C", "D"),
        ],
    )

    res = check_duplicates(expenses=expenses)

    assert _summary(res.errors) == [
        ("dup-group-0", "delete", "row2"),
        ("dup-group-0", "keep", "row0"),
        ("dup-group-0", "delete", "row3"),
        ("dup-group-0", "keep", "row1"),
    ]
    assert [e.route for e in res.errors] == ["A→B", "A→B", "C→D", "C→D"]


def test_different_routes_and_formats(make_table) -> None:
    expenses = _indexed(
        make_table,
        [
            ("2025/10/08", "A", "B"),
            ("2025年10月8日", "A", "B"),
            ("2025-10-08", "B", "A"),
        ],
    )

    groups = find_duplicate_groups(expenses=expenses)

    # Date formats collapse to one key; reversed direction is a different route.
    assert len(groups) == 1
    assert groups[0].date == "2025-10-08"
    assert groups[0].route == "A→B"
    assert {g.record.row_id for g in groups[0].deletes} | {groups[0].keep.record.row_id} == {"row0", "row1"}


def test_excluded_rows_are_not_grouped(make_table) -> None:
    expenses = _indexed(make_table, [("2025-10-08", "A", "B")] * 2)

    res = check_duplicates(expenses=expenses, excluded_row_ids={"row0"})

    assert res.errors == ()


def test_unparseable_dates_never_group(make_table) -> None:
    expenses = _indexed(make_table, [("???", "A", "B")] * 2)
    assert check_duplicates(expenses=expenses).errors == ()
