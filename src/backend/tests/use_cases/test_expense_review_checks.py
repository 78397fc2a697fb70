from __future__ import annotations

from src.backend.v1.use_cases.expense_models import ExpenseTable
from src.backend.v1.use_cases.expense_review_checks import (
    check_amount_consistency,
    check_non_business_days,
    has_authorized_reason,
    index_expenses,
    non_business_day_type,
    normalize_date,
)

HOLIDAYS = frozenset({"2025-10-13"})


def _indexed(make_table, rows):
    return index_expenses(ExpenseTable.from_dict(make_table(rows)))


def test_normalize_date_formats() -> None:
    assert normalize_date("2025-10-01") == "2025-10-01"
    assert normalize_date("2025/10/1") == "2025-10-01"
    assert normalize_date("2025年10月1日") == "2025-10-01"
    assert normalize_date(" 2025年1月9日 ") == "2025-01-09"
    assert normalize_date("2025/10/01 (水)") == "2025-10-01"
    assert normalize_date("2025-10-01T09:00:00Z") == "2025-10-01"


def test_normalize_date_rejects_garbage_without_raising() -> None:
    assert normalize_date("") is None
    assert normalize_date("not a date") is None
    assert normalize_date("2025-02-30") is None
    assert normalize_date("10/01") is None
    assert normalize_date(None) is None
    assert normalize_date(20251001) is None  # type: ignore[arg-type]


def test_normalize_date_is_idempotent_on_canonical_output() -> None:
    for raw in ["2025年10月1日", "2025/12/31", "2024-02-29"]:
        once = normalize_date(raw)
        assert once is not None
        assert normalize_date(once) == once


def test_non_business_day_type() -> None:
    assert non_business_day_type("2025-10-13", HOLIDAYS) == "holiday"
    assert non_business_day_type("2025-10-12", HOLIDAYS) == "Sunday"
    assert non_business_day_type("2025-10-11", HOLIDAYS) == "Saturday"
    assert non_business_day_type("2025-10-14", HOLIDAYS) is None
    # Holiday wins over the weekday name.
    assert non_business_day_type("2025-10-11", frozenset({"2025-10-11"})) == "holiday"


def test_has_authorized_reason_is_case_sensitive_substring() -> None:
    assert has_authorized_reason("本日は休日出勤です", "")
    assert has_authorized_reason("", "大阪出張")
    assert not has_authorized_reason("", None)
    assert has_authorized_reason("Onsite", "", keywords=["Onsite"])
    assert not has_authorized_reason("onsite", "", keywords=["Onsite"])


def test_check_non_business_days_flags_and_excludes(make_table) -> None:
    expenses = _indexed(
        make_table,
        [
            ("2025-10-13", "A", "B", 0, False, ""),
            ("2025-10-11", "A", "B", 0, False, ""),
            ("2025-10-12", "A", "B", 0, False, "緊急対応"),
            ("2025-10-14", "A", "B", 0, False, ""),
            ("garbage", "A", "B", 0, False, ""),
        ],
    )

    res = check_non_business_days(expenses=expenses, holidays=HOLIDAYS)

    assert [e.row_id for e in res.errors] == ["row0", "row1"]
    assert [e.day_type for e in res.errors] == ["holiday", "Saturday"]
    assert res.errors[0].to_dict()["type"] == "holiday"
    assert res.excluded_row_ids == frozenset({"row0", "row1"})


def test_check_non_business_days_reads_purpose_too(make_table) -> None:
    table = make_table([("2025-10-12", "A", "B", 0, False, "")])
    table["expenses"][0]["purpose"] = "出社"
    res = check_non_business_days(
        expenses=index_expenses(ExpenseTable.from_dict(table)), holidays=HOLIDAYS
    )
    assert res.errors == ()


def test_amount_mode_flags_only_the_outlier(make_table) -> None:
    expenses = _indexed(
        make_table,
        [
            ("2025-10-01", "A", "B", 1000, False),
            ("2025-10-02", "A", "B", 1000, False),
            ("2025-10-03", "A", "B", 1000, False),
            ("2025-10-06", "A", "B", 1200, False),
        ],
    )

    res = check_amount_consistency(expenses=expenses)

    assert len(res.errors) == 1
    err = res.errors[0]
    assert err.row_id == "row3"
    assert err.kind == "amount_mismatch"
    assert err.expected_amount == 1000
    assert err.submitted_amount == 1200


def test_amount_round_trip_is_halved_before_comparison(make_table) -> None:
    expenses = _indexed(
        make_table,
        [
            ("2025-10-01", "A", "B", 1200, False),
            ("2025-10-02", "A", "B", 2400, True),
            ("2025-10-03", "A", "B", 1200, False),
        ],
    )
    assert check_amount_consistency(expenses=expenses).errors == ()


def test_amount_odd_round_trip_is_reported_and_excluded(make_table) -> None:
    expenses = _indexed(
        make_table,
        [
            ("2025-10-01", "A", "B", 1000, False),
            ("2025-10-02", "A", "B", 2401, True),
            ("2025-10-03", "A", "B", 1000, False),
        ],
    )

    res = check_amount_consistency(expenses=expenses)

    assert [e.kind for e in res.errors] == ["odd_roundtrip"]
    assert res.errors[0].row_id == "row1"
    assert res.errors[0].amount == 2401


def test_amount_expected_is_in_the_outliers_trip_type(make_table) -> None:
    expenses = _indexed(
        make_table,
        [
            ("2025-10-01", "A", "B", 1000, False),
            ("2025-10-02", "A", "B", 1000, False),
            ("2025-10-03", "A", "B", 2400, True),
        ],
    )

    res = check_amount_consistency(expenses=expenses)

    assert len(res.errors) == 1
    err = res.errors[0]
    assert err.round_trip is True
    assert err.expected_amount == 2000
    assert err.normal_one_way_amount == 1000
    assert "one way 1000 yen" in err.detail


def test_amount_tie_goes_to_first_seen_value(make_table) -> None:
    expenses = _indexed(
        make_table,
        [
            ("2025-10-01", "A", "B", 1200, False),
            ("2025-10-02", "A", "B", 1000, False),
        ],
    )

    res = check_amount_consistency(expenses=expenses)

    assert [e.row_id for e in res.errors] == ["row1"]
    assert res.errors[0].expected_amount == 1200


def test_amount_ignores_zero_single_and_undated_entries(make_table) -> None:
    expenses = _indexed(
        make_table,
        [
            ("2025-10-01", "A", "B", 0, False),
            ("2025-10-02", "A", "B", 500, False),
            ("2025-10-03", "C", "D", 900, False),
            ("unknown", "A", "B", 700, False),
        ],
    )
    assert check_amount_consistency(expenses=expenses).errors == ()


def test_normalize_date_accepts_attached_weekday_suffix() -> None:
    assert normalize_date("2025/10/01(水)") == "2025-10-01"
    assert normalize_date("2025年10月1日(水)") == "2025-10-01"
    assert normalize_date("2025-10-04（土）") == "2025-10-04"
    assert normalize_date("2025/10/011") is None
