from __future__ import annotations

import json

import pytest

from src.backend.v1.integrations.expense_sheet_reader import (
    load_tables_from_csv,
    load_tables_from_json,
    looks_like_record_date,
    parse_amount_text,
    parse_round_trip,
    rows_to_expense_table,
    sanitize_text,
)


def test_parse_amount_text() -> None:
    assert parse_amount_text("1,072 円") == 1072
    assert parse_amount_text("  400円 ") == 400
    assert parse_amount_text("IC 230 / 460") == 460
    assert parse_amount_text("") == 0
    assert parse_amount_text(None) == 0
    assert parse_amount_text("free") == 0


def test_parse_round_trip() -> None:
    assert parse_round_trip("往復") is True
    assert parse_round_trip(" 片道 ") is False
    assert parse_round_trip("?") is False
    assert parse_round_trip(None) is False


def test_sanitize_text() -> None:
    assert sanitize_text("  <b>渋谷</b> ") == "渋谷"
    assert sanitize_text("A & B") == "A &amp; B"
    assert sanitize_text(None) == ""


def test_looks_like_record_date() -> None:
    assert looks_like_record_date("2025/10/01(水)")
    assert looks_like_record_date("2025年10月1日")
    assert not looks_like_record_date("合計")
    assert not looks_like_record_date("")


def test_rows_to_expense_table_skips_non_record_rows() -> None:
    rows = [
        ["通勤", "渋谷", "新宿", "往復", "400 円", "2025/10/01", "出社"],
        ["", "", "", "", "800 円", "合計", ""],
        [],
        ["通勤", "渋谷", "新宿", "片道", "200 円", "2025/10/02"],
    ]

    table = rows_to_expense_table(rows=rows, table_index=1)

    assert table is not None
    assert table.title == "通勤交通費"
    assert [e.row_id for e in table.expenses] == ["expense-row-1-0", "expense-row-1-1"]
    first, second = table.expenses
    assert first.route == "渋谷→新宿"
    assert first.round_trip is True
    assert first.amount == 400
    assert first.purpose == first.remarks == "出社"
    assert second.round_trip is False
    assert second.remarks == ""


def test_rows_to_expense_table_returns_none_without_records() -> None:
    assert rows_to_expense_table(rows=[["a", "b"], []]) is None


def test_load_tables_from_json(tmp_path) -> None:
    table = {
        "title": "通勤交通費",
        "expenses": [{"rowId": "r1", "date": "2025-10-01", "from": "A", "to": "B", "amount": 300}],
    }
    listed = tmp_path / "list.json"
    listed.write_text(json.dumps([table], ensure_ascii=False), encoding="utf-8")
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"tables": [table]}, ensure_ascii=False), encoding="utf-8")

    for path in (listed, wrapped):
        tables = load_tables_from_json(path)
        assert len(tables) == 1
        assert tables[0].expenses[0].route == "A→B"
        assert tables[0].expenses[0].amount == 300


def test_load_tables_from_json_rejects_other_shapes(tmp_path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"title": "x"}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_tables_from_json(path)


def test_load_tables_from_csv(tmp_path) -> None:
    path = tmp_path / "export.csv"
    path.write_text(
        "内訳,出発,到着,往復/片道,金額,日付,目的・備考\n"
        "通勤,渋谷,新宿,往復,\"1,072 円\",2025/10/01,\n"
        "通勤,渋谷,新宿,往復,\"1,072 円\",2025/10/02,\n",
        encoding="utf-8",
    )

    tables = load_tables_from_csv(path)

    assert len(tables) == 1
    assert [e.amount for e in tables[0].expenses] == [1072, 1072]

    empty = tmp_path / "empty.csv"
    empty.write_text("内訳,出発,到着\n", encoding="utf-8")
    assert load_tables_from_csv(empty) == []
