"""Expense sheet reader.

Goals
- Turn already-fetched tabular rows (sheet ranges, CSV exports) into
  `ExpenseTable`s using the Jobcan commute-expense column layout.
- Keep parsing deterministic and unit-testable; file IO is limited to the
  `load_*` helpers.

Column layout (0-based):
  0 breakdown, 1 from, 2 to, 3 round trip / one way, 4 amount, 5 date,
  6 purpose and remarks (one shared cell)
"""

from __future__ import annotations

import csv
import json
import logging
import re
from pathlib import Path
from typing import Any

from src.backend.v1.use_cases.expense_models import ExpenseRecord, ExpenseTable

logger = logging.getLogger(__name__)

COL_FROM = 1
COL_TO = 2
COL_TRIP_TYPE = 3
COL_AMOUNT = 4
COL_DATE = 5
COL_PURPOSE = 6

DEFAULT_TABLE_TITLE = "通勤交通費"

_TAG_RE = re.compile(r"<[^>]*>")
_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "&": "&amp;",
}
_YEN_AMOUNT_RE = re.compile(r"[\d,]+\s*円")
_DIGITS_RE = re.compile(r"\d+")
_RECORD_DATE_RE = re.compile(r"\d{4}[-/年]\d{1,2}[-/月]\d{1,2}")


def sanitize_text(value: Any) -> str:
    """Strip HTML tags, escape markup characters and trim."""

    if value is None:
        return ""
    s = _TAG_RE.sub("", str(value))
    s = re.sub(r"[<>'\"&]", lambda m: _ESCAPES[m.group(0)], s)
    return s.strip()


def parse_amount_text(text: str | None) -> int:
    """Parse amounts like '1,072 円'.

    Falls back to the largest integer in the text; 0 when there is none.
    """

    if not text:
        return 0
    m = _YEN_AMOUNT_RE.search(text)
    if m:
        digits = re.sub(r"[,円\s]", "", m.group(0))
        if digits:
            amount = int(digits)
            if amount:
                return amount
    numbers = _DIGITS_RE.findall(text)
    if numbers:
        return max(int(n) for n in numbers)
    return 0


def parse_round_trip(text: str | None, *, row_index: int | None = None) -> bool:
    t = text or ""
    if "往復" in t:
        return True
    if "片道" in t:
        return False
    logger.warning("Row %s: unknown trip type %r; treating as one way", row_index, t)
    return False


def looks_like_record_date(text: str | None) -> bool:
    return bool(text and _RECORD_DATE_RE.search(text))


def _cell(row: list[str], index: int) -> str:
    return row[index] if index < len(row) else ""


def rows_to_expense_table(
    *, rows: list[list[str]], table_index: int = 0, title: str | None = DEFAULT_TABLE_TITLE
) -> ExpenseTable | None:
    """Build a table from data rows (no header row).

    Only rows with a date-looking cell become records; row ids are assigned
    from the count of valid rows so they stay stable for the same snapshot.
    Returns None when no row qualifies.
    """

    expenses: list[ExpenseRecord] = []
    for i, row in enumerate(rows):
        if not row:
            continue
        date_text = sanitize_text(_cell(row, COL_DATE))
        if not looks_like_record_date(date_text):
            continue
        purpose = sanitize_text(_cell(row, COL_PURPOSE))
        expenses.append(
            ExpenseRecord(
                row_id=f"expense-row-{table_index}-{len(expenses)}",
                date=date_text,
                from_place=sanitize_text(_cell(row, COL_FROM)),
                to_place=sanitize_text(_cell(row, COL_TO)),
                round_trip=parse_round_trip(sanitize_text(_cell(row, COL_TRIP_TYPE)), row_index=i),
                amount=parse_amount_text(_cell(row, COL_AMOUNT)),
                purpose=purpose,
                remarks=purpose,
            )
        )

    if not expenses:
        return None
    return ExpenseTable(title=title, expenses=tuple(expenses))


def load_tables_from_json(path: str | Path) -> list[ExpenseTable]:
    """Read the extraction collaborator's JSON export (a list of tables)."""

    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if isinstance(raw, dict) and "tables" in raw:
        raw = raw["tables"]
    if not isinstance(raw, list):
        raise ValueError("Expected a JSON list of expense tables")
    return [ExpenseTable.from_dict(t) for t in raw]


def load_tables_from_csv(
    path: str | Path, *, has_header: bool = True, title: str | None = DEFAULT_TABLE_TITLE
) -> list[ExpenseTable]:
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        rows = [list(r) for r in csv.reader(f)]
    if has_header and rows:
        rows = rows[1:]
    table = rows_to_expense_table(rows=rows, table_index=0, title=title)
    return [table] if table else []
