"""Data model for commute expense reviews.

Records and tables come from an extraction collaborator (page scraper, sheet
export, JSON file). Issues and results are what the review engine returns.

Wire shapes use the collaborator's camelCase keys (`rowId`, `roundTrip`,
`groupId`, ...). Everything here is immutable and created fresh per run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Iterable, Union

ROUTE_SEPARATOR = "→"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _as_round_trip(value: Any) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"roundTrip must be a boolean, got {value!r}")
    return value


def _as_amount(value: Any) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValueError(f"amount must be a number, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"amount must be a whole number of yen, got {value!r}")
        return int(value)
    return int(str(value).replace(",", "").strip())


@dataclass(frozen=True, slots=True)
class ExpenseRecord:
    row_id: str
    date: str
    from_place: str = ""
    to_place: str = ""
    round_trip: bool = False
    amount: int = 0
    purpose: str = ""
    remarks: str = ""

    @property
    def route(self) -> str:
        return f"{self.from_place}{ROUTE_SEPARATOR}{self.to_place}"

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ExpenseRecord":
        if not isinstance(raw, dict):
            raise ValueError(f"expense record must be a mapping, got {type(raw).__name__}")
        row_id = raw.get("rowId")
        if row_id is None or str(row_id) == "":
            raise ValueError("expense record is missing rowId")
        if "date" not in raw or raw.get("date") is None:
            raise ValueError(f"expense record {row_id} is missing date")
        return cls(
            row_id=str(row_id),
            date=_as_text(raw.get("date")),
            from_place=_as_text(raw.get("from")),
            to_place=_as_text(raw.get("to")),
            round_trip=_as_round_trip(raw.get("roundTrip")),
            amount=_as_amount(raw.get("amount")),
            purpose=_as_text(raw.get("purpose")),
            remarks=_as_text(raw.get("remarks")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "rowId": self.row_id,
            "date": self.date,
            "from": self.from_place,
            "to": self.to_place,
            "roundTrip": self.round_trip,
            "amount": self.amount,
            "purpose": self.purpose,
            "remarks": self.remarks,
        }


@dataclass(frozen=True, slots=True)
class ExpenseTable:
    title: str | None
    expenses: tuple[ExpenseRecord, ...] = ()

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ExpenseTable":
        if not isinstance(raw, dict):
            raise ValueError(f"expense table must be a mapping, got {type(raw).__name__}")
        expenses = raw.get("expenses") or []
        if not isinstance(expenses, list):
            raise ValueError("expense table 'expenses' must be a list")
        return cls(
            title=raw.get("title"),
            expenses=tuple(ExpenseRecord.from_dict(e) for e in expenses),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "expenses": [e.to_dict() for e in self.expenses]}


@dataclass(frozen=True, slots=True)
class IndexedExpense:
    """A record paired with its position in the full, unfiltered table."""

    original_index: int
    record: ExpenseRecord
    normalized_date: str | None


def coerce_table(table: ExpenseTable | dict[str, Any]) -> ExpenseTable:
    if isinstance(table, ExpenseTable):
        return table
    return ExpenseTable.from_dict(table)


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class HolidayIssue:
    kind: ClassVar[str] = "holiday"

    date: str
    row_id: str
    day_type: str
    detail: str
    action: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "date": self.date,
            "rowId": self.row_id,
            "dayType": self.day_type,
            "detail": self.detail,
            "action": self.action,
        }


@dataclass(frozen=True, slots=True)
class DuplicateIssue:
    kind: ClassVar[str] = "duplicate"

    date: str
    row_id: str
    group_id: str
    sub_type: str
    route: str
    detail: str
    action: str
    duplicate_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": self.kind,
            "subType": self.sub_type,
            "date": self.date,
            "rowId": self.row_id,
            "route": self.route,
            "detail": self.detail,
            "action": self.action,
            "groupId": self.group_id,
        }
        if self.duplicate_count is not None:
            out["duplicateCount"] = self.duplicate_count
        return out


@dataclass(frozen=True, slots=True)
class ContinuityWarning:
    kind: ClassVar[str] = "continuity"

    date: str
    week_start: str
    missing_dates: tuple[str, ...]
    detail: str
    action: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "date": self.date,
            "weekStart": self.week_start,
            "missingDates": list(self.missing_dates),
            "detail": self.detail,
            "action": self.action,
        }


@dataclass(frozen=True, slots=True)
class AmountMismatchIssue:
    kind: ClassVar[str] = "amount_mismatch"

    date: str
    row_id: str
    route: str
    round_trip: bool
    submitted_amount: int
    expected_amount: int
    normal_one_way_amount: int
    detail: str
    action: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "date": self.date,
            "rowId": self.row_id,
            "route": self.route,
            "roundTrip": self.round_trip,
            "submittedAmount": self.submitted_amount,
            "expectedAmount": self.expected_amount,
            "normalOneWayAmount": self.normal_one_way_amount,
            "detail": self.detail,
            "action": self.action,
        }


@dataclass(frozen=True, slots=True)
class OddRoundTripIssue:
    kind: ClassVar[str] = "odd_roundtrip"

    date: str
    row_id: str
    amount: int
    detail: str
    action: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "date": self.date,
            "rowId": self.row_id,
            "amount": self.amount,
            "detail": self.detail,
            "action": self.action,
        }


Issue = Union[HolidayIssue, DuplicateIssue, ContinuityWarning, AmountMismatchIssue, OddRoundTripIssue]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TableResult:
    title: str | None
    errors: tuple[Issue, ...] = ()
    warnings: tuple[Issue, ...] = ()
    success: bool = False

    @classmethod
    def build(cls, *, title: str | None, errors: Iterable[Issue], warnings: Iterable[Issue]) -> "TableResult":
        errs = tuple(errors)
        return cls(title=title, errors=errs, warnings=tuple(warnings), success=not errs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "success": self.success,
        }


@dataclass(frozen=True, slots=True)
class OverallResult:
    tables: tuple[TableResult, ...] = ()
    overall_success: bool = False
    total_errors: int = 0
    total_warnings: int = 0
    error: str | None = None

    @classmethod
    def from_tables(cls, tables: Iterable[TableResult]) -> "OverallResult":
        results = tuple(tables)
        total_errors = sum(len(t.errors) for t in results)
        total_warnings = sum(len(t.warnings) for t in results)
        return cls(
            tables=results,
            overall_success=total_errors == 0,
            total_errors=total_errors,
            total_warnings=total_warnings,
        )

    @classmethod
    def failed(cls, message: str) -> "OverallResult":
        return cls(tables=(), overall_success=False, total_errors=1, total_warnings=0, error=message)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "tables": [t.to_dict() for t in self.tables],
            "overallSuccess": self.overall_success,
            "totalErrors": self.total_errors,
            "totalWarnings": self.total_warnings,
        }
        if self.error is not None:
            out["error"] = self.error
        return out
