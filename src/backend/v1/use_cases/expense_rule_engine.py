"""Policy-driven review engine for commute expense tables.

Goal
- Run the registered checks over each table in a fixed, policy-controlled order.
- Merge findings into one result per table plus an overall verdict.

This module intentionally avoids FastAPI types/exceptions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence

import yaml

from src.backend.common.config.app_config import config
from src.backend.v1.integrations.holiday_client import HolidayClient
from src.backend.v1.use_cases.continuity_checker import check_continuity
from src.backend.v1.use_cases.duplicate_resolver import check_duplicates
from src.backend.v1.use_cases.expense_models import (
    ExpenseTable,
    IndexedExpense,
    Issue,
    OverallResult,
    TableResult,
    coerce_table,
)
from src.backend.v1.use_cases.expense_review_checks import (
    DEFAULT_AUTHORIZED_KEYWORDS,
    CheckOutcome,
    check_amount_consistency,
    check_non_business_days,
    index_expenses,
)

logger = logging.getLogger(__name__)

DEFAULT_CHECK_ORDER: tuple[str, ...] = ("holiday", "duplicate", "continuity", "amount")


class ExpensePolicyError(ValueError):
    """Raised when the expense policy file cannot be used."""


@dataclass(frozen=True, slots=True)
class ExpensePolicy:
    policy_id: str = "commute-expense-review"
    version: str = "1"
    title: str = "Commute expense review"
    authorized_keywords: tuple[str, ...] = DEFAULT_AUTHORIZED_KEYWORDS
    enabled_checks: tuple[str, ...] = DEFAULT_CHECK_ORDER
    path: str | None = None


_DEFAULT_POLICY = ExpensePolicy()


def parse_expense_policy(doc: Any, *, path: str | None = None) -> ExpensePolicy:
    if not isinstance(doc, dict):
        raise ExpensePolicyError("Expense policy YAML must parse to a mapping (dict).")

    meta = doc.get("policy") or {}
    if not isinstance(meta, dict):
        raise ExpensePolicyError("Top-level key 'policy' must be a mapping")

    keywords = meta.get("authorized_keywords")
    if keywords is None:
        authorized = DEFAULT_AUTHORIZED_KEYWORDS
    elif isinstance(keywords, list):
        authorized = tuple(str(k).strip() for k in keywords if str(k).strip())
    else:
        raise ExpensePolicyError("policy.authorized_keywords must be a list of strings")

    checks = doc.get("checks")
    if checks is None:
        enabled = DEFAULT_CHECK_ORDER
    elif isinstance(checks, list):
        ids: list[str] = []
        for c in checks:
            if not isinstance(c, dict) or not c.get("check_id"):
                continue
            if c.get("enabled") is False:
                continue
            cid = str(c["check_id"]).strip()
            if cid not in ids:
                ids.append(cid)
        enabled = tuple(ids)
    else:
        raise ExpensePolicyError("Top-level 'checks' must be a list")

    return ExpensePolicy(
        policy_id=str(meta.get("id") or _DEFAULT_POLICY.policy_id),
        version=str(meta.get("version") or _DEFAULT_POLICY.version),
        title=str(meta.get("title") or _DEFAULT_POLICY.title),
        authorized_keywords=authorized,
        enabled_checks=enabled,
        path=path,
    )


def load_expense_policy(path: str | Path | None = None) -> ExpensePolicy:
    """Load the YAML policy; a missing file yields the built-in default policy."""

    resolved = config.resolve_policy_path(str(path) if path else None)
    if not resolved.exists():
        logger.info("Expense policy not found at %s; using built-in defaults", resolved)
        return ExpensePolicy()
    try:
        with open(resolved, "r", encoding="utf-8") as f:
            doc = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ExpensePolicyError(f"Failed to parse expense policy YAML {resolved}: {e}") from e
    return parse_expense_policy(doc, path=str(resolved))


@dataclass(slots=True)
class ExpenseTableEvaluationContext:
    table: ExpenseTable
    expenses: list[IndexedExpense]
    holidays: frozenset[str]
    policy: ExpensePolicy
    excluded_row_ids: set[str] = field(default_factory=set)


EvaluationHandler = Callable[[ExpenseTableEvaluationContext], CheckOutcome]


class EvaluationRegistry:
    def __init__(self) -> None:
        self._handlers: dict[str, EvaluationHandler] = {}

    def register(self, check_id: str) -> Callable[[EvaluationHandler], EvaluationHandler]:
        def _decorator(fn: EvaluationHandler) -> EvaluationHandler:
            self._handlers[check_id] = fn
            return fn

        return _decorator

    def get(self, check_id: str) -> EvaluationHandler | None:
        return self._handlers.get(check_id)

    def implemented_types(self) -> set[str]:
        return set(self._handlers.keys())


def _default_registry() -> EvaluationRegistry:
    reg = EvaluationRegistry()

    @reg.register("holiday")
    def _eval_holiday(ctx: ExpenseTableEvaluationContext) -> CheckOutcome:
        outcome = check_non_business_days(
            expenses=ctx.expenses,
            holidays=ctx.holidays,
            authorized_keywords=ctx.policy.authorized_keywords,
        )
        ctx.excluded_row_ids.update(outcome.excluded_row_ids)
        return outcome

    @reg.register("duplicate")
    def _eval_duplicate(ctx: ExpenseTableEvaluationContext) -> CheckOutcome:
        return check_duplicates(expenses=ctx.expenses, excluded_row_ids=frozenset(ctx.excluded_row_ids))

    @reg.register("continuity")
    def _eval_continuity(ctx: ExpenseTableEvaluationContext) -> CheckOutcome:
        return check_continuity(expenses=ctx.expenses, holidays=ctx.holidays)

    @reg.register("amount")
    def _eval_amount(ctx: ExpenseTableEvaluationContext) -> CheckOutcome:
        return check_amount_consistency(expenses=ctx.expenses)

    return reg


def resolve_holiday_years(
    expenses: Iterable[IndexedExpense], *, scope: str, today: date
) -> list[int]:
    """Years whose holiday calendars a table needs.

    `record_years` uses every year present in the table (current year when
    none parse); `current_year` always uses only today's year.
    """

    if scope == "current_year":
        return [today.year]
    years = sorted({int(e.normalized_date[:4]) for e in expenses if e.normalized_date})
    return years or [today.year]


class ExpenseRuleEngine:
    """Evaluate commute expense tables against the expense policy."""

    def __init__(
        self,
        *,
        holiday_client: HolidayClient | None = None,
        policy: ExpensePolicy | None = None,
        registry: EvaluationRegistry | None = None,
        holiday_year_scope: str | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._holiday_client = holiday_client or HolidayClient.from_env()
        self._policy = policy or load_expense_policy()
        self._registry = registry or _default_registry()
        self._holiday_year_scope = holiday_year_scope or config.HOLIDAY_YEAR_SCOPE
        self._today = today

    @property
    def registry(self) -> EvaluationRegistry:
        return self._registry

    @property
    def policy(self) -> ExpensePolicy:
        return self._policy

    def _ordered_check_ids(self) -> list[str]:
        ids = list(self._policy.enabled_checks)
        # The duplicate check consumes the holiday check's exclusions.
        if "holiday" in ids:
            ids.remove("holiday")
            ids.insert(0, "holiday")
        return ids

    def evaluate_table(self, table: ExpenseTable | dict[str, Any]) -> TableResult:
        tbl = coerce_table(table)
        if not tbl.expenses:
            return TableResult(title=tbl.title)

        expenses = index_expenses(tbl)
        years = resolve_holiday_years(expenses, scope=self._holiday_year_scope, today=self._today())
        holidays = self._holiday_client.holidays_for_years(years)

        ctx = ExpenseTableEvaluationContext(
            table=tbl,
            expenses=expenses,
            holidays=holidays,
            policy=self._policy,
        )

        errors: list[Issue] = []
        warnings: list[Issue] = []
        for check_id in self._ordered_check_ids():
            handler = self._registry.get(check_id)
            if handler is None:
                logger.warning("Unknown expense check %r in policy; skipping", check_id)
                continue
            outcome = handler(ctx)
            errors.extend(outcome.errors)
            warnings.extend(outcome.warnings)

        result = TableResult.build(title=tbl.title, errors=errors, warnings=warnings)
        logger.info(
            "Expense table %r checked: %d records, %d errors, %d warnings",
            tbl.title,
            len(tbl.expenses),
            len(result.errors),
            len(result.warnings),
        )
        return result

    def check_all(self, tables: Sequence[ExpenseTable | dict[str, Any]] | None) -> OverallResult:
        if not tables:
            return OverallResult()

        try:
            coerced = [coerce_table(t) for t in tables]
            results = [self.evaluate_table(t) for t in coerced]
        except Exception as e:
            logger.error("Expense check run failed: %s", e, exc_info=True)
            return OverallResult.failed(str(e))

        return OverallResult.from_tables(results)


def check_all_expenses(
    tables: Sequence[ExpenseTable | dict[str, Any]] | None,
    *,
    engine: ExpenseRuleEngine | None = None,
) -> OverallResult:
    """Entry point: review every table and return the overall result."""

    if not tables:
        return OverallResult()
    return (engine or ExpenseRuleEngine()).check_all(tables)
