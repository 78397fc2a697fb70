"""Expense Review API Router.

This module handles the commute expense review endpoints: running the policy
checks over extracted tables and exposing the resolved holiday calendar.
"""

import logging
from pathlib import Path
from typing import Any, Literal

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from src.backend.common.config.app_config import config
from src.backend.v1.integrations.holiday_client import HolidayClient
from src.backend.v1.use_cases.expense_rule_engine import (
    ExpensePolicy,
    ExpensePolicyError,
    ExpenseRuleEngine,
    check_all_expenses,
    load_expense_policy,
)
from src.backend.v1.use_cases.result_sorting import sort_overall_result

logger = logging.getLogger(__name__)

expense_router = APIRouter(tags=["Expense Review"])

app_v1 = APIRouter(
    prefix="/api/v1",
    responses={404: {"description": "Not found"}},
)


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------


class ExpenseCheckRequest(BaseModel):
    tables: list[dict[str, Any]] | None = None
    sort_order: Literal["asc", "desc"] | None = None
    policy_path: str | None = None


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

_holiday_client: HolidayClient | None = None


def get_holiday_client() -> HolidayClient:
    """Process-wide holiday client so the per-year cache survives across requests."""
    global _holiday_client
    if _holiday_client is None:
        _holiday_client = HolidayClient.from_env()
    return _holiday_client


def _load_policy(policy_path: str | None) -> ExpensePolicy:
    if policy_path and not config.resolve_policy_path(policy_path).exists():
        raise HTTPException(
            status_code=400,
            detail=f"Policy file not found: {Path(policy_path)}",
        )
    try:
        return load_expense_policy(policy_path)
    except ExpensePolicyError as e:
        logger.error(f"Failed to load expense policy {policy_path}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@expense_router.post("/expenses/check")
def expense_check(body: ExpenseCheckRequest):
    """Run the commute expense checks over the submitted tables.

    This endpoint is deterministic + read-only apart from the holiday lookup:
    - Resolves public holidays (live source with static fallback)
    - Runs the policy checks per table
    - Returns the overall result (optionally date-sorted for display)
    """

    policy = _load_policy(body.policy_path)
    engine = ExpenseRuleEngine(holiday_client=get_holiday_client(), policy=policy)
    result = check_all_expenses(body.tables, engine=engine).to_dict()

    logger.info(
        f"Expense check completed: {len(result['tables'])} tables, "
        f"{result['totalErrors']} errors, {result['totalWarnings']} warnings"
    )

    if body.sort_order:
        result = sort_overall_result(result, body.sort_order)
    return result


@expense_router.get("/expenses/holidays/{year}")
def expense_holidays(year: int):
    """Return the public holidays used for a year and where they came from."""

    if year < 1900 or year > 9999:
        raise HTTPException(status_code=400, detail="year must be a four-digit year")

    lookup = get_holiday_client().lookup(year)
    return {
        "year": lookup.year,
        "source": lookup.source,
        "holidays": sorted(lookup.holidays),
    }


app_v1.include_router(expense_router)
