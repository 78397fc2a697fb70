"""Run the commute expense checks on an exported file.

Input is either the extraction JSON (a list of `{title, expenses}` tables) or a
CSV export of the Jobcan commute table (`--csv`).

Run:
  python scripts/expense_check_local.py data/samples/october.json
  python scripts/expense_check_local.py export.csv --csv --sort asc --json
  python scripts/expense_check_local.py data/samples/october.json --remote

Exit code: 0 when every table passes, 1 when there are errors, 2 on bad input.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys
from typing import Any

from dotenv import load_dotenv


# Ensure `import src.*` works when running as `python scripts/...` from repo root.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

load_dotenv(override=False)

from src.backend.v1.integrations.expense_check_backend_client import call_expense_check_backend
from src.backend.v1.integrations.expense_sheet_reader import (
    load_tables_from_csv,
    load_tables_from_json,
)
from src.backend.v1.use_cases.expense_rule_engine import (
    ExpensePolicyError,
    ExpenseRuleEngine,
    check_all_expenses,
    load_expense_policy,
)
from src.backend.v1.use_cases.result_sorting import sort_overall_result


def _print_summary(result: dict[str, Any]) -> None:
    if result.get("error"):
        print(f"❌ Check failed: {result['error']}")
        return
    if not result.get("tables"):
        print("No expense tables found.")
        return

    for t in result["tables"]:
        status = "✅" if t.get("success") else "❌"
        print(f"{status} {t.get('title')}: {len(t['errors'])} errors, {len(t['warnings'])} warnings")
        for e in t["errors"]:
            extra = f" [{e['subType']} {e['groupId']}]" if e.get("type") == "duplicate" else ""
            print(f"  - {e['type']}{extra} {e.get('date')} ({e.get('rowId')}): {e['detail']}")
        for w in t["warnings"]:
            print(f"  ! {w['type']} {w.get('date')}: {w['detail']}")

    print(
        f"\nTotal: {result['totalErrors']} errors, {result['totalWarnings']} warnings "
        f"(overall {'OK' if result['overallSuccess'] else 'NG'})"
    )


def main() -> int:
    ap = argparse.ArgumentParser(description="Check commute expense tables for policy violations.")
    ap.add_argument("input", help="Path to the extraction JSON (or CSV with --csv).")
    ap.add_argument("--csv", action="store_true", help="Treat input as a CSV export with a header row.")
    ap.add_argument("--policy", default=None, help="Policy YAML path (defaults to EXPENSE_POLICY_PATH).")
    ap.add_argument("--sort", choices=["asc", "desc"], default=None, help="Sort issues by date.")
    ap.add_argument("--json", action="store_true", help="Print the full result as JSON.")
    ap.add_argument(
        "--remote",
        action="store_true",
        help="Send tables to the backend endpoint (EXPENSE_CHECK_BACKEND_BASE_URL) instead of checking locally.",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    args = ap.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    path = Path(args.input)
    if not path.exists():
        print(f"ERROR: input file not found: {path}", file=sys.stderr)
        return 2

    try:
        tables = load_tables_from_csv(path) if args.csv else load_tables_from_json(path)
    except (ValueError, json.JSONDecodeError) as e:
        print(f"ERROR: could not read expense tables: {e}", file=sys.stderr)
        return 2

    if args.remote:
        resp = asyncio.run(
            call_expense_check_backend(
                tables=[t.to_dict() for t in tables],
                sort_order=args.sort,
                policy_path=args.policy,
            )
        )
        if not resp["ok"]:
            print(f"ERROR: backend returned HTTP {resp['status_code']}: {resp['error']}", file=sys.stderr)
            return 2
        result = resp["response"]
    else:
        try:
            policy = load_expense_policy(args.policy)
        except ExpensePolicyError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 2
        result = check_all_expenses(tables, engine=ExpenseRuleEngine(policy=policy)).to_dict()
        if args.sort:
            result = sort_overall_result(result, args.sort)

    if args.json:
        print(json.dumps(result, ensure_ascii=False, indent=2))
    else:
        _print_summary(result)

    return 0 if result.get("overallSuccess") else 1


if __name__ == "__main__":
    raise SystemExit(main())
