"""Smoke test: validate the commute expense policy YAML.

This is intentionally lightweight and does NOT call external systems.
It catches common issues (missing keys, duplicate check IDs, unknown check ids)
so you can iterate on the policy quickly.

Run:
  python scripts/expense_policy_smoke.py

Optional env vars:
  EXPENSE_POLICY_PATH  (default: data/expense_rulebooks/commute_expense_policy.yaml)
"""

from __future__ import annotations

import os
import sys
from collections import Counter

from dotenv import load_dotenv

# Allow running as: `python scripts/expense_policy_smoke.py`
_REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

load_dotenv(override=False)

import yaml

from src.backend.v1.use_cases.expense_rule_engine import (
    ExpensePolicyError,
    ExpenseRuleEngine,
    parse_expense_policy,
)
from src.backend.v1.integrations.holiday_client import HolidayClient


def _fail(msg: str) -> int:
    print(f"ERROR: {msg}", file=sys.stderr)
    return 1


def main() -> int:
    path = os.environ.get(
        "EXPENSE_POLICY_PATH",
        os.path.join(_REPO_ROOT, "data", "expense_rulebooks", "commute_expense_policy.yaml"),
    )

    if not os.path.exists(path):
        return _fail(f"Policy file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        doc = yaml.safe_load(f)

    if not isinstance(doc, dict):
        return _fail("Policy YAML must parse to a mapping (dict).")

    meta = doc.get("policy")
    if not isinstance(meta, dict):
        return _fail("Missing or invalid top-level key: policy")

    for key in ["id", "version", "title", "authorized_keywords"]:
        if not meta.get(key):
            return _fail(f"policy.{key} is required")

    checks = doc.get("checks")
    if not isinstance(checks, list) or not checks:
        return _fail("Top-level checks must be a non-empty list")

    missing_ids = [i for i, c in enumerate(checks) if not isinstance(c, dict) or not c.get("check_id")]
    if missing_ids:
        return _fail(f"checks entries missing check_id at indexes: {missing_ids}")

    check_ids = [c["check_id"] for c in checks]
    dupes = [cid for cid, n in Counter(check_ids).items() if n > 1]
    if dupes:
        return _fail(f"Duplicate check_id(s): {dupes}")

    try:
        policy = parse_expense_policy(doc, path=path)
    except ExpensePolicyError as e:
        return _fail(str(e))

    # The registry does not touch the network; the client is only constructed.
    supported = ExpenseRuleEngine(holiday_client=HolidayClient(), policy=policy).registry.implemented_types()
    unknown = sorted({cid for cid in check_ids if cid not in supported})

    print("✅ Policy parsed")
    print(f"- Path: {path}")
    print(f"- Policy ID: {policy.policy_id}")
    print(f"- Version: {policy.version}")
    print(f"- Authorized keywords: {', '.join(policy.authorized_keywords)}")
    print(f"- Enabled checks: {', '.join(policy.enabled_checks)}")
    if unknown:
        print("- Unknown check_id values found (will be skipped):")
        for cid in unknown:
            print(f"  - {cid}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
