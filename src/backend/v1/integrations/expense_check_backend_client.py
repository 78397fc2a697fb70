"""Shared client for the expense check backend endpoint.

This module is intentionally dependency-light so it can be used by local
scripts/tests that want to call the same backend endpoint.
"""

from __future__ import annotations

import os
from typing import Any

import httpx


async def call_expense_check_backend(
    *,
    tables: list[dict[str, Any]],
    sort_order: str | None = None,
    policy_path: str | None = None,
    backend_base_url: str | None = None,
) -> dict[str, Any]:
    base = (
        backend_base_url
        or os.environ.get("EXPENSE_CHECK_BACKEND_BASE_URL")
        or "http://127.0.0.1:8000/api/v1"
    ).rstrip("/")

    url = f"{base}/expenses/check"
    payload: dict[str, Any] = {
        "tables": tables,
        "sort_order": sort_order,
        "policy_path": policy_path,
    }

    payload = {k: v for k, v in payload.items() if v is not None}
    timeout = float(os.environ.get("EXPENSE_CHECK_HTTP_TIMEOUT_SECONDS", "60"))

    async with httpx.AsyncClient(timeout=timeout) as client:
        resp = await client.post(url, json=payload)

    if resp.status_code >= 400:
        return {
            "ok": False,
            "status_code": resp.status_code,
            "error": resp.text,
            "request": {"url": url, "table_count": len(tables)},
        }

    return {
        "ok": True,
        "status_code": resp.status_code,
        "request": {"url": url, "table_count": len(tables)},
        "response": resp.json(),
    }
