"""Shared fixtures for backend tests."""

from __future__ import annotations

import pytest
import requests


@pytest.fixture(autouse=True)
def _no_network(monkeypatch):
    """Block live holiday lookups; clients fall back to the static calendars."""

    def _blocked(method, url, headers=None, params=None, timeout=None):
        raise requests.ConnectionError(f"network disabled in tests: {method} {url}")

    monkeypatch.setattr("requests.request", _blocked)


def _make_table(rows: list[tuple], title: str = "通勤交通費") -> dict:
    expenses = []
    for i, row in enumerate(rows):
        date, frm, to, amount, round_trip, remarks = (list(row) + [None] * 6)[:6]
        expenses.append(
            {
                "rowId": f"row{i}",
                "date": date,
                "from": frm or "A",
                "to": to or "B",
                "roundTrip": bool(round_trip),
                "amount": amount or 0,
                "purpose": "",
                "remarks": remarks or "",
            }
        )
    return {"title": title, "expenses": expenses}


@pytest.fixture
def make_table():
    """Build a wire-format table from (date, from, to, amount, round_trip, remarks) tuples."""

    return _make_table


@pytest.fixture
def october_fixture_dates() -> list[str]:
    """Real-world ordering with scattered 10/01 and 10/08 duplicates."""

    return [
        "2025-10-01",
        "2025-10-02",
        "2025-10-08",
        "2025-10-03",
        "2025-10-04",
        "2025-10-06",
        "2025-10-08",
        "2025-10-09",
        "2025-10-13",
        "2025-10-14",
        "2025-10-08",
        "2025-10-16",
        "2025-10-21",
        "2025-10-23",
        "2025-10-08",
        "2025-10-01",
    ]
