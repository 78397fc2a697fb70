"""Japanese public holiday calendar connector.

Purpose
- Resolve the set of public holidays (ISO dates) for a year.
- Keep the single network call of a review run in one place.

The live source is holidays-jp (`/{year}/date.json`, a mapping of
`YYYY-MM-DD` to holiday names). Any failure degrades to a static calendar for
known years (or an empty set); errors never reach the caller.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable

import requests

from src.backend.common.config.app_config import config

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DEFAULT_CACHE_TTL_SECONDS = 24 * 60 * 60

# Static calendars used when the live source is unavailable.
# Includes substitute holidays (振替休日).
FALLBACK_HOLIDAYS: dict[int, tuple[str, ...]] = {
    2025: (
        "2025-01-01",  # 元日
        "2025-01-13",  # 成人の日
        "2025-02-11",  # 建国記念の日
        "2025-02-23",  # 天皇誕生日
        "2025-02-24",  # 振替休日
        "2025-03-20",  # 春分の日
        "2025-04-29",  # 昭和の日
        "2025-05-03",  # 憲法記念日
        "2025-05-04",  # みどりの日
        "2025-05-05",  # こどもの日
        "2025-05-06",  # 振替休日
        "2025-07-21",  # 海の日
        "2025-08-11",  # 山の日
        "2025-09-15",  # 敬老の日
        "2025-09-23",  # 秋分の日
        "2025-10-13",  # スポーツの日
        "2025-11-03",  # 文化の日
        "2025-11-23",  # 勤労感謝の日
        "2025-11-24",  # 振替休日
    ),
    2026: (
        "2026-01-01",  # 元日
        "2026-01-12",  # 成人の日
        "2026-02-11",  # 建国記念の日
        "2026-02-23",  # 天皇誕生日
        "2026-03-20",  # 春分の日
        "2026-04-29",  # 昭和の日
        "2026-05-03",  # 憲法記念日
        "2026-05-04",  # みどりの日
        "2026-05-05",  # こどもの日
        "2026-05-06",  # 振替休日
        "2026-07-20",  # 海の日
        "2026-08-11",  # 山の日
        "2026-09-21",  # 敬老の日
        "2026-09-22",  # 国民の休日
        "2026-09-23",  # 秋分の日
        "2026-10-12",  # スポーツの日
        "2026-11-03",  # 文化の日
        "2026-11-23",  # 勤労感謝の日
    ),
}


def fallback_holidays(year: int) -> frozenset[str]:
    return frozenset(FALLBACK_HOLIDAYS.get(year, ()))


def parse_holiday_payload(payload: Any) -> frozenset[str] | None:
    """Extract ISO date keys from a holidays-jp payload.

    Returns None when the payload is not a JSON object (lists included).
    Keys that are not `YYYY-MM-DD` are ignored.
    """

    if not isinstance(payload, dict):
        return None
    return frozenset(k for k in payload.keys() if isinstance(k, str) and _ISO_DATE_RE.match(k))


class HolidayCache:
    """Per-year holiday cache with an injectable clock."""

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[int, tuple[float, frozenset[str]]] = {}

    def get(self, year: int) -> frozenset[str] | None:
        entry = self._entries.get(year)
        if entry is None:
            return None
        fetched_at, holidays = entry
        if self._clock() - fetched_at >= self._ttl_seconds:
            self._entries.pop(year, None)
            return None
        return holidays

    def put(self, year: int, holidays: frozenset[str]) -> None:
        self._entries[year] = (self._clock(), holidays)

    def clear(self) -> None:
        self._entries.clear()


@dataclass(frozen=True, slots=True)
class HolidayLookup:
    year: int
    holidays: frozenset[str]
    source: str  # "live" | "cache" | "fallback"


class HolidayClient:
    def __init__(
        self,
        *,
        base_url: str = "https://holidays-jp.github.io/api/v1",
        timeout_seconds: float = 10,
        cache: HolidayCache | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._cache = cache if cache is not None else HolidayCache()

    @classmethod
    def from_env(cls) -> "HolidayClient":
        return cls(
            base_url=config.HOLIDAY_API_BASE_URL,
            timeout_seconds=config.HOLIDAY_HTTP_TIMEOUT_SECONDS,
            cache=HolidayCache(ttl_seconds=config.HOLIDAY_CACHE_TTL_SECONDS),
        )

    @property
    def cache(self) -> HolidayCache:
        return self._cache

    def _url_for(self, year: int) -> str:
        return f"{self._base_url}/{year}/date.json"

    def _fallback(self, year: int) -> HolidayLookup:
        return HolidayLookup(year=year, holidays=fallback_holidays(year), source="fallback")

    def lookup(self, year: int) -> HolidayLookup:
        cached = self._cache.get(year)
        if cached is not None:
            logger.debug("Holiday cache hit for %s", year)
            return HolidayLookup(year=year, holidays=cached, source="cache")

        url = self._url_for(year)
        try:
            resp = requests.request(
                "GET",
                url,
                headers={"Accept": "application/json"},
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning("Holiday lookup failed for %s (%s); using fallback calendar", year, e)
            return self._fallback(year)

        if resp.status_code < 200 or resp.status_code >= 300:
            logger.warning(
                "Holiday lookup for %s returned HTTP %s; using fallback calendar",
                year,
                resp.status_code,
            )
            return self._fallback(year)

        try:
            payload = resp.json()
        except ValueError as e:
            logger.warning("Holiday payload for %s is not JSON (%s); using fallback calendar", year, e)
            return self._fallback(year)

        holidays = parse_holiday_payload(payload)
        if holidays is None:
            logger.warning(
                "Holiday payload for %s has unexpected shape %s; using fallback calendar",
                year,
                type(payload).__name__,
            )
            return self._fallback(year)

        self._cache.put(year, holidays)
        logger.info("Fetched %d holidays for %s", len(holidays), year)
        return HolidayLookup(year=year, holidays=holidays, source="live")

    def holidays_for(self, year: int) -> frozenset[str]:
        return self.lookup(year).holidays

    def holidays_for_years(self, years: Iterable[int]) -> frozenset[str]:
        out: set[str] = set()
        for y in sorted(set(years)):
            out |= self.holidays_for(y)
        return frozenset(out)
