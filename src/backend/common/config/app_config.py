"""Application configuration.

Values come from the process environment, with `.env` loaded first and
`.env.example` used as a non-overriding fallback for local runs.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import dotenv_values, load_dotenv

logger = logging.getLogger(__name__)

load_dotenv(override=False)

# Convenience: allow local runs with only `.env.example` filled.
# Blank placeholders in `.env.example` must not override real values.
_example_path = os.path.abspath(".env.example")
if os.path.exists(_example_path):
    for _k, _v in (dotenv_values(_example_path) or {}).items():
        if not _k or not _v:
            continue
        if not os.environ.get(_k):
            os.environ[_k] = _v

REPO_ROOT = Path(__file__).resolve().parents[4]

HOLIDAY_YEAR_SCOPES = {"record_years", "current_year"}


class AppConfig:
    """Environment-backed settings for the expense checker backend."""

    def __init__(self) -> None:
        self.APP_LOGGING_LEVEL = self._get_optional("APP_LOGGING_LEVEL", "INFO")

        self.HOLIDAY_API_BASE_URL = self._get_optional(
            "HOLIDAY_API_BASE_URL", "https://holidays-jp.github.io/api/v1"
        ).rstrip("/")
        self.HOLIDAY_HTTP_TIMEOUT_SECONDS = float(
            self._get_optional("HOLIDAY_HTTP_TIMEOUT_SECONDS", "10")
        )
        self.HOLIDAY_CACHE_TTL_SECONDS = float(
            self._get_optional("HOLIDAY_CACHE_TTL_SECONDS", str(24 * 60 * 60))
        )
        self.HOLIDAY_YEAR_SCOPE = self._get_optional("HOLIDAY_YEAR_SCOPE", "record_years")
        if self.HOLIDAY_YEAR_SCOPE not in HOLIDAY_YEAR_SCOPES:
            logger.warning(
                "Unknown HOLIDAY_YEAR_SCOPE %r; using 'record_years'", self.HOLIDAY_YEAR_SCOPE
            )
            self.HOLIDAY_YEAR_SCOPE = "record_years"

        self.EXPENSE_POLICY_PATH = self._get_optional(
            "EXPENSE_POLICY_PATH",
            str(REPO_ROOT / "data" / "expense_rulebooks" / "commute_expense_policy.yaml"),
        )

        self.EXPENSE_CHECK_BACKEND_BASE_URL = self._get_optional(
            "EXPENSE_CHECK_BACKEND_BASE_URL", "http://127.0.0.1:8000/api/v1"
        )
        self.EXPENSE_CHECK_HTTP_TIMEOUT_SECONDS = float(
            self._get_optional("EXPENSE_CHECK_HTTP_TIMEOUT_SECONDS", "60")
        )

    @staticmethod
    def _get_optional(name: str, default: str = "") -> str:
        value = os.environ.get(name)
        if value is None or value.strip() == "":
            return default
        return value.strip()

    def resolve_policy_path(self, path: str | None = None) -> Path:
        p = Path(path or self.EXPENSE_POLICY_PATH)
        if not p.is_absolute():
            p = (REPO_ROOT / p).resolve()
        return p


config = AppConfig()
