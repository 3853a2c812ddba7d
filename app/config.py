"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from esg_metrics.governance import MIN_REPORTING_YEAR
from esg_metrics.primitives import PLACEHOLDER
from esg_metrics.social import OSHA_HOURS_BASE, PART_TIME_FTE_RATIO


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class MetricsSettings:
    """
    Display and formula settings for derived ESG metrics.
    """

    display_placeholder: str = PLACEHOLDER
    percent_digits: int = 1
    ratio_digits: int = 2
    injury_rate_hours_base: float = OSHA_HOURS_BASE
    part_time_fte_ratio: float = PART_TIME_FTE_RATIO
    min_reporting_year: int = MIN_REPORTING_YEAR


@lru_cache(maxsize=1)
def get_metrics_settings() -> MetricsSettings:
    """
    Return cached metric settings from environment variables.
    """

    return MetricsSettings(
        display_placeholder=_get_str_env("METRICS_DISPLAY_PLACEHOLDER", PLACEHOLDER),
        percent_digits=max(0, _get_int_env("METRICS_PERCENT_DIGITS", 1)),
        ratio_digits=max(0, _get_int_env("METRICS_RATIO_DIGITS", 2)),
        injury_rate_hours_base=max(
            1.0, _get_float_env("METRICS_INJURY_RATE_HOURS_BASE", OSHA_HOURS_BASE)
        ),
        part_time_fte_ratio=min(
            1.0, max(0.0, _get_float_env("METRICS_PART_TIME_FTE_RATIO", PART_TIME_FTE_RATIO))
        ),
        min_reporting_year=_get_int_env("METRICS_MIN_REPORTING_YEAR", MIN_REPORTING_YEAR),
    )
