from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_INPUT_PATH_ENV = "SENSOR_INPUT_PATH"
_OUTPUT_PATH_ENV = "SENSOR_OUTPUT_PATH"
_WORKER_COUNT_ENV = "PROCESSOR_WORKER_COUNT"
_CUTOFF_ENV = "SENSOR_CUTOFF"
_LOG_LEVEL_ENV = "LOG_LEVEL"

MAX_WORKERS = 32
DEFAULT_CUTOFF = (2024, 3)


@dataclass(frozen=True)
class Settings:
    input_path: str
    output_path: str
    processor_workers: int
    cutoff: tuple[int, int]
    log_level: str


def detect_worker_count() -> int:
    """Hardware parallelism, falling back to 1 and capped at ``MAX_WORKERS``."""
    detected = os.cpu_count() or 1
    return max(1, min(detected, MAX_WORKERS))


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_worker_count(default: int) -> int:
    value = os.getenv(_WORKER_COUNT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return min(parsed, MAX_WORKERS) if parsed > 0 else default


def parse_cutoff(value: str) -> tuple[int, int]:
    """Parse a ``YYYY-MM`` string into a ``(year, month)`` pair."""
    year_raw, sep, month_raw = value.strip().partition("-")
    if not sep:
        raise ValueError(f"Cutoff {value!r} is not in YYYY-MM form.")
    year, month = int(year_raw), int(month_raw)
    if not 1 <= month <= 12:
        raise ValueError(f"Cutoff month {month} is out of range.")
    return year, month


def _read_cutoff(default: tuple[int, int]) -> tuple[int, int]:
    value = os.getenv(_CUTOFF_ENV)
    if value is None or not value.strip():
        return default
    try:
        return parse_cutoff(value)
    except ValueError:
        return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        input_path=_read_str_env(_INPUT_PATH_ENV, "devices.csv"),
        output_path=_read_str_env(_OUTPUT_PATH_ENV, "resumo.csv"),
        processor_workers=_read_worker_count(detect_worker_count()),
        cutoff=_read_cutoff(DEFAULT_CUTOFF),
        log_level=_read_log_level("INFO"),
    )
