from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_PLANT_CAPACITY_ENV = "PLANT_CAPACITY"
_SENSOR_COUNT_ENV = "SENSOR_COUNT"
_INTERVAL_ENV = "SIMULATION_INTERVAL"
_NOISE_LEVEL_ENV = "NOISE_LEVEL"
_ANOMALY_PROBABILITY_ENV = "ANOMALY_PROBABILITY"
_QUALITY_VARIATION_ENV = "QUALITY_VARIATION"
_AI_KEY_ENV = "GEMINI_API_KEY"
_AI_URL_ENV = "GEMINI_API_URL"
_AI_TIMEOUT_ENV = "AI_TIMEOUT_SECONDS"
_STORE_PATH_ENV = "DOCUMENT_STORE_PATH"
_PERSIST_SNAPSHOTS_ENV = "PERSIST_SNAPSHOTS"
_HOST_ENV = "HOST"
_PORT_ENV = "PORT"
_PORT_RETRIES_ENV = "PORT_RETRIES"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_AI_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent"
)


@dataclass(frozen=True)
class Settings:
    plant_capacity: float
    sensor_count: int
    broadcast_interval_ms: int
    noise_level: float
    anomaly_probability: float
    quality_variation: float
    ai_api_key: Optional[str]
    ai_api_url: str
    ai_timeout_seconds: float
    store_path: Optional[str]
    persist_snapshots: bool
    host: str
    port: int
    port_retries: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_fraction(name: str, default: float) -> float:
    """Read a value that must lie in [0, 1]; anything else falls back."""
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if 0.0 <= parsed <= 1.0 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in {"1", "true", "yes", "on"}:
        return True
    if candidate in {"0", "false", "no", "off"}:
        return False
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
        plant_capacity=_read_positive_float(_PLANT_CAPACITY_ENV, 2000.0),
        sensor_count=_read_positive_int(_SENSOR_COUNT_ENV, 50),
        broadcast_interval_ms=_read_positive_int(_INTERVAL_ENV, 5000),
        noise_level=_read_fraction(_NOISE_LEVEL_ENV, 0.1),
        anomaly_probability=_read_fraction(_ANOMALY_PROBABILITY_ENV, 0.05),
        quality_variation=_read_fraction(_QUALITY_VARIATION_ENV, 0.1),
        ai_api_key=_read_optional_env(_AI_KEY_ENV, None),
        ai_api_url=_read_str_env(_AI_URL_ENV, DEFAULT_AI_URL),
        ai_timeout_seconds=_read_positive_float(_AI_TIMEOUT_ENV, 30.0),
        store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/plant_store.json"),
        persist_snapshots=_read_bool(_PERSIST_SNAPSHOTS_ENV, True),
        host=_read_str_env(_HOST_ENV, "0.0.0.0"),
        port=_read_positive_int(_PORT_ENV, 3001),
        port_retries=_read_positive_int(_PORT_RETRIES_ENV, 5),
        log_level=_read_log_level("INFO"),
    )
