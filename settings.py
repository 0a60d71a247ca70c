from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_DATA_DIR_ENV = "AGRILINK_DATA_DIR"
_READINGS_TABLE_ENV = "AGRILINK_READINGS_TABLE"
_ALERTS_TABLE_ENV = "AGRILINK_ALERTS_TABLE"
_THRESHOLDS_TABLE_ENV = "AGRILINK_THRESHOLDS_TABLE"
_ALLOW_DEMO_OWNER_ENV = "AGRILINK_ALLOW_DEMO_OWNER"
_DEFAULT_OWNER_ENV = "AGRILINK_DEFAULT_OWNER_ID"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    data_dir: Optional[str]
    readings_table: str
    alerts_table: str
    thresholds_table: str
    allow_demo_owner: bool
    default_owner_id: str
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


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUTHY:
        return True
    if candidate in _FALSY:
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
        data_dir=_read_optional_env(_DATA_DIR_ENV, "./tmp/agrilink"),
        readings_table=_read_str_env(_READINGS_TABLE_ENV, "sensor_data"),
        alerts_table=_read_str_env(_ALERTS_TABLE_ENV, "alerts"),
        thresholds_table=_read_str_env(_THRESHOLDS_TABLE_ENV, "alert_thresholds"),
        allow_demo_owner=_read_bool_env(_ALLOW_DEMO_OWNER_ENV, True),
        default_owner_id=_read_str_env(_DEFAULT_OWNER_ENV, "demo-user-id"),
        log_level=_read_log_level("INFO"),
    )
