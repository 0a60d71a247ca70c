from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0

_BASE_URL_ENV = "API_BASE_URL"
_OWNER_ENV = "AGRILINK_OWNER_ID"
_TIMEOUT_ENV = "CLI_TIMEOUT"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    owner_id: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT


def _env(name: str) -> Optional[str]:
    value = (os.getenv(name) or "").strip()
    return value or None


def _timeout_from_env() -> float:
    raw = _env(_TIMEOUT_ENV)
    if raw is None:
        return DEFAULT_TIMEOUT
    try:
        seconds = float(raw)
    except ValueError:
        return DEFAULT_TIMEOUT
    # Timeouts must be positive.
    return seconds if seconds > 0 else DEFAULT_TIMEOUT


def load_config(
    base_url: Optional[str] = None,
    owner_id: Optional[str] = None,
    timeout: Optional[float] = None,
) -> CLIConfig:
    """Merge explicit CLI options over environment defaults."""
    url = base_url or _env(_BASE_URL_ENV) or DEFAULT_BASE_URL
    return CLIConfig(
        base_url=url.rstrip("/"),
        owner_id=owner_id or _env(_OWNER_ENV),
        timeout=timeout if timeout is not None else _timeout_from_env(),
    )
