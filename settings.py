# settings.py
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

# -----------------------------
# DEFAULTS
# -----------------------------
MIN_INTERVAL_SECONDS = 5.0      # public RPCs rate-limit hard below this
DEFAULT_INTERVAL_SECONDS = 30.0
DEFAULT_USD_DELTA = 0.1
DEFAULT_CONCURRENCY = 50

PROBE_TIMEOUT = 4.0             # liveness probe on a cached endpoint
DISCOVERY_TIMEOUT = 6.0         # probing a fresh candidate
READ_TIMEOUT = 8.0              # any balance / metadata read


def _float(value: Any, default: float) -> float:
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


def _int(value: Any, default: int) -> int:
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return default


def _bool(value: Any) -> bool:
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")


def _only(value: Any) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.split(",")
    keys = tuple(k.strip().lower() for k in value if k and k.strip())
    return keys or None


@dataclass(frozen=True)
class WatchSettings:
    interval: float = DEFAULT_INTERVAL_SECONDS
    usd_delta: float = DEFAULT_USD_DELTA
    concurrency: int = DEFAULT_CONCURRENCY
    allow_errors: bool = False
    only: Optional[Tuple[str, ...]] = None
    email_to: Optional[str] = None
    probe_timeout: float = PROBE_TIMEOUT
    discovery_timeout: float = DISCOVERY_TIMEOUT
    read_timeout: float = READ_TIMEOUT

    def __post_init__(self):
        object.__setattr__(self, "interval", max(MIN_INTERVAL_SECONDS, float(self.interval)))
        object.__setattr__(self, "concurrency", max(1, int(self.concurrency)))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> "WatchSettings":
        return cls(
            interval=_float(environ.get("WATCH_INTERVAL"), DEFAULT_INTERVAL_SECONDS),
            usd_delta=_float(environ.get("USD_DELTA"), DEFAULT_USD_DELTA),
            concurrency=_int(environ.get("CONCURRENCY"), DEFAULT_CONCURRENCY),
            allow_errors=_bool(environ.get("ALLOW_ERRORS_FOR_EMAIL")),
            only=_only(environ.get("WATCH_ONLY")),
            email_to=(environ.get("EMAIL_TO") or "").strip() or None,
        )

    def with_overrides(self, **overrides: Any) -> "WatchSettings":
        """Apply non-None overrides (CLI flags, API request bodies)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "only" in changes:
            changes["only"] = _only(changes["only"])
        return replace(self, **changes)
