# dashboard/config.py
#
# Environment-driven settings for the people counter dashboard.

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

# -------------------------------------------------
# Fixed query shape and display constants
# -------------------------------------------------

TABLE_NAME = "people_counter"
SELECT_COLUMNS = ("id", "created_at", "people_count")
ORDER_COLUMN = "created_at"
TIEBREAK_COLUMN = "id"

PAGE_TITLE = "CrowdSense"
Y_AXIS_DOMAIN = (0, 15)
THRESHOLD_INPUT_RANGE = (0, 100)

POLLING_MODES = ("always-on", "gated")

# base64 of "crowdsense"; a UX speed-bump, not a credential
DEFAULT_GATE_SECRET_B64 = "Y3Jvd2RzZW5zZQ=="

# -------------------------------------------------
# Environment defaults
# -------------------------------------------------

DATA_SOURCE_URL = os.getenv("DATA_SOURCE_URL", "http://127.0.0.1:8000/rest/v1")
DATA_SOURCE_API_KEY = os.getenv("DATA_SOURCE_API_KEY", "")


class ConfigError(ValueError):
    """An environment setting has a value the dashboard cannot use."""


@dataclass(frozen=True)
class DashboardConfig:
    data_source_url: str = DATA_SOURCE_URL
    api_key: str = DATA_SOURCE_API_KEY
    polling_mode: str = "always-on"
    row_cap: Optional[int] = 100
    poll_interval_seconds: float = 5.0
    default_threshold: int = 10
    display_timezone: Optional[str] = None
    gate_secret_b64: str = DEFAULT_GATE_SECRET_B64
    request_timeout_seconds: float = 5.0
    log_level: str = "INFO"

    @property
    def gated(self) -> bool:
        return self.polling_mode == "gated"


def _parse_row_cap(raw: str) -> Optional[int]:
    if raw.strip().lower() in ("none", "unbounded", "all", ""):
        return None
    try:
        cap = int(raw)
    except ValueError as exc:
        raise ConfigError(f"ROW_CAP must be a positive integer or 'none', got {raw!r}") from exc
    if cap <= 0:
        raise ConfigError(f"ROW_CAP must be > 0, got {cap}")
    return cap


def _parse_positive_float(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be > 0, got {value}")
    return value


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def load_config(env: Optional[Mapping[str, str]] = None) -> DashboardConfig:
    """
    Build a DashboardConfig from environment variables.

    `env` defaults to os.environ; tests pass a plain dict.
    """
    if env is None:
        env = os.environ

    mode = env.get("POLLING_MODE", "always-on").strip().lower()
    if mode not in POLLING_MODES:
        raise ConfigError(f"POLLING_MODE must be one of {POLLING_MODES}, got {mode!r}")

    tz_name = env.get("DISPLAY_TIMEZONE") or None
    if tz_name is not None:
        try:
            ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigError(f"Unknown DISPLAY_TIMEZONE {tz_name!r}") from exc

    log_level = env.get("LOG_LEVEL", "INFO").upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"Unknown LOG_LEVEL {log_level!r}")

    config = DashboardConfig(
        data_source_url=env.get("DATA_SOURCE_URL", DATA_SOURCE_URL).rstrip("/"),
        api_key=env.get("DATA_SOURCE_API_KEY", DATA_SOURCE_API_KEY),
        polling_mode=mode,
        row_cap=_parse_row_cap(env.get("ROW_CAP", "100")),
        poll_interval_seconds=_parse_positive_float(
            "POLL_INTERVAL_SECONDS", env.get("POLL_INTERVAL_SECONDS", "5")
        ),
        default_threshold=_parse_int("DEFAULT_THRESHOLD", env.get("DEFAULT_THRESHOLD", "10")),
        display_timezone=tz_name,
        gate_secret_b64=env.get("GATE_SECRET_B64", DEFAULT_GATE_SECRET_B64),
        request_timeout_seconds=_parse_positive_float(
            "REQUEST_TIMEOUT_SECONDS", env.get("REQUEST_TIMEOUT_SECONDS", "5")
        ),
        log_level=log_level,
    )
    logger.debug("Loaded dashboard config: mode=%s row_cap=%s", config.polling_mode, config.row_cap)
    return config
