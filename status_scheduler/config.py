"""Global configuration for the status scheduler.

This module exposes configuration constants via the `Config` class. All values
are read from environment variables with defaults suited to a container that
mounts the schedule at `/schedule.toml` and the token under `/run/secrets`.
"""

import os  # Standard library for environment and filesystem helpers
import re  # Robust parsing of numeric envs with comments/ranges

from .errors import ConfigError
from .locales import weekday_table


def _env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable robustly.

    Accepts values like "20", "20 # comment", or " '20' " and returns the
    first integer found. Falls back to default if parsing fails.
    """
    val = os.getenv(name)
    if val is None:
        return default
    s = str(val).strip().strip('"').strip("'")
    m = re.search(r"-?\d+", s)
    if not m:
        return default
    return int(m.group(0))


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip() == "1"


def validate_interval(interval_seconds: int) -> int:
    """Reject intervals that do not evenly divide a minute."""
    if interval_seconds <= 0 or 60 % interval_seconds:
        raise ConfigError(
            f"interval of {interval_seconds}s must be a positive divisor of 60 "
            "(1, 2, 3, 4, 5, 6, 10, 12, 15, 20, 30 or 60)"
        )
    return interval_seconds


class Config:
    """Application configuration sourced from environment variables.

    Other modules import settings as constants (e.g.
    `from status_scheduler.config import Config`). To override a setting,
    define the corresponding environment variable before launching.
    """
    # Schedule
    SCHEDULE_PATH = os.getenv("SS_SCHEDULE_PATH", "/schedule.toml")  # TOML schedule file
    LOCALE = os.getenv("SS_LOCALE", os.getenv("LOCALE", "en-US")).strip()  # Weekday-name table
    # Days of look-back when expanding entries; 2 covers anything up to 24h long
    MAX_DAYSPAN = _env_int("SS_MAX_DAYSPAN", 2)

    # Evaluation loop
    INTERVAL_SECONDS = _env_int("SS_INTERVAL_SECONDS", 20)  # Aligned to :00 of each minute
    CRASH_ON_EXCEPTION = _env_flag("SS_CRASH_ON_EXCEPTION", "0")  # Re-raise cycle errors

    # Remote service
    SECRETS_DIR = os.getenv("SS_SECRETS_DIR", "/run/secrets")
    TOKEN_KEYID = os.getenv("SS_TOKEN_KEYID", "slack_status_scheduler_user_token")
    API_BASE = os.getenv("SS_API_BASE", "https://slack.com/api").rstrip("/")
    API_TIMEOUT_SEC = float(os.getenv("SS_API_TIMEOUT_SEC", 10.0))

    # Logging
    LOG_LEVEL = os.getenv("SS_LOG_LEVEL", "INFO").strip().upper()
    LOG_FILE = os.getenv("SS_LOG_FILE", "").strip() or None

    # State API
    WEB_ENABLE = _env_flag("SS_WEB_ENABLE", "1")
    HOST = os.getenv("SS_HOST", "0.0.0.0")  # Flask bind host
    PORT = _env_int("SS_PORT", 8000)  # Flask bind port
    DEBUG = _env_flag("SS_DEBUG", "0")  # Flask debug switch

    @classmethod
    def validate(cls) -> None:
        """Fail fast on settings the loop cannot run with."""
        validate_interval(cls.INTERVAL_SECONDS)
        weekday_table(cls.LOCALE)
        if cls.MAX_DAYSPAN < 1:
            raise ConfigError(f"SS_MAX_DAYSPAN must be at least 1, got {cls.MAX_DAYSPAN}")
