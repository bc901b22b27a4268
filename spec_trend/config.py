"""Runtime settings read from the environment."""
import os
from dataclasses import dataclass
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent
ROOT_DIR = BASE_DIR.parent
DATA_DIR = ROOT_DIR / "data"


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value or default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return bool(default)
    value = value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return bool(default)


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return int(default)


@dataclass(frozen=True)
class Settings:
    db_url: str
    sql_echo: bool
    log_level: str
    day_label_format: str
    default_window_days: int
    max_daily_buckets: int


def get_settings() -> Settings:
    # Real environment variables always win; nothing is cached so tests can
    # monkeypatch the environment between calls.
    default_url = f"sqlite:///{DATA_DIR}/spec_trend.db"
    return Settings(
        db_url=_env_str("SPEC_TREND_DB_URL", default_url),
        sql_echo=_env_bool("SPEC_TREND_SQL_ECHO", False),
        log_level=_env_str("SPEC_TREND_LOG_LEVEL", "INFO").upper(),
        day_label_format=_env_str("SPEC_TREND_DAY_LABEL_FORMAT", "%d/%m/%y"),
        default_window_days=max(1, _env_int("SPEC_TREND_DEFAULT_WINDOW_DAYS", 7)),
        max_daily_buckets=max(1, _env_int("SPEC_TREND_MAX_DAILY_BUCKETS", 366)),
    )
