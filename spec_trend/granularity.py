from datetime import datetime, timedelta
from enum import Enum
from typing import Union

from spec_trend.records import InvalidRequestError
from spec_trend.util import as_utc

POINT_WINDOW = timedelta(hours=24)

# Recognised names with no bucketing behind them yet.
FUTURE_GRANULARITIES = ("week", "month", "year")


class Granularity(str, Enum):
    POINT = "point"
    DAILY = "daily"


def check_window(start: datetime, end: datetime) -> None:
    if as_utc(end) < as_utc(start):
        raise InvalidRequestError("end must be on or after start")


def select_granularity(start: datetime, end: datetime) -> Granularity:
    """Literal readings for windows up to a day, daily statistics beyond."""
    check_window(start, end)
    if as_utc(end) - as_utc(start) <= POINT_WINDOW:
        return Granularity.POINT
    return Granularity.DAILY


def coerce_granularity(value: Union[str, Granularity]) -> Granularity:
    if isinstance(value, Granularity):
        return value
    name = str(value or "").strip().lower()
    if name in FUTURE_GRANULARITIES:
        raise InvalidRequestError(f"granularity '{name}' is not implemented; use 'point' or 'daily'")
    try:
        return Granularity(name)
    except ValueError:
        raise InvalidRequestError(f"granularity must be 'point' or 'daily', got {value!r}") from None
