from datetime import date, datetime, time, timezone
from statistics import fmean
from typing import Iterable, Optional, Union

from spec_trend.records import InvalidRequestError

WindowBound = Union[str, date, datetime, None]


def mean_of(values: Iterable[float]) -> Optional[float]:
    data = list(values)
    return fmean(data) if data else None


def as_utc(ts: datetime) -> datetime:
    """Return ``ts`` as an aware UTC datetime; naive values are taken as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def utc_day(ts: datetime) -> date:
    return as_utc(ts).date()


def day_start(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def parse_window_bound(value: WindowBound, is_start: bool, label: str = "date") -> Optional[datetime]:
    """Parse a window bound given as a date, a datetime or an ISO string.

    Date-only values expand to the first instant of the day for a start bound
    and to the last instant of the day for an end bound.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min if is_start else time.max, tzinfo=timezone.utc)
    text = str(value).strip()
    if len(text) == 10:
        try:
            d = date.fromisoformat(text)
        except ValueError:
            raise InvalidRequestError(f"{label} must be YYYY-MM-DD or an ISO 8601 timestamp") from None
        return datetime.combine(d, time.min if is_start else time.max, tzinfo=timezone.utc)
    try:
        return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        raise InvalidRequestError(f"{label} must be YYYY-MM-DD or an ISO 8601 timestamp") from None
