from collections import defaultdict
from typing import Dict, Iterable, List

from spec_trend.granularity import Granularity, coerce_granularity
from spec_trend.records import MeasurementSample, TimeBucket
from spec_trend.util import as_utc, day_start, utc_day


def bucketize(samples: Iterable[MeasurementSample], granularity: Granularity) -> List[TimeBucket]:
    """Group one specification's samples into ascending time buckets.

    Point mode gives every sample its own bucket; samples sharing a timestamp
    are told apart by ``ordinal``. Daily mode merges samples by UTC date.
    """
    granularity = coerce_granularity(granularity)
    if granularity is Granularity.POINT:
        return _point_buckets(samples)
    return _daily_buckets(samples)


def _point_buckets(samples: Iterable[MeasurementSample]) -> List[TimeBucket]:
    # sorted() is stable, so equal timestamps keep their input order
    ordered = sorted(samples, key=lambda s: as_utc(s.timestamp))
    buckets: List[TimeBucket] = []
    seen: Dict[object, int] = {}
    for sample in ordered:
        ts = as_utc(sample.timestamp)
        ordinal = seen.get(ts, 0)
        seen[ts] = ordinal + 1
        buckets.append(TimeBucket(key=ts, start=ts, values=(float(sample.value),), ordinal=ordinal))
    return buckets


def _daily_buckets(samples: Iterable[MeasurementSample]) -> List[TimeBucket]:
    by_day = defaultdict(list)
    for sample in samples:
        by_day[utc_day(sample.timestamp)].append(float(sample.value))
    return [
        TimeBucket(key=day, start=day_start(day), values=tuple(values))
        for day, values in sorted(by_day.items())
    ]
