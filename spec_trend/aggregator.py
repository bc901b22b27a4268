"""Reduction of buckets and day groups into chartable numbers.

Two paths live here and they do not share bucketing:

* ``aggregate_buckets`` turns the bucketizer's output into min/max/average/count
  points for the bounded-range chart.
* ``calendar_average`` groups whole products by calendar day and averages each
  specification separately, for the multi-spec daily summary.
"""
import logging
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from spec_trend.records import (
    AggregatedPoint,
    CalendarAverageResult,
    ProductRecord,
    SpecDefinition,
    TimeBucket,
)
from spec_trend.util import mean_of, utc_day

logger = logging.getLogger(__name__)

DEFAULT_DAY_LABEL_FORMAT = "%d/%m/%y"


def aggregate_bucket(bucket: TimeBucket) -> Optional[AggregatedPoint]:
    if not bucket.values:
        return None
    values = bucket.values
    return AggregatedPoint(
        time=bucket.start,
        min=min(values),
        max=max(values),
        average=mean_of(values),
        count=len(values),
    )


def aggregate_buckets(buckets: Iterable[TimeBucket]) -> List[AggregatedPoint]:
    points = []
    for bucket in buckets:
        point = aggregate_bucket(bucket)
        if point is not None:
            points.append(point)
    return points


def calendar_average(
    products: Iterable[ProductRecord],
    specs: Sequence[SpecDefinition],
    label_format: str = DEFAULT_DAY_LABEL_FORMAT,
) -> CalendarAverageResult:
    """Per-day mean of every specification across the given products.

    Days are ordered by date, not by label. A specification with no sample on
    a day gets ``None`` in that day's slot.
    """
    by_day: Dict[date, List[ProductRecord]] = defaultdict(list)
    for product in products:
        by_day[utc_day(product.measured_at)].append(product)

    labels: List[str] = []
    days: List[date] = []
    series: Dict[int, List[Optional[float]]] = {spec.id: [] for spec in specs}
    for day in sorted(by_day):
        days.append(day)
        labels.append(day.strftime(label_format))
        values_by_spec: Dict[int, List[float]] = defaultdict(list)
        for product in by_day[day]:
            for sample in product.samples:
                values_by_spec[sample.spec_id].append(float(sample.value))
        for spec in specs:
            series[spec.id].append(mean_of(values_by_spec.get(spec.id, ())))

    logger.debug("calendar average: %d days, %d specs", len(days), len(specs))
    return CalendarAverageResult(labels=labels, days=days, series=series)
