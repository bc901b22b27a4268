from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Mapping

from spec_trend.classifier import product_is_ok
from spec_trend.granularity import check_window
from spec_trend.records import InvalidRequestError, ProductRecord, SpecDefinition
from spec_trend.util import utc_day

# A year and a leap day.
MAX_DAYS = 366


@dataclass(frozen=True)
class ProductionBucket:
    day: date
    ok: int
    ng: int

    @property
    def total(self) -> int:
        return self.ok + self.ng

    @property
    def defect_rate(self) -> float:
        return round(self.ng * 100.0 / self.total, 1) if self.total else 0.0


def daily_production(
    products: Iterable[ProductRecord],
    specs_by_model: Mapping[int, Mapping[int, SpecDefinition]],
    start: datetime,
    end: datetime,
    max_days: int = MAX_DAYS,
) -> List[ProductionBucket]:
    """OK/NG product counts for every UTC day from ``start`` to ``end``.

    Days without products are kept with zero counts so the labels line up.
    Products are expected to be range-filtered already. Windows spanning more
    than ``max_days`` days are rejected before any slot is allocated.
    """
    check_window(start, end)
    day = utc_day(start)
    last = utc_day(end)
    day_count = (last - day).days + 1
    if day_count > max_days:
        raise InvalidRequestError(f"date range too large for daily view ({day_count} days, max {max_days})")

    counts: Dict[date, List[int]] = OrderedDict()
    while day <= last:
        counts[day] = [0, 0]
        day += timedelta(days=1)

    for product in products:
        slot = counts.get(utc_day(product.measured_at))
        if slot is None:
            continue
        specs = specs_by_model.get(product.model_id, {})
        slot[0 if product_is_ok(product, specs) else 1] += 1

    return [ProductionBucket(day=d, ok=ok, ng=ng) for d, (ok, ng) in counts.items()]
