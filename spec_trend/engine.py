"""Entry points of the measurement trend engine.

``build_bounded_series`` runs the full chart pipeline: range filter,
granularity choice, bucketing, aggregation, limit overlays and series
assembly. ``build_calendar_average_series`` is the independent per-day
average path used by the multi-spec summary, and ``classify`` is the plain
within-spec check.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from spec_trend.aggregator import DEFAULT_DAY_LABEL_FORMAT, aggregate_buckets, calendar_average
from spec_trend.bucketizer import bucketize
from spec_trend.classifier import classify, classify_samples, spec_index
from spec_trend.granularity import Granularity, check_window, coerce_granularity, select_granularity
from spec_trend.range_filter import filter_products
from spec_trend.records import (
    CalendarAverageResult,
    ClassificationResult,
    InvalidRequestError,
    ProductRecord,
    Series,
    SpecDefinition,
)
from spec_trend.series import series_for_spec
from spec_trend.sources import RecordSource, SpecSource
from spec_trend.util import WindowBound, parse_window_bound

__all__ = [
    "SeriesRequest",
    "MeasurementRow",
    "build_bounded_series",
    "build_calendar_average_series",
    "build_measurement_table",
    "classify",
    "resolve_granularity",
]

logger = logging.getLogger(__name__)


class ChartSource(RecordSource, SpecSource, Protocol):
    pass


@dataclass(frozen=True)
class SeriesRequest:
    model_id: int
    spec_ids: Tuple[int, ...] = ()
    start: WindowBound = None
    end: WindowBound = None
    mold: Optional[str] = None
    # forces a granularity instead of choosing one from the window
    granularity: Optional[str] = None

    def window(self):
        start = parse_window_bound(self.start, True, "start")
        end = parse_window_bound(self.end, False, "end")
        if start is None or end is None:
            raise InvalidRequestError("start and end are required")
        check_window(start, end)
        return start, end


def resolve_granularity(request: SeriesRequest) -> Granularity:
    start, end = request.window()
    if request.granularity:
        return coerce_granularity(request.granularity)
    return select_granularity(start, end)


def _requested_specs(spec_ids: Sequence[int], specs: Sequence[SpecDefinition]) -> List[SpecDefinition]:
    if not spec_ids:
        return list(specs)
    index = spec_index(specs)
    chosen: List[SpecDefinition] = []
    for spec_id in dict.fromkeys(spec_ids):
        spec = index.get(spec_id)
        if spec is None:
            logger.debug("requested spec %s is not defined; no series produced", spec_id)
            continue
        chosen.append(spec)
    return chosen


def build_bounded_series(request: SeriesRequest, source: ChartSource) -> List[Series]:
    """Primary and limit series for each requested specification.

    An empty spec id list charts every specification of the model. Unknown
    spec ids and samples pointing at unknown specs are skipped silently, and a
    specification with nothing in the window gets no series.
    """
    start, end = request.window()
    granularity = resolve_granularity(request)
    products = filter_products(
        source.get_products_for_model(request.model_id), start, end,
        model_id=request.model_id, mold=request.mold,
    )
    specs = source.get_specifications(request.model_id)
    known = {s.id for s in specs}

    samples_by_spec = {}
    orphaned = 0
    for product in products:
        for sample in product.samples:
            if sample.spec_id not in known:
                orphaned += 1
                continue
            samples_by_spec.setdefault(sample.spec_id, []).append(sample)
    if orphaned:
        logger.debug("dropped %d samples referencing unknown specs for model %s", orphaned, request.model_id)

    series: List[Series] = []
    for spec in _requested_specs(request.spec_ids, specs):
        points = aggregate_buckets(bucketize(samples_by_spec.get(spec.id, ()), granularity))
        if not points:
            continue
        series.extend(series_for_spec(spec, points, granularity))
    logger.info(
        "built %d series for model %s (%s, %d products)",
        len(series), request.model_id, granularity.value, len(products),
    )
    return series


def build_calendar_average_series(
    products: Iterable[ProductRecord],
    specs: Sequence[SpecDefinition],
    label_format: str = DEFAULT_DAY_LABEL_FORMAT,
) -> CalendarAverageResult:
    return calendar_average(products, specs, label_format)


@dataclass(frozen=True)
class MeasurementRow:
    product: ProductRecord
    results: Tuple[ClassificationResult, ...]

    @property
    def ok(self) -> bool:
        return all(r.within_spec for r in self.results)


def build_measurement_table(products: Iterable[ProductRecord], specs: Sequence[SpecDefinition]) -> List[MeasurementRow]:
    """One row per product with every resolvable sample classified now."""
    index = spec_index(specs)
    return [MeasurementRow(product=p, results=tuple(classify_samples(p.samples, index))) for p in products]
