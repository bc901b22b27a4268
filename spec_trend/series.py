"""Assembly of chart series and the group-isolation contract.

Each series is tagged with the id of the specification it belongs to. A
display layer that lets the user click a legend entry should show every
series of that group and hide the rest, since limit lines mean nothing
without the data they bound.
"""
from typing import Iterable, List, Sequence

from spec_trend.granularity import Granularity
from spec_trend.overlay import bound_overlays
from spec_trend.records import AggregatedPoint, Series, SeriesKind, SpecDefinition


def primary_series(spec: SpecDefinition, points: Sequence[AggregatedPoint], granularity: Granularity) -> Series:
    if granularity is Granularity.POINT:
        label, kind = spec.name, SeriesKind.ACTUAL
    else:
        label, kind = f"{spec.name} Avg", SeriesKind.AVERAGE
    return Series(
        label=label,
        kind=kind,
        group_key=spec.id,
        points=tuple((p.time, p.average) for p in points),
        aggregates=tuple(points),
    )


def series_for_spec(spec: SpecDefinition, points: Sequence[AggregatedPoint], granularity: Granularity) -> List[Series]:
    primary = primary_series(spec, points, granularity)
    return [primary, *bound_overlays(primary, spec)]


def isolate_group(series: Iterable[Series], group_key: int) -> List[bool]:
    """Visibility flags showing only the series tagged ``group_key``."""
    return [s.group_key == group_key for s in series]


def visible_after_click(series: Sequence[Series], index: int) -> List[bool]:
    return isolate_group(series, series[index].group_key)


def series_in_group(series: Iterable[Series], group_key: int) -> List[Series]:
    return [s for s in series if s.group_key == group_key]
