from typing import List, Optional

from spec_trend.records import Series, SeriesKind, SpecDefinition


def _limit_series(primary: Series, spec: SpecDefinition, kind: SeriesKind, bound: Optional[float], suffix: str) -> Optional[Series]:
    if bound is None:
        return None
    value = float(bound)
    return Series(
        label=f"{spec.name} {suffix}",
        kind=kind,
        group_key=primary.group_key,
        points=tuple((t, value) for t, _ in primary.points),
    )


def bound_overlays(primary: Series, spec: SpecDefinition) -> List[Series]:
    """Min/max limit series laid over ``primary``'s own timestamps.

    A missing bound produces no series at all.
    """
    overlays = [
        _limit_series(primary, spec, SeriesKind.MIN_LIMIT, spec.min_value, "Min"),
        _limit_series(primary, spec, SeriesKind.MAX_LIMIT, spec.max_value, "Max"),
    ]
    return [s for s in overlays if s is not None]
