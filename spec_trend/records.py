"""Value types shared by the trend engine.

Everything here is immutable and rebuilt on every call; the engine keeps no
state between invocations.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple


class InvalidRequestError(ValueError):
    """Raised when a series request cannot be served as asked."""


@dataclass(frozen=True)
class SpecDefinition:
    id: int
    name: str
    unit: Optional[str] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    display_order: int = 0


@dataclass(frozen=True)
class MeasurementSample:
    spec_id: int
    value: float
    timestamp: datetime
    # within-spec flag stored when the sample was recorded, if known
    recorded_within_spec: Optional[bool] = None
    product_id: Optional[int] = None


@dataclass(frozen=True)
class ProductRecord:
    id: int
    model_id: int
    measured_at: datetime
    mold: Optional[str] = None
    samples: Tuple[MeasurementSample, ...] = ()


@dataclass(frozen=True)
class TimeBucket:
    # datetime in point mode, date in daily mode
    key: object
    start: datetime
    values: Tuple[float, ...]
    ordinal: int = 0


@dataclass(frozen=True)
class AggregatedPoint:
    time: datetime
    min: float
    max: float
    average: float
    count: int


class SeriesKind(str, Enum):
    ACTUAL = "actual"
    AVERAGE = "average"
    MIN_LIMIT = "min-limit"
    MAX_LIMIT = "max-limit"


@dataclass(frozen=True)
class Series:
    label: str
    kind: SeriesKind
    group_key: int
    points: Tuple[Tuple[datetime, float], ...]
    aggregates: Tuple[AggregatedPoint, ...] = ()

    @property
    def times(self) -> List[datetime]:
        return [t for t, _ in self.points]

    @property
    def is_limit(self) -> bool:
        return self.kind in (SeriesKind.MIN_LIMIT, SeriesKind.MAX_LIMIT)


@dataclass(frozen=True)
class ClassificationResult:
    sample: MeasurementSample
    within_spec: bool


@dataclass(frozen=True)
class CalendarAverageResult:
    labels: List[str] = field(default_factory=list)
    days: List[date] = field(default_factory=list)
    series: Dict[int, List[Optional[float]]] = field(default_factory=dict)
