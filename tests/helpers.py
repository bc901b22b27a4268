"""Record builders shared by the engine tests."""
from datetime import datetime, timezone
from itertools import count

from spec_trend.records import MeasurementSample, ProductRecord

MODEL_ID = 1

_ids = count(1)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def make_product(measured_at, values, mold=None, model_id=MODEL_ID):
    """``values`` maps spec id -> value, or is a list of (spec id, value)."""
    pairs = values.items() if isinstance(values, dict) else values
    pid = next(_ids)
    samples = tuple(
        MeasurementSample(spec_id=spec_id, value=value, timestamp=measured_at, product_id=pid)
        for spec_id, value in pairs
    )
    return ProductRecord(id=pid, model_id=model_id, measured_at=measured_at, mold=mold, samples=samples)
