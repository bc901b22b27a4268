import logging
from typing import Dict, Iterable, List, Mapping, Optional

from spec_trend.records import ClassificationResult, MeasurementSample, ProductRecord, SpecDefinition

logger = logging.getLogger(__name__)


def within_bounds(value: float, min_value: Optional[float], max_value: Optional[float]) -> bool:
    if min_value is not None and value < min_value:
        return False
    if max_value is not None and value > max_value:
        return False
    return True


def classify(sample: MeasurementSample, spec: SpecDefinition) -> bool:
    """Inclusive bounds check; an absent bound is not enforced.

    Uses whatever bounds ``spec`` carries right now, so a sample classified
    when it was recorded and again later may legitimately disagree.
    """
    return within_bounds(float(sample.value), spec.min_value, spec.max_value)


def spec_index(specs: Iterable[SpecDefinition]) -> Dict[int, SpecDefinition]:
    return {spec.id: spec for spec in specs}


def classify_samples(samples: Iterable[MeasurementSample], specs: Mapping[int, SpecDefinition]) -> List[ClassificationResult]:
    results = []
    dropped = 0
    for sample in samples:
        spec = specs.get(sample.spec_id)
        if spec is None:
            dropped += 1
            continue
        results.append(ClassificationResult(sample=sample, within_spec=classify(sample, spec)))
    if dropped:
        logger.debug("classification skipped %d samples with unknown spec ids", dropped)
    return results


def product_is_ok(product: ProductRecord, specs: Mapping[int, SpecDefinition]) -> bool:
    """A product passes when every sample with a known spec is within it."""
    return all(r.within_spec for r in classify_samples(product.samples, specs))
