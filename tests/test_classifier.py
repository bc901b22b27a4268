from dataclasses import replace

import pytest

from helpers import make_product, utc
from spec_trend.classifier import classify, classify_samples, product_is_ok, spec_index
from spec_trend.records import MeasurementSample, SpecDefinition


def at(value, spec_id=1, recorded=None):
    return MeasurementSample(spec_id=spec_id, value=value, timestamp=utc(2024, 3, 5), recorded_within_spec=recorded)


@pytest.mark.parametrize("value, expected", [
    (9.49, False), (9.5, True), (10.0, True), (10.5, True), (10.51, False),
])
def test_bounds_are_inclusive(length_spec, value, expected):
    assert classify(at(value), length_spec) is expected


def test_classify_is_monotonic(length_spec):
    values = [9.5 + i * 0.01 for i in range(-100, 201)]
    for v in values:
        inside = length_spec.min_value <= v <= length_spec.max_value
        assert classify(at(v), length_spec) is inside


def test_absent_bounds_are_not_enforced():
    only_min = SpecDefinition(id=1, name="Depth", min_value=2.0)
    only_max = SpecDefinition(id=1, name="Depth", max_value=3.0)
    open_spec = SpecDefinition(id=1, name="Depth")

    assert classify(at(1000.0), only_min) is True
    assert classify(at(1.9), only_min) is False
    assert classify(at(-1000.0), only_max) is True
    assert classify(at(3.1), only_max) is False
    assert classify(at(-1e9), open_spec) is True


def test_inverted_bounds_do_not_raise():
    inverted = SpecDefinition(id=1, name="Depth", min_value=10.0, max_value=5.0)
    assert classify(at(7.0), inverted) is False


def test_unknown_spec_samples_get_no_result(length_spec):
    samples = [at(10.0), at(99.0, spec_id=42), at(11.0)]
    results = classify_samples(samples, spec_index([length_spec]))
    assert [r.sample.value for r in results] == [10.0, 11.0]
    assert [r.within_spec for r in results] == [True, False]


def test_recorded_and_current_classification_may_disagree(length_spec):
    recorded = at(10.4, recorded=classify(at(10.4), length_spec))
    tightened = replace(length_spec, max_value=10.3)

    assert recorded.recorded_within_spec is True
    assert classify(recorded, tightened) is False
    # the bounds in effect at recording time still pass it
    assert classify(recorded, length_spec) is True


def test_product_status(length_spec, width_spec):
    specs = spec_index([length_spec, width_spec])
    assert product_is_ok(make_product(utc(2024, 3, 5), {1: 10.0, 2: 4.5}), specs)
    assert not product_is_ok(make_product(utc(2024, 3, 5), {1: 10.0, 2: 5.5}), specs)
    assert product_is_ok(make_product(utc(2024, 3, 5), {1: 10.0, 77: -1.0}), specs)
    assert product_is_ok(make_product(utc(2024, 3, 5), {}), specs)
