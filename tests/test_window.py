from datetime import date, datetime, timedelta, timezone

import pytest

from helpers import make_product, utc
from spec_trend.granularity import Granularity, coerce_granularity, select_granularity
from spec_trend.range_filter import filter_products
from spec_trend.records import InvalidRequestError
from spec_trend.util import parse_window_bound


def test_date_only_end_covers_whole_day():
    assert parse_window_bound("2024-03-05", False) == datetime(2024, 3, 5, 23, 59, 59, 999999, tzinfo=timezone.utc)
    assert parse_window_bound(date(2024, 3, 5), False) == datetime(2024, 3, 5, 23, 59, 59, 999999, tzinfo=timezone.utc)
    assert parse_window_bound("2024-03-05", True) == utc(2024, 3, 5)


def test_timestamps_are_normalised_to_utc():
    assert parse_window_bound("2024-03-05T10:00:00Z", True) == utc(2024, 3, 5, 10)
    assert parse_window_bound("2024-03-05T12:00:00+02:00", False) == utc(2024, 3, 5, 10)
    assert parse_window_bound(datetime(2024, 3, 5, 10), True) == utc(2024, 3, 5, 10)
    assert parse_window_bound(None, True) is None
    assert parse_window_bound("", False) is None


@pytest.mark.parametrize("bad", ["2024-13-45", "yesterday", "05/03/2024"])
def test_unparsable_bound_is_rejected(bad):
    with pytest.raises(InvalidRequestError):
        parse_window_bound(bad, True)


def test_filter_keeps_window_model_and_mold_in_order():
    inside_a = make_product(utc(2024, 3, 5, 8), {1: 10.0}, mold="M1")
    inside_b = make_product(utc(2024, 3, 5, 23, 59), {1: 10.1}, mold="M2")
    before = make_product(utc(2024, 3, 4, 23, 59), {1: 10.2}, mold="M1")
    other_model = make_product(utc(2024, 3, 5, 9), {1: 10.3}, mold="M1", model_id=7)
    products = [inside_b, before, inside_a, other_model]
    start = parse_window_bound("2024-03-05", True)
    end = parse_window_bound("2024-03-05", False)

    assert filter_products(products, start, end, model_id=1) == [inside_b, inside_a]
    assert filter_products(products, start, end, model_id=1, mold="M1") == [inside_a]
    assert filter_products(products, start, end, model_id=1, mold="  ") == [inside_b, inside_a]
    assert filter_products(products, start, end) == [inside_b, inside_a, other_model]
    assert len(products) == 4


def test_filter_bounds_are_inclusive_and_empty_is_fine():
    p = make_product(utc(2024, 3, 5, 12), {1: 10.0})
    assert filter_products([p], utc(2024, 3, 5, 12), utc(2024, 3, 5, 12)) == [p]
    assert filter_products([p], utc(2024, 3, 6), utc(2024, 3, 7)) == []
    assert filter_products([], utc(2024, 3, 6), utc(2024, 3, 7)) == []


def test_naive_product_times_are_read_as_utc():
    p = make_product(datetime(2024, 3, 5, 12), {1: 10.0})
    assert filter_products([p], utc(2024, 3, 5), utc(2024, 3, 5, 23)) == [p]


def test_granularity_switches_after_a_day():
    start = utc(2024, 3, 5)
    assert select_granularity(start, start) is Granularity.POINT
    assert select_granularity(start, start + timedelta(hours=24)) is Granularity.POINT
    assert select_granularity(start, start + timedelta(hours=24, seconds=1)) is Granularity.DAILY
    assert select_granularity(start, start + timedelta(days=30)) is Granularity.DAILY


def test_single_date_window_is_point_mode():
    start = parse_window_bound("2024-03-05", True)
    end = parse_window_bound("2024-03-05", False)
    assert select_granularity(start, end) is Granularity.POINT


def test_end_before_start_is_rejected():
    with pytest.raises(InvalidRequestError):
        select_granularity(utc(2024, 3, 5), utc(2024, 3, 4))


@pytest.mark.parametrize("name", ["week", "month", "year", "hourly", ""])
def test_only_point_and_daily_are_accepted(name):
    with pytest.raises(InvalidRequestError):
        coerce_granularity(name)


def test_coerce_granularity_names():
    assert coerce_granularity("Daily") is Granularity.DAILY
    assert coerce_granularity(" point ") is Granularity.POINT
    assert coerce_granularity(Granularity.DAILY) is Granularity.DAILY
