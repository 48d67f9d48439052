from __future__ import annotations

import math
import statistics as reference

import pytest

from stockapi.app.compute.statistics import (
    aggregate,
    clamp_correlation,
    correlation,
    covariance,
    mean,
    median,
    stddev,
)
from stockapi.app.schemas import AggregationKind


def test_empty_inputs_return_zero() -> None:
    assert mean([]) == 0
    assert median([]) == 0
    assert stddev([]) == 0
    assert covariance([], []) == 0
    assert correlation([], []) == 0


def test_mean_and_median() -> None:
    assert mean([1.0, 2.0, 3.0, 4.0]) == pytest.approx(2.5)
    assert median([5.0, 1.0, 3.0]) == 3.0
    assert median([4.0, 1.0, 3.0, 2.0]) == 2.5


def test_median_does_not_mutate_input() -> None:
    values = [9.0, 1.0, 5.0, 3.0]
    median(values)
    assert values == [9.0, 1.0, 5.0, 3.0]


def test_stddev_uses_sample_denominator() -> None:
    values = [2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]
    assert stddev(values) == pytest.approx(reference.stdev(values))
    assert stddev(values) != pytest.approx(reference.pstdev(values))


@pytest.mark.parametrize("values", [[], [42.0], [3.0, 3.0, 3.0], [0.1, 0.1, 0.1]])
def test_stddev_degenerate_is_zero(values) -> None:
    assert stddev(values) == 0


def test_covariance_sample_and_degenerate() -> None:
    xs = [1.0, 2.0, 3.0, 4.0]
    ys = [2.0, 4.0, 5.0, 9.0]
    # sum of cross deviations is 11 over N-1 = 3
    assert covariance(xs, ys) == pytest.approx(11.0 / 3.0)
    assert covariance([1.0, 2.0], [1.0]) == 0
    assert covariance([1.0], [2.0]) == 0


def test_correlation_matches_reference() -> None:
    xs = [10.0, 11.5, 10.8, 12.2, 13.0]
    ys = [20.0, 19.0, 21.5, 22.0, 25.0]
    mx = sum(xs) / len(xs)
    my = sum(ys) / len(ys)
    cov = sum((x - mx) * (y - my) for x, y in zip(xs, ys)) / (len(xs) - 1)
    expected = cov / (reference.stdev(xs) * reference.stdev(ys))
    assert correlation(xs, ys) == pytest.approx(expected)


def test_correlation_is_symmetric() -> None:
    xs = [1.0, 3.0, 2.0, 5.0, 4.0]
    ys = [2.0, 1.0, 4.0, 3.0, 6.0]
    assert correlation(xs, ys) == correlation(ys, xs)


@pytest.mark.parametrize(
    "xs,ys",
    [
        ([1.0, 2.0, 3.0], [1.0, 2.0]),
        ([1.0], [2.0]),
        ([5.0, 5.0, 5.0], [1.0, 2.0, 3.0]),
        ([1.0, 2.0, 3.0], [7.0, 7.0, 7.0]),
    ],
)
def test_correlation_degenerate_is_zero(xs, ys) -> None:
    assert correlation(xs, ys) == 0


def test_two_point_correlation_closed_form() -> None:
    value = correlation([10.0, 12.0], [20.0, 22.0])
    assert value == 2.0 / (math.sqrt(2.0) * math.sqrt(2.0))
    assert value == pytest.approx(1.0)
    assert correlation([10.0, 12.0], [22.0, 20.0]) == pytest.approx(-1.0)


def test_zero_and_negative_prices_are_accepted() -> None:
    assert mean([0.0, -2.0, 2.0]) == 0
    assert correlation([0.0, -1.0, -2.0], [0.0, 1.0, 2.0]) == pytest.approx(-1.0)


def test_non_numeric_input_is_rejected() -> None:
    with pytest.raises(ValueError):
        mean([1.0, "abc"])


def test_clamp_correlation() -> None:
    assert clamp_correlation(1.0000000002) == 1.0
    assert clamp_correlation(-1.2) == -1.0
    assert clamp_correlation(0.5) == 0.5


@pytest.mark.parametrize(
    "kind,expected",
    [
        (AggregationKind.AVERAGE, 4.0),
        ("median", 3.0),
        ("MIN", 1.0),
        (AggregationKind.MAX, 10.0),
        ("mode", 4.0),
        (None, 4.0),
    ],
)
def test_aggregate_dispatch(kind, expected) -> None:
    assert aggregate([3.0, 1.0, 10.0, 2.0, 4.0], kind) == expected


@pytest.mark.parametrize("values", [[], [7.0], [1.0, 2.0, 6.0], [0.1, 0.2, 0.3]])
def test_aggregate_average_equals_mean(values) -> None:
    assert aggregate(values, "average") == mean(values)


def test_aggregate_empty_is_zero_for_every_kind() -> None:
    for kind in AggregationKind:
        assert aggregate([], kind) == 0
