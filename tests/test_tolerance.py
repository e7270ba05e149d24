# tests/test_tolerance.py

import math

import pytest

from raster_checker.tolerance import tolerance, values_match


def test_tolerance_of_zero_is_zero():
    assert tolerance(0) == 0.0
    assert tolerance(0.0, places=1) == 0.0


@pytest.mark.parametrize(
    "value, places, expected",
    [
        (1.0, 6, 1e-6),
        (100.0, 6, 1e-4),
        (-100.0, 6, 1e-4),
        (250.0, 1, 1e1),
        (3e-5, 6, 1e-11),
    ],
)
def test_tolerance_tracks_order_of_magnitude(value, places, expected):
    assert tolerance(value, places) == pytest.approx(expected)


def test_tolerance_is_monotonic_in_magnitude():
    values = [1e-30, 1e-3, 0.5, 1.0, 7.0, 123.0, 4.5e6, 3.332e38]
    for places in (1, 6):
        tols = [tolerance(v, places) for v in values]
        assert tols == sorted(tols)
        assert [tolerance(-v, places) for v in values] == tols


def test_tolerance_shrinks_with_more_places():
    for value in (0.25, 1.0, 42.0, -3.332e38):
        assert tolerance(value, 6) < tolerance(value, 1)


def test_tolerance_of_float32_extreme():
    assert tolerance(-3.332e38) >= 1e32


def test_tolerance_of_nan_is_nan():
    assert math.isnan(tolerance(math.nan))


def test_values_match_nan_handling():
    nan = math.nan
    assert values_match(nan, nan, 0.0)
    assert values_match(nan, nan, 10.0)
    assert not values_match(nan, 5.0, 10.0)
    assert not values_match(5.0, nan, 10.0)


def test_values_match_tolerance_is_inclusive():
    tol = 0.5
    assert values_match(1.0, 1.0 + tol, tol)
    assert not values_match(1.0, 1.0 + tol * 1.0001, tol)


def test_values_match_exact():
    assert values_match(7.0, 7.0, 0.0)
    assert not values_match(7.0, 7.000001, 0.0)


def test_values_match_infinities():
    inf = math.inf
    assert values_match(inf, inf, 0.0)
    assert values_match(-inf, -inf, 0.0)
    assert not values_match(-inf, inf, 0.0)
    assert not values_match(-inf, inf, 1e300)
    assert not values_match(inf, 1.0, 1e300)
