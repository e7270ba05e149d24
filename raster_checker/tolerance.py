"""Magnitude-derived tolerances for comparing raster values."""

from __future__ import annotations

import math

import numpy as np

DEFAULT_PLACES = 6
STD_DEV_PLACES = 1


def _round_half_away(value: float) -> float:
    return float(np.copysign(np.floor(np.abs(value) + 0.5), value))


def tolerance(value: float, places: int = DEFAULT_PLACES) -> float:
    """
    Absolute tolerance sized to the order of magnitude of ``value``.

    Float32 precision is about 7 decimal digits, float64 about 16, so the
    default keeps ``places=6`` significant digits.

    Parameters
    ----------
    value : float
        Expected value the tolerance is derived from.
    places : int, default 6
        Number of decimal digits below the magnitude of ``value`` that must
        agree. Smaller values give a looser tolerance.

    Returns
    -------
    float
        ``10 ** round(log10(|value|) - places)``. Zero for ``value == 0``,
        NaN for NaN and infinity for infinite values.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        exponent = np.log10(np.abs(np.float64(value))) - places
    if math.isnan(exponent):
        return math.nan
    return float(np.power(10.0, _round_half_away(exponent)))


def values_match(verified: float, expected: float, tol: float) -> bool:
    """Both values NaN, equal (infinities included), or within ``tol`` of each other."""
    if math.isnan(verified) and math.isnan(expected):
        return True
    if verified == expected:
        return True
    return abs(verified - expected) <= tol
