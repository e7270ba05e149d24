"""Regression checks for raster data: compare a verified raster against an expected one."""

from .core import RasterChecker, check_rasters
from .exceptions import OpenError, RasterCheckError
from .result import ComparisonResult, FailureKind, ReportRow
from .sources import open_source
from .tolerance import tolerance, values_match

__all__ = [
    "ComparisonResult",
    "FailureKind",
    "OpenError",
    "RasterCheckError",
    "RasterChecker",
    "ReportRow",
    "check_rasters",
    "open_source",
    "tolerance",
    "values_match",
]
__version__ = "0.1.0"
