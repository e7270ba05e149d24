"""Core raster comparison: metadata, band fields and pixel values."""

from __future__ import annotations

import logging
import math
from contextlib import ExitStack
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .exceptions import OpenError
from .result import (
    METADATA_SECTION,
    ComparisonResult,
    FailureKind,
    ReportRow,
    band_section,
    format_number,
)
from .sources import BandInfo, PixelBlock, RasterSource, open_source
from .tolerance import DEFAULT_PLACES, STD_DEV_PLACES, tolerance, values_match

logger = logging.getLogger(__name__)

Rows = List[ReportRow]
Opener = Callable[[str, str], RasterSource]


def format_extent(extent) -> str:
    left, bottom, right, top = extent
    return f"{left:.16g},{bottom:.16g} : {right:.16g},{top:.16g}"


def compare_int(
    section: str,
    label: str,
    verified: int,
    expected: int,
    failure: FailureKind = FailureKind.FIELD_MISMATCH,
) -> ReportRow:
    ok = verified == expected
    return ReportRow(
        section=section,
        label=label,
        verified=str(verified),
        expected=str(expected),
        ok=ok,
        difference=str(verified - expected),
        failure=None if ok else failure,
    )


def compare_float(
    section: str, label: str, verified: float, expected: float, tol: float
) -> ReportRow:
    ok = values_match(verified, expected, tol)
    return ReportRow(
        section=section,
        label=label,
        verified=format_number(verified),
        expected=format_number(expected),
        ok=ok,
        difference=_difference(verified, expected),
        tolerance=format_number(tol),
        failure=None if ok else FailureKind.FIELD_MISMATCH,
    )


def _difference(verified: float, expected: float) -> Optional[str]:
    if math.isnan(verified) or math.isnan(expected):
        return None
    if verified == expected:
        return format_number(0.0)
    return format_number(verified - expected)


def _all_ok(rows: Rows) -> bool:
    return all(row.ok for row in rows)


def compare_shape(verified: RasterSource, expected: RasterSource) -> Tuple[Rows, bool]:
    """Band count, size and extent. Any mismatch makes the grids incomparable."""
    shape = FailureKind.SHAPE_MISMATCH
    rows = [
        compare_int(METADATA_SECTION, "Band count", verified.band_count, expected.band_count, shape),
        compare_int(METADATA_SECTION, "Width", verified.width, expected.width, shape),
        compare_int(METADATA_SECTION, "Height", verified.height, expected.height, shape),
    ]
    # Extents are fixed grid geometry and compared exactly.
    extent_ok = tuple(verified.extent) == tuple(expected.extent)
    rows.append(
        ReportRow(
            section=METADATA_SECTION,
            label="Extent",
            verified=format_extent(verified.extent),
            expected=format_extent(expected.extent),
            ok=extent_ok,
            failure=None if extent_ok else shape,
        )
    )
    return rows, _all_ok(rows)


def compare_types(section: str, verified: BandInfo, expected: BandInfo) -> Tuple[Rows, bool]:
    rows = []
    for label, verified_type, expected_type, verified_name, expected_name in (
        (
            "Source data type",
            verified.source_data_type,
            expected.source_data_type,
            verified.source_data_type_name,
            expected.source_data_type_name,
        ),
        (
            "Data type",
            verified.data_type,
            expected.data_type,
            verified.data_type_name,
            expected.data_type_name,
        ),
    ):
        ok = verified_type == expected_type
        rows.append(
            ReportRow(
                section=section,
                label=label,
                verified=verified_name,
                expected=expected_name,
                ok=ok,
                failure=None if ok else FailureKind.FIELD_MISMATCH,
            )
        )
    return rows, _all_ok(rows)


def compare_nodata(section: str, verified: BandInfo, expected: BandInfo) -> Tuple[Rows, bool]:
    """The nodata values themselves are compared only when both bands declare one."""
    flag_ok = verified.has_nodata == expected.has_nodata
    rows = [
        ReportRow(
            section=section,
            label="No data (NULL) value existence flag",
            verified=str(verified.has_nodata),
            expected=str(expected.has_nodata),
            ok=flag_ok,
            failure=None if flag_ok else FailureKind.FIELD_MISMATCH,
        )
    ]
    if verified.has_nodata and expected.has_nodata:
        rows.append(
            compare_float(section, "No data (NULL) value", verified.nodata, expected.nodata, 0.0)
        )
    return rows, _all_ok(rows)


def compare_statistics(
    section: str,
    verified: BandInfo,
    expected: BandInfo,
    places: int = DEFAULT_PLACES,
    std_dev_places: int = STD_DEV_PLACES,
) -> Tuple[Rows, bool]:
    """
    Compare band statistics with tolerances derived from the expected values.

    Min/max may differ slightly; for Float32 values around -3.332e38 the
    difference can reach 1e24, which is why the tolerance scales with
    magnitude. Standard deviation usually differs more and uses
    ``std_dev_places``.

    Cell counts are not compared: some backends exclude nodata cells from
    the count and others do not.
    """
    vs, es = verified.statistics, expected.statistics
    rows = [
        compare_float(section, "Minimum value", vs.minimum, es.minimum, tolerance(es.minimum, places)),
        compare_float(section, "Maximum value", vs.maximum, es.maximum, tolerance(es.maximum, places)),
        compare_float(section, "Mean", vs.mean, es.mean, tolerance(es.mean, places)),
        compare_float(
            section,
            "Standard deviation",
            vs.std_dev,
            es.std_dev,
            tolerance(es.std_dev, std_dev_places),
        ),
    ]
    return rows, _all_ok(rows)


def compare_pixels(section: str, verified: PixelBlock, expected: PixelBlock) -> Tuple[Rows, bool]:
    """Exact cell-by-cell comparison in row-major order; NaN matches NaN."""
    rows = []
    for row in range(expected.height):
        for col in range(expected.width):
            verified_value = verified.value_at(row, col)
            expected_value = expected.value_at(row, col)
            ok = values_match(verified_value, expected_value, 0.0)
            rows.append(
                ReportRow(
                    section=section,
                    label=f"Pixel ({row}, {col})",
                    verified=format_number(verified_value),
                    expected=format_number(expected_value),
                    ok=ok,
                    difference=_difference(verified_value, expected_value),
                    kind="pixel",
                    cell=(row, col),
                    failure=None if ok else FailureKind.PIXEL_MISMATCH,
                )
            )
    return rows, _all_ok(rows)


def _usable(block: Optional[PixelBlock], width: int, height: int) -> bool:
    return (
        block is not None
        and block.is_valid()
        and (block.height, block.width) == (height, width)
    )


class RasterChecker:
    """
    Checks that a verified raster reproduces an expected one.

    Parameters
    ----------
    places : int, default 6
        Significant digits required for min, max and mean.
    std_dev_places : int, default 1
        Significant digits required for the standard deviation.
    opener : callable, optional
        ``opener(source_type, location)`` returning an opened source and
        raising ``OpenError`` on failure. Defaults to the rasterio provider.
    """

    def __init__(
        self,
        places: int = DEFAULT_PLACES,
        std_dev_places: int = STD_DEV_PLACES,
        opener: Optional[Opener] = None,
    ) -> None:
        self.places = places
        self.std_dev_places = std_dev_places
        self.opener = opener or open_source

    def run_test(
        self,
        verified_source: str,
        verified_location: str | Path,
        expected_source: str,
        expected_location: str | Path,
    ) -> ComparisonResult:
        """
        Compare the verified raster against the expected one.

        Parameters
        ----------
        verified_source, expected_source : str
            Backend selector for each raster (``"gdal"`` or a driver name).
        verified_location, expected_location : str | Path
            Locator of each raster, meaningful to its backend.

        Returns
        -------
        ComparisonResult
            Pass flag and ordered report rows. Open errors and shape
            mismatches end the run early; everything else is reported for
            every band.
        """
        verified_location = str(verified_location)
        expected_location = str(expected_location)
        logger.info("Checking %s against %s", verified_location, expected_location)

        rows: Rows = []

        def finish(passed: bool) -> ComparisonResult:
            result = ComparisonResult(
                passed=passed,
                rows=tuple(rows),
                verified_location=verified_location,
                expected_location=expected_location,
            )
            logger.info(
                "%s: %d of %d rows failed",
                "PASSED" if passed else "FAILED",
                len(result.failures),
                len(result.rows),
            )
            return result

        with ExitStack() as stack:
            verified = self._open_source(stack, verified_source, verified_location, rows)
            expected = self._open_source(stack, expected_source, expected_location, rows)
            if verified is None or expected is None:
                return finish(False)

            shape_rows, shape_ok = compare_shape(verified, expected)
            rows.extend(shape_rows)
            if not shape_ok:
                return finish(False)

            all_ok = True
            for band in range(1, expected.band_count + 1):
                band_rows, band_ok = self._compare_band(band, verified, expected)
                rows.extend(band_rows)
                all_ok = all_ok and band_ok

            return finish(all_ok)

    def _open_source(
        self, stack: ExitStack, source_type: str, location: str, rows: Rows
    ) -> Optional[RasterSource]:
        try:
            source = self.opener(source_type, location)
        except OpenError as exc:
            logger.error("%s", exc)
            rows.append(_open_error_row(exc))
            return None

        stack.callback(source.close)
        if not source.is_valid():
            exc = OpenError(source_type, location, "source is not valid")
            logger.error("%s", exc)
            rows.append(_open_error_row(exc))
            return None
        return source

    def _compare_band(
        self, band: int, verified: RasterSource, expected: RasterSource
    ) -> Tuple[Rows, bool]:
        section = band_section(band)
        verified_info = verified.band(band)
        expected_info = expected.band(band)

        type_rows, types_ok = compare_types(section, verified_info, expected_info)
        nodata_rows, nodata_ok = compare_nodata(section, verified_info, expected_info)
        stats_rows, stats_ok = compare_statistics(
            section, verified_info, expected_info, self.places, self.std_dev_places
        )
        rows = type_rows + nodata_rows + stats_rows
        # A field failure still lets the pixel table be built.
        band_ok = types_ok and nodata_ok and stats_ok

        width, height = expected.width, expected.height
        expected_block = expected.read_block(band, expected.extent, width, height)
        verified_block = verified.read_block(band, expected.extent, width, height)
        if not (_usable(expected_block, width, height) and _usable(verified_block, width, height)):
            rows.append(
                ReportRow(
                    section=section,
                    label="Data comparison",
                    verified="" if _usable(verified_block, width, height) else "cannot read raster block",
                    expected="" if _usable(expected_block, width, height) else "cannot read raster block",
                    ok=False,
                    kind="notice",
                    failure=FailureKind.BLOCK_READ_ERROR,
                )
            )
            logger.debug("%s: cannot read raster block", section)
            return rows, False

        pixel_rows, pixels_ok = compare_pixels(section, verified_block, expected_block)
        rows.extend(pixel_rows)
        logger.debug(
            "%s: types %s, nodata %s, statistics %s, pixels %s",
            section,
            types_ok,
            nodata_ok,
            stats_ok,
            pixels_ok,
        )
        return rows, band_ok and pixels_ok


def _open_error_row(exc: OpenError) -> ReportRow:
    return ReportRow(
        section=METADATA_SECTION,
        label="Error",
        verified=str(exc),
        expected="",
        ok=False,
        kind="error",
        failure=FailureKind.OPEN_ERROR,
    )


def check_rasters(
    verified_source: str,
    verified_location: str | Path,
    expected_source: str,
    expected_location: str | Path,
    places: int = DEFAULT_PLACES,
    std_dev_places: int = STD_DEV_PLACES,
) -> ComparisonResult:
    """Run a single check with the rasterio provider."""
    checker = RasterChecker(places=places, std_dev_places=std_dev_places)
    return checker.run_test(verified_source, verified_location, expected_source, expected_location)
