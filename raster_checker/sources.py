"""Raster source provider backed by rasterio."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
import rasterio
from rasterio.coords import BoundingBox
from rasterio.dtypes import dtype_rev, typename_fwd
from rasterio.enums import Resampling
from rasterio.errors import RasterioError
from rasterio.windows import from_bounds

from .exceptions import OpenError

logger = logging.getLogger(__name__)

# Source types that let GDAL pick the driver itself.
AUTO_DETECT_SOURCES = {"", "gdal", "rasterio"}

STATISTICS_TAGS = (
    "STATISTICS_MINIMUM",
    "STATISTICS_MAXIMUM",
    "STATISTICS_MEAN",
    "STATISTICS_STDDEV",
)

FLOAT64_TYPE = dtype_rev["float64"]


def gdal_type_name(type_code: int) -> str:
    return typename_fwd.get(type_code, "Unknown")


@dataclass(frozen=True)
class BandStatistics:
    minimum: float
    maximum: float
    mean: float
    std_dev: float

    @classmethod
    def unavailable(cls) -> "BandStatistics":
        return cls(math.nan, math.nan, math.nan, math.nan)


@dataclass(frozen=True)
class BandInfo:
    index: int
    source_data_type: int
    data_type: int
    has_nodata: bool
    nodata: Optional[float]
    statistics: BandStatistics

    @property
    def source_data_type_name(self) -> str:
        return gdal_type_name(self.source_data_type)

    @property
    def data_type_name(self) -> str:
        return gdal_type_name(self.data_type)


class PixelBlock:
    """A 2D grid of float64 pixel values; nodata and unreadable cells are NaN."""

    def __init__(self, values: np.ndarray) -> None:
        self.values = np.asarray(values, dtype=np.float64)

    @property
    def height(self) -> int:
        return int(self.values.shape[0]) if self.values.ndim == 2 else 0

    @property
    def width(self) -> int:
        return int(self.values.shape[1]) if self.values.ndim == 2 else 0

    def is_valid(self) -> bool:
        return self.values.ndim == 2 and self.values.size > 0

    def value_at(self, row: int, col: int) -> float:
        return float(self.values[row, col])


class RasterSource:
    """
    An opened raster dataset exposing what the checker compares.

    Use as a context manager, or call ``close()`` explicitly.
    """

    def __init__(self, dataset, source_type: str = "gdal", location: str = "") -> None:
        self._dataset = dataset
        self.source_type = source_type
        self.location = location

    def __enter__(self) -> "RasterSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if not self._dataset.closed:
            self._dataset.close()
            logger.debug("Closed %s", self.location)

    def is_valid(self) -> bool:
        ds = self._dataset
        return not ds.closed and ds.count > 0 and ds.width > 0 and ds.height > 0

    @property
    def band_count(self) -> int:
        return self._dataset.count

    @property
    def width(self) -> int:
        return self._dataset.width

    @property
    def height(self) -> int:
        return self._dataset.height

    @property
    def extent(self) -> BoundingBox:
        return self._dataset.bounds

    def _scale_offset(self, index: int) -> Tuple[float, float]:
        return self._dataset.scales[index - 1], self._dataset.offsets[index - 1]

    def band(self, index: int) -> BandInfo:
        """
        Describe band ``index`` (1-based).

        The data type is the type of the values handed out by
        ``read_block``: Float64 when the band is scaled, else the stored type.
        """
        ds = self._dataset
        source_type = dtype_rev[ds.dtypes[index - 1]]
        scale, offset = self._scale_offset(index)
        data_type = source_type if (scale, offset) == (1.0, 0.0) else FLOAT64_TYPE
        nodata = ds.nodatavals[index - 1]
        return BandInfo(
            index=index,
            source_data_type=source_type,
            data_type=data_type,
            has_nodata=nodata is not None,
            nodata=float(nodata) if nodata is not None else None,
            statistics=self._band_statistics(index),
        )

    def _band_statistics(self, index: int) -> BandStatistics:
        tags = self._dataset.tags(index)
        if all(key in tags for key in STATISTICS_TAGS):
            try:
                return BandStatistics(*(float(tags[key]) for key in STATISTICS_TAGS))
            except ValueError:
                logger.debug("Unparsable statistics tags on band %d of %s", index, self.location)

        try:
            stats = self._dataset.stats(indexes=index)[0]
        except RasterioError as exc:
            logger.warning("No statistics for band %d of %s: %s", index, self.location, exc)
            return BandStatistics.unavailable()
        return BandStatistics(
            minimum=float(stats.min),
            maximum=float(stats.max),
            mean=float(stats.mean),
            std_dev=float(stats.std),
        )

    def read_block(
        self, band: int, extent: BoundingBox, width: int, height: int
    ) -> Optional[PixelBlock]:
        """
        Read ``extent`` of ``band`` resampled to ``height`` x ``width`` cells.

        Returns None when the block cannot be read.
        """
        ds = self._dataset
        window = None
        if tuple(extent) != tuple(ds.bounds):
            window = from_bounds(*extent, transform=ds.transform)

        try:
            data = ds.read(
                band,
                window=window,
                out_shape=(height, width),
                masked=True,
                resampling=Resampling.nearest,
            )
        except (RasterioError, ValueError) as exc:
            logger.warning("Cannot read band %d of %s: %s", band, self.location, exc)
            return None

        values = np.ma.filled(data.astype(np.float64), np.nan)
        scale, offset = self._scale_offset(band)
        if (scale, offset) != (1.0, 0.0):
            values = values * scale + offset
        return PixelBlock(values)


def open_source(source_type: str, location: str | Path) -> RasterSource:
    """
    Open a raster source.

    Parameters
    ----------
    source_type : str
        ``"gdal"`` lets GDAL detect the format; anything else is taken as
        a GDAL short driver name (e.g. ``"GTiff"``, ``"WCS"``).
    location : str | Path
        Path, URL or connection string understood by the driver.

    Returns
    -------
    RasterSource
        The opened source. The caller owns it and must close it.

    Raises
    ------
    OpenError
        When the location cannot be opened or holds no usable raster.
    """
    location = str(location)
    kwargs = {}
    if source_type.lower() not in AUTO_DETECT_SOURCES:
        kwargs["driver"] = source_type

    try:
        dataset = rasterio.open(location, **kwargs)
    except (RasterioError, OSError, ValueError) as exc:
        raise OpenError(source_type, location, str(exc)) from exc

    source = RasterSource(dataset, source_type, location)
    if not source.is_valid():
        source.close()
        raise OpenError(source_type, location, "dataset has no bands or no pixels")
    logger.debug("Opened %s (%s)", location, source_type)
    return source
