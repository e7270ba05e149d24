# tests/conftest.py

from typing import Dict

import numpy as np
import pytest
import rasterio
from rasterio.transform import from_origin

from raster_checker.core import RasterChecker
from raster_checker.exceptions import OpenError
from tests.fixtures.fake_sources import FakeSource


@pytest.fixture
def fake_sources() -> Dict[str, FakeSource]:
    """Location -> FakeSource registry consulted by ``fake_checker``."""
    return {}


@pytest.fixture
def fake_checker(fake_sources):
    """RasterChecker whose opener serves ``fake_sources`` by location."""

    def opener(source_type, location):
        if location not in fake_sources:
            raise OpenError(source_type, location, "no such fake source")
        return fake_sources[location]

    return RasterChecker(opener=opener)


@pytest.fixture
def write_raster(tmp_path):
    """
    Factory fixture: writes a GeoTIFF from a (bands, rows, cols) or
    (rows, cols) array into tmp_path and returns its path.
    """

    def _write(
        name,
        data,
        dtype="float32",
        nodata=None,
        origin=(0.0, 10.0),
        pixel_size=1.0,
        scale=None,
        tags=None,
    ):
        arr = np.asarray(data)
        if arr.ndim == 2:
            arr = arr[np.newaxis, ...]
        path = tmp_path / name
        profile = {
            "driver": "GTiff",
            "height": arr.shape[1],
            "width": arr.shape[2],
            "count": arr.shape[0],
            "dtype": dtype,
            "crs": "EPSG:32633",
            "transform": from_origin(origin[0], origin[1], pixel_size, pixel_size),
            "nodata": nodata,
        }
        with rasterio.open(path, "w", **profile) as dst:
            dst.write(arr.astype(dtype))
            if scale is not None:
                dst.scales = [scale] * arr.shape[0]
            if tags:
                for bidx in range(1, arr.shape[0] + 1):
                    dst.update_tags(bidx, **tags)
        return path

    return _write
