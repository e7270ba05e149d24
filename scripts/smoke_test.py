from __future__ import annotations

import tempfile
from pathlib import Path

import numpy as np
import rasterio
from rasterio.transform import from_origin

from raster_checker.config import resolve_check_config
from scripts.run_from_config import run_check


def _write_raster(path: Path, data: np.ndarray) -> None:
    transform = from_origin(0.0, 10.0, 1.0, 1.0)
    profile = {
        "driver": "GTiff",
        "height": data.shape[0],
        "width": data.shape[1],
        "count": 1,
        "dtype": "float32",
        "crs": "EPSG:32633",
        "transform": transform,
        "nodata": -9999.0,
    }
    with rasterio.open(path, "w", **profile) as dst:
        dst.write(data.astype(np.float32), 1)


def main() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        tmp_path = Path(tmpdir)
        expected = tmp_path / "expected.tif"
        same = tmp_path / "same.tif"
        changed = tmp_path / "changed.tif"
        outdir = tmp_path / "outputs"

        data = np.arange(9, dtype=np.float32).reshape(3, 3)
        _write_raster(expected, data)
        _write_raster(same, data)
        data[1, 1] = 42.0
        _write_raster(changed, data)

        raw_config = {
            "outdir": str(outdir),
            "excel": True,
            "checks": [
                {"name": "same", "verified": str(same), "expected": str(expected)},
                {"name": "changed", "verified": str(changed), "expected": str(expected)},
            ],
        }

        same_check, changed_check = resolve_check_config(raw_config)
        if not run_check(same_check).passed:
            raise AssertionError("Identical rasters failed the check")
        if run_check(changed_check).passed:
            raise AssertionError("Changed raster passed the check")

        expected_outputs = [
            outdir / "report" / f"{name}_check_report.{ext}"
            for name in ("same", "changed")
            for ext in ("html", "json", "csv", "xlsx")
        ]

        missing = [path for path in expected_outputs if not path.exists()]
        if missing:
            missing_list = "\n".join(str(path) for path in missing)
            raise FileNotFoundError(f"Smoke test outputs missing:\n{missing_list}")

    print("smoke_test ok")


if __name__ == "__main__":
    main()
