from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from raster_checker.core import RasterChecker
from raster_checker.exceptions import RasterCheckError
from raster_checker.log_helpers import setup_logger, shutdown_logger
from raster_checker.report import (
    render_text,
    write_excel_report,
    write_html_report,
    write_json_csv_report,
)
from raster_checker.tolerance import DEFAULT_PLACES, STD_DEV_PLACES

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Check that a verified raster reproduces an expected raster."
    )
    parser.add_argument("--verified", required=True, help="Location of the raster under test")
    parser.add_argument("--expected", required=True, help="Location of the reference raster")
    parser.add_argument(
        "--verified-source",
        default="gdal",
        help="Backend for the verified raster: 'gdal' or a GDAL driver name (default: gdal)",
    )
    parser.add_argument(
        "--expected-source",
        default="gdal",
        help="Backend for the expected raster: 'gdal' or a GDAL driver name (default: gdal)",
    )
    parser.add_argument(
        "--places",
        type=int,
        default=DEFAULT_PLACES,
        help=f"Significant digits for min/max/mean (default: {DEFAULT_PLACES})",
    )
    parser.add_argument(
        "--std-dev-places",
        type=int,
        default=STD_DEV_PLACES,
        help=f"Significant digits for the standard deviation (default: {STD_DEV_PLACES})",
    )
    parser.add_argument("--outdir", default="outputs", help="Output directory for reports")
    parser.add_argument("--name", default="check", help="Output name prefix")
    parser.add_argument("--html", action="store_true", help="Write an HTML report")
    parser.add_argument("--excel", action="store_true", help="Write an Excel report")
    parser.add_argument("--json", action="store_true", help="Write JSON/CSV reports")
    parser.add_argument("--log-file", default=None, help="Also log to this file")
    parser.add_argument("--verbose", action="store_true", help="Log per-band details")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    root_logger = setup_logger(args.log_file, logging.DEBUG if args.verbose else logging.INFO)

    try:
        checker = RasterChecker(places=args.places, std_dev_places=args.std_dev_places)
        result = checker.run_test(
            args.verified_source, args.verified, args.expected_source, args.expected
        )

        outdir = Path(args.outdir)
        outputs = []
        if args.html:
            outputs.append(write_html_report(result, outdir / "report" / f"{args.name}_check_report.html"))
        if args.json:
            outputs.extend(write_json_csv_report(result, outdir, args.name))
        if args.excel:
            outputs.append(write_excel_report(result, outdir / "report" / f"{args.name}_check_report.xlsx"))

        logger.info(render_text(result))
        if outputs:
            logger.info("Generated outputs:")
            for path in outputs:
                logger.info(f"- {path}")
        return 0 if result.passed else 1
    except (RasterCheckError, OSError, ValueError) as exc:
        logger.error(f"Raster check could not run: {exc}")
        return 2
    finally:
        shutdown_logger(root_logger)


if __name__ == "__main__":
    sys.exit(main())
