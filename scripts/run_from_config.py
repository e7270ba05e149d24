from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from pprint import pformat
from typing import List

from raster_checker.config import CheckConfig, load_config, resolve_check_config
from raster_checker.core import RasterChecker
from raster_checker.exceptions import RasterCheckError
from raster_checker.log_helpers import setup_logger, shutdown_logger
from raster_checker.report import (
    render_text,
    write_excel_report,
    write_html_report,
    write_json_csv_report,
)
from raster_checker.result import ComparisonResult

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    description = "Run a batch of raster checks from a YAML config."
    examples = """Examples:
  python -m scripts.run_from_config --config config/workspace.yml
"""
    parser = argparse.ArgumentParser(
        description=description,
        epilog=examples,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        required=True,
        help="Path to YAML config file (workspace YAML).",
    )
    parser.add_argument("--log-file", default=None, help="Also log to this file")
    parser.add_argument("--verbose", action="store_true", help="Log per-band details")
    return parser.parse_args()


def write_reports(check: CheckConfig, result: ComparisonResult) -> List[Path]:
    report_dir = check.outdir / "report"
    outputs: List[Path] = []
    if check.html:
        outputs.append(write_html_report(result, report_dir / f"{check.name}_check_report.html"))
    if check.json:
        outputs.extend(write_json_csv_report(result, check.outdir, check.name))
    if check.excel:
        outputs.append(write_excel_report(result, report_dir / f"{check.name}_check_report.xlsx"))
    return outputs


def run_check(check: CheckConfig) -> ComparisonResult:
    logger.info("Resolved configuration:")
    logger.info(pformat(check))

    checker = RasterChecker(places=check.places, std_dev_places=check.std_dev_places)
    result = checker.run_test(
        check.verified.source,
        check.verified.location,
        check.expected.source,
        check.expected.location,
    )
    logger.info(render_text(result))

    outputs = write_reports(check, result)
    if outputs:
        logger.info("Generated outputs:")
        for path in outputs:
            logger.info(f"- {path}")
    return result


def main() -> int:
    args = parse_args()
    root_logger = setup_logger(args.log_file, logging.DEBUG if args.verbose else logging.INFO)

    try:
        checks = resolve_check_config(load_config(Path(args.config)))
        failed = [check.name for check in checks if not run_check(check).passed]
    except (RasterCheckError, OSError, ValueError) as exc:
        logger.error(f"Raster checks could not run: {exc}")
        return 2
    finally:
        shutdown_logger(root_logger)

    # Logger handlers are gone at this point.
    if failed:
        print("\nRASTER CHECK FAILURES:")
        for name in failed:
            print("-", name)
        return 1

    print(f"\nAll {len(checks)} raster checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
