"""Structured outcome of a raster check: report rows and the pass flag."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

METADATA_SECTION = "Metadata"


class FailureKind(Enum):
    OPEN_ERROR = "open_error"
    SHAPE_MISMATCH = "shape_mismatch"
    FIELD_MISMATCH = "field_mismatch"
    BLOCK_READ_ERROR = "block_read_error"
    PIXEL_MISMATCH = "pixel_mismatch"

    @property
    def terminal(self) -> bool:
        """Terminal failures stop the run; the others only flip the verdict."""
        return self in (FailureKind.OPEN_ERROR, FailureKind.SHAPE_MISMATCH)


def format_number(value: float | int | None) -> str:
    """Format like a 6 significant digit ``%g``; integers verbatim."""
    if value is None:
        return ""
    if isinstance(value, (bool, int)):
        return str(int(value))
    if math.isnan(value):
        return "nan"
    return f"{value:g}"


def band_section(band: int) -> str:
    return f"Band {band}"


@dataclass(frozen=True)
class ReportRow:
    section: str
    label: str
    verified: str
    expected: str
    ok: bool
    difference: Optional[str] = None
    tolerance: Optional[str] = None
    kind: str = "field"
    cell: Optional[Tuple[int, int]] = None
    failure: Optional[FailureKind] = None

    def to_record(self) -> Dict[str, Any]:
        record = asdict(self)
        record["failure"] = self.failure.value if self.failure else None
        record["row"], record["col"] = self.cell if self.cell else (None, None)
        del record["cell"]
        return record


@dataclass(frozen=True)
class ComparisonResult:
    """
    Aggregate outcome of one ``RasterChecker.run_test`` call.

    ``passed`` is False exactly when at least one row failed; this is
    checked on construction.
    """

    passed: bool
    rows: Tuple[ReportRow, ...] = field(default_factory=tuple)
    verified_location: str = ""
    expected_location: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "rows", tuple(self.rows))
        has_failures = any(not row.ok for row in self.rows)
        if self.passed == has_failures:
            raise ValueError(
                f"passed={self.passed} disagrees with the report "
                f"({'some' if has_failures else 'no'} failing rows)."
            )

    @property
    def failures(self) -> List[ReportRow]:
        return [row for row in self.rows if not row.ok]

    @property
    def terminal_failure(self) -> Optional[FailureKind]:
        for row in self.rows:
            if row.failure is not None and row.failure.terminal:
                return row.failure
        return None

    def sections(self) -> List[str]:
        """Section names in report order."""
        seen: List[str] = []
        for row in self.rows:
            if row.section not in seen:
                seen.append(row.section)
        return seen

    def rows_for(self, section: str, kind: Optional[str] = None) -> List[ReportRow]:
        return [
            row
            for row in self.rows
            if row.section == section and (kind is None or row.kind == kind)
        ]

    def pixel_rows(self, band: int) -> List[ReportRow]:
        return self.rows_for(band_section(band), kind="pixel")

    def to_records(self) -> List[Dict[str, Any]]:
        return [row.to_record() for row in self.rows]
