from __future__ import annotations

import json
from html import escape
from pathlib import Path
from typing import Dict, List, Tuple

import pandas as pd
from openpyxl import load_workbook
from openpyxl.styles import Alignment, Font, PatternFill

from .result import METADATA_SECTION, ComparisonResult, ReportRow

TABLE_STYLE = "border-spacing: 0px; border-width: 1px 1px 0 0; border-style: solid;"
CELL_STYLE = (
    "border-width: 0 0 1px 1px; border-style: solid; font-size: smaller; text-align: center;"
)
OK_STYLE = "background: #00ff00;"
ERR_STYLE = "background: #ff0000;"
ERR_MSG_STYLE = "color: #ff0000;"

FIELD_COLUMNS = ["section", "label", "verified", "expected", "ok", "difference", "tolerance", "failure"]
PIXEL_COLUMNS = ["section", "row", "col", "verified", "expected", "ok", "difference"]

FAIL_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")


def _head() -> str:
    cells = "".join(
        f"<th style='{CELL_STYLE}'>{name}</th>"
        for name in ("Param name", "Verified value", "Expected value", "Difference", "Tolerance")
    )
    return f"<tr>{cells}</tr>\n"


def _field_row(row: ReportRow) -> str:
    status = OK_STYLE if row.ok else ERR_STYLE
    return (
        "<tr>\n"
        f"<td style='{CELL_STYLE}'>{escape(row.label)}</td>"
        f"<td style='{CELL_STYLE} {status}'>{escape(row.verified)}</td>"
        f"<td style='{CELL_STYLE}'>{escape(row.expected)}</td>\n"
        f"<td style='{CELL_STYLE}'>{escape(row.difference or '')}</td>\n"
        f"<td style='{CELL_STYLE}'>{escape(row.tolerance or '')}</td>\n"
        "</tr>"
    )


def _error(message: str) -> str:
    return f"<font style='{ERR_MSG_STYLE}'>Error: {escape(message)}</font>"


def _legend() -> str:
    return (
        "<table><tr>"
        "<td>Data comparison</td>"
        f"<td style='{CELL_STYLE} {OK_STYLE} border: 1px solid'>correct&nbsp;value</td>"
        "<td></td>"
        f"<td style='{CELL_STYLE} {ERR_STYLE} border: 1px solid'>wrong&nbsp;value<br>expected value</td>"
        "</tr></table><br>"
    )


def _pixel_grid(pixels: List[ReportRow]) -> str:
    grid: Dict[Tuple[int, int], ReportRow] = {row.cell: row for row in pixels if row.cell}
    height = max(r for r, _ in grid) + 1
    width = max(c for _, c in grid) + 1

    html = [f"<table style='{TABLE_STYLE}'>"]
    for r in range(height):
        html.append("<tr>")
        for c in range(width):
            cell = grid.get((r, c))
            if cell is None:
                html.append(f"<td style='{CELL_STYLE}'></td>")
                continue
            if cell.ok:
                value = escape(cell.verified)
            else:
                value = f"{escape(cell.verified)}<br>{escape(cell.expected)}"
            status = OK_STYLE if cell.ok else ERR_STYLE
            html.append(f"<td style='{CELL_STYLE} {status}'>{value}</td>")
        html.append("</tr>")
    html.append("</table>")
    return "".join(html)


def render_html(result: ComparisonResult) -> str:
    """
    Render a check result as an HTML fragment.

    Metadata and band fields become five-column tables; pixel values become
    a grid of green (correct) and red (wrong, showing verified and
    expected) cells.
    """
    parts = ["\n\n"]
    errors = [row for row in result.rows if row.kind == "error"]
    for row in errors:
        parts.append(_error(row.verified))
    if errors:
        return "".join(parts)

    parts.append(f"Verified URI: {escape(result.verified_location)}<br>")
    parts.append(f"Expected URI: {escape(result.expected_location)}<br>")
    parts.append("<br>")

    for section in result.sections():
        fields = result.rows_for(section, kind="field")
        if section != METADATA_SECTION:
            parts.append(f"<h3>{escape(section)}</h3>\n")
        parts.append(f"<table style='{TABLE_STYLE}'>\n")
        parts.append(_head())
        parts.extend(_field_row(row) for row in fields)
        parts.append("</table>\n")
        if section == METADATA_SECTION:
            continue

        parts.append("<br>")
        parts.append(_legend())
        notices = result.rows_for(section, kind="notice")
        if notices:
            parts.append("cannot read raster block")
            continue
        pixels = result.rows_for(section, kind="pixel")
        if pixels:
            parts.append(_pixel_grid(pixels))

    return "".join(parts)


def render_text(result: ComparisonResult) -> str:
    """Plain-text summary: verdict, sources and every failing row."""
    lines = [
        f"Raster check {'PASSED' if result.passed else 'FAILED'}",
        f"Verified: {result.verified_location}",
        f"Expected: {result.expected_location}",
    ]
    failures = result.failures
    if failures:
        lines.append(f"{len(failures)} failing row(s):")
    for row in failures:
        detail = f"verified={row.verified} expected={row.expected}"
        if row.difference is not None:
            detail += f" difference={row.difference}"
        if row.tolerance is not None:
            detail += f" tolerance={row.tolerance}"
        lines.append(f"- [{row.section}] {row.label}: {detail}")
    return "\n".join(lines)


def result_to_dataframe(result: ComparisonResult) -> pd.DataFrame:
    records = result.to_records()
    columns = list(ReportRow.__dataclass_fields__)
    columns = [c for c in columns if c != "cell"] + ["row", "col"]
    return pd.DataFrame(records, columns=columns)


def _summary_frame(result: ComparisonResult) -> pd.DataFrame:
    terminal = result.terminal_failure
    return pd.DataFrame(
        [
            {"key": "passed", "value": result.passed},
            {"key": "verified", "value": result.verified_location},
            {"key": "expected", "value": result.expected_location},
            {"key": "rows", "value": len(result.rows)},
            {"key": "failing_rows", "value": len(result.failures)},
            {"key": "terminal_failure", "value": terminal.value if terminal else None},
        ],
        columns=["key", "value"],
    )


def write_html_report(result: ComparisonResult, out_html: Path) -> Path:
    out_html = Path(out_html)
    out_html.parent.mkdir(parents=True, exist_ok=True)
    out_html.write_text(
        "<html><body>" + render_html(result) + "</body></html>\n", encoding="utf-8"
    )
    return out_html


def write_json_csv_report(result: ComparisonResult, outdir: Path, name: str) -> Tuple[Path, Path]:
    """
    Write ``<name>_check_report.json`` (summary and failing rows) and
    ``<name>_check_report.csv`` (every row) into ``outdir/report``.
    """
    report_dir = Path(outdir) / "report"
    report_dir.mkdir(parents=True, exist_ok=True)
    json_path = report_dir / f"{name}_check_report.json"
    csv_path = report_dir / f"{name}_check_report.csv"

    payload = {
        "passed": result.passed,
        "verified": result.verified_location,
        "expected": result.expected_location,
        "row_count": len(result.rows),
        "failures": [row.to_record() for row in result.failures],
    }
    json_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    result_to_dataframe(result).to_csv(csv_path, index=False)
    return json_path, csv_path


def write_excel_report(result: ComparisonResult, out_xlsx: Path) -> Path:
    """
    Create an Excel file with:
      - Summary
      - Fields
      - Pixels
    """
    out_xlsx = Path(out_xlsx)
    out_xlsx.parent.mkdir(parents=True, exist_ok=True)

    df = result_to_dataframe(result)
    fields_df = df[df["kind"] != "pixel"][FIELD_COLUMNS]
    pixels_df = df[df["kind"] == "pixel"][PIXEL_COLUMNS]

    with pd.ExcelWriter(out_xlsx, engine="openpyxl") as writer:
        _summary_frame(result).to_excel(writer, sheet_name="Summary", index=False)
        fields_df.to_excel(writer, sheet_name="Fields", index=False)
        pixels_df.to_excel(writer, sheet_name="Pixels", index=False)

    # Light formatting
    wb = load_workbook(out_xlsx)
    for ws in wb.worksheets:
        for cell in ws[1]:
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal="center")
        ws.freeze_panes = "A2"

        header = [c.value for c in ws[1]]
        if "ok" in header:
            ok_col = header.index("ok") + 1
            for row in range(2, ws.max_row + 1):
                if ws.cell(row=row, column=ok_col).value is False:
                    for col in range(1, ws.max_column + 1):
                        ws.cell(row=row, column=col).fill = FAIL_FILL

        for col in ws.columns:
            col_letter = col[0].column_letter
            max_len = 0
            for c in col:
                if c.value is None:
                    continue
                max_len = max(max_len, len(str(c.value)))
            ws.column_dimensions[col_letter].width = min(max_len + 2, 60)

    wb.save(out_xlsx)
    return out_xlsx
