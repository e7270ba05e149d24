# tests/test_report.py

import json

import numpy as np
import pandas as pd
from openpyxl import load_workbook

from raster_checker.report import (
    render_html,
    render_text,
    result_to_dataframe,
    write_excel_report,
    write_html_report,
    write_json_csv_report,
)
from tests.fixtures import single_band


def _mismatch_result(fake_checker, fake_sources):
    fake_sources["v&1"] = single_band(np.array([[1.0, 5.0]]))
    fake_sources["e<2>"] = single_band(np.array([[1.0, 7.0]]))
    return fake_checker.run_test("gdal", "v&1", "gdal", "e<2>")


def test_html_layout(fake_checker, fake_sources):
    result = _mismatch_result(fake_checker, fake_sources)
    html = render_html(result)

    assert "Verified URI: v&amp;1<br>" in html
    assert "Expected URI: e&lt;2&gt;<br>" in html
    assert "<h3>Band 1</h3>" in html
    assert "Param name" in html
    assert "correct&nbsp;value" in html
    assert "5<br>7" in html
    assert "background: #ff0000;" in html
    assert "background: #00ff00;" in html


def test_html_open_error(fake_checker):
    result = fake_checker.run_test("gdal", "nowhere", "gdal", "nowhere")
    html = render_html(result)

    assert html.count("Error: Cannot load provider gdal") == 2
    assert "<table" not in html


def test_html_block_read_notice(fake_checker, fake_sources):
    source = single_band(np.array([[1.0]]))
    source._unreadable.add(1)
    fake_sources["v"] = source
    fake_sources["e"] = single_band(np.array([[1.0]]))

    html = render_html(fake_checker.run_test("gdal", "v", "gdal", "e"))

    assert "cannot read raster block" in html


def test_render_text_lists_failures(fake_checker, fake_sources):
    result = _mismatch_result(fake_checker, fake_sources)
    text = render_text(result)

    assert text.startswith("Raster check FAILED")
    assert "[Band 1] Pixel (0, 1): verified=5 expected=7 difference=-2" in text


def test_render_text_passed(fake_checker, fake_sources):
    fake_sources["a"] = single_band(np.array([[1.0]]))
    text = render_text(fake_checker.run_test("gdal", "a", "gdal", "a"))
    assert text.splitlines()[0] == "Raster check PASSED"
    assert "failing row" not in text


def test_dataframe_has_one_row_per_report_row(fake_checker, fake_sources):
    result = _mismatch_result(fake_checker, fake_sources)
    df = result_to_dataframe(result)

    assert len(df) == len(result.rows)
    assert {"section", "label", "ok", "row", "col", "failure"} <= set(df.columns)
    pixels = df[df["kind"] == "pixel"]
    assert pixels["ok"].tolist() == [True, False]


def test_write_json_csv_report(fake_checker, fake_sources, tmp_path):
    result = _mismatch_result(fake_checker, fake_sources)
    json_path, csv_path = write_json_csv_report(result, tmp_path, "demo")

    payload = json.loads(json_path.read_text(encoding="utf-8"))
    assert payload["passed"] is False
    assert payload["row_count"] == len(result.rows)
    assert any(f["failure"] == "pixel_mismatch" for f in payload["failures"])
    assert len(pd.read_csv(csv_path)) == len(result.rows)


def test_write_excel_report(fake_checker, fake_sources, tmp_path):
    result = _mismatch_result(fake_checker, fake_sources)
    out = write_excel_report(result, tmp_path / "report" / "demo.xlsx")

    wb = load_workbook(out)
    assert wb.sheetnames == ["Summary", "Fields", "Pixels"]
    pixels = wb["Pixels"]
    assert pixels.max_row == 3
    assert pixels["A1"].font.bold
    assert pixels.freeze_panes == "A2"


def test_write_html_report(fake_checker, fake_sources, tmp_path):
    result = _mismatch_result(fake_checker, fake_sources)
    out = write_html_report(result, tmp_path / "nested" / "demo.html")
    text = out.read_text(encoding="utf-8")
    assert text.startswith("<html><body>")
    assert "<h3>Band 1</h3>" in text
