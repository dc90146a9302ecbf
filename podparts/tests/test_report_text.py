import pytest

from podparts.domain.reconciliation import build_discrepancy_report
from podparts.domain.report_text import parse_report_summary, render_report_text


def _report():
    units = [
        {"security_barcode": "A1", "status": "in_stock", "product_name": "Left bud",
         "generation": "Pro 2nd Gen", "part_type": "left", "tracking_number": None},
        {"security_barcode": "B2", "status": "in_stock", "product_name": "Case",
         "generation": "3rd Gen", "part_type": "case", "tracking_number": None},
        {"security_barcode": "C3", "status": "returned", "product_name": "Right bud",
         "generation": "3rd Gen", "part_type": "right", "tracking_number": None},
    ]
    scans = [
        {"security_barcode": "A1", "scanned_at": "2026-10-01T09:00:00",
         "found_in_database": True, "status": "in_stock"},
        {"security_barcode": "C3", "scanned_at": "2026-10-01T09:01:00",
         "found_in_database": True, "status": "returned"},
        {"security_barcode": "ZZ9", "scanned_at": "2026-10-01T09:02:00",
         "found_in_database": False, "status": None},
    ]
    return build_discrepancy_report(units, scans, generated_at="2026-10-01T09:05:00")


def test_summary_survives_rendering():
    report = _report()
    text = render_report_text(report, title="Shelf A")
    assert parse_report_summary(text) == report["summary"]


def test_rendering_is_repeatable():
    report = _report()
    resolutions = {"B2": {"resolution_status": "investigated", "notes": "on bench"}}
    assert render_report_text(report, resolutions, "Shelf A") == render_report_text(
        report, resolutions, "Shelf A"
    )


def test_sections_and_resolutions():
    text = render_report_text(
        _report(),
        {"B2": {"resolution_status": "written-off", "notes": "lost in transit"}},
        title="Shelf A",
    )
    lines = text.splitlines()

    assert lines[0] == "STOCK TAKE REPORT"
    assert "Name: Shelf A" in lines
    assert "Generated: 2026-10-01T09:05:00" in lines
    assert "Accuracy: 50.00%" in lines
    assert "MISSING ITEMS (1)" in lines
    assert "UNKNOWN BARCODES (1)" in lines
    assert "WRONG STATUS ITEMS (1)" in lines

    idx = lines.index("- B2 | Case | 3rd Gen | case | status: in_stock")
    assert lines[idx + 1] == "    Resolution: written-off - lost in transit"
    assert "status: returned" in text
    assert "No discrepancies found" not in text


def test_clean_report_message():
    report = build_discrepancy_report(
        [{"security_barcode": "A1", "status": "in_stock"}],
        [{"security_barcode": "A1", "found_in_database": True, "status": "in_stock"}],
    )
    text = render_report_text(report)
    assert "No discrepancies found. All items are accounted for." in text
    assert "Accuracy: 100.00%" in text


def test_parse_rejects_incomplete_summary():
    with pytest.raises(ValueError):
        parse_report_summary("SUMMARY\n-------\nTotal scanned: 3\n")


def test_resolutions_outside_the_lists_are_rendered_in_order():
    resolutions = {
        "X8": {"resolution_status": "investigated", "discrepancy_type": "unknown"},
        "ZZ9": {"resolution_status": "resolved"},
        "Q7": {"resolution_status": "resolved", "notes": "back from repair",
               "discrepancy_type": "missing"},
        "M5": {"resolution_status": "pending"},
        "B2": {"resolution_status": "written-off"},
    }
    text = render_report_text(_report(), resolutions, title="Shelf A")
    lines = text.splitlines()

    start = lines.index("OTHER RESOLUTIONS (3)")
    assert lines[start + 3:] == [
        "- M5",
        "    Resolution: pending",
        "- Q7 | missing",
        "    Resolution: resolved - back from repair",
        "- X8 | unknown",
        "    Resolution: investigated",
    ]
    assert parse_report_summary(text) == _report()["summary"]
