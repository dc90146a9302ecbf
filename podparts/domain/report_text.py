"""Plain-text rendering of stock take reports for download."""
from __future__ import annotations

import re
from typing import Dict, List, Mapping, Optional

# (summary key, label) in rendering order
SUMMARY_LINES = (
    ("total_scanned", "Total scanned"),
    ("expected_in_stock", "Expected in stock"),
    ("found_items", "Found items"),
    ("missing_items_count", "Missing items"),
    ("unknown_items_count", "Unknown items"),
    ("wrong_status_count", "Wrong status items"),
    ("accuracy_percentage", "Accuracy"),
)

_SECTIONS = (
    ("missing_items", "MISSING ITEMS", "In stock according to the system but not scanned."),
    ("unknown_items", "UNKNOWN BARCODES", "Scanned but not registered in the system."),
    ("wrong_status_items", "WRONG STATUS ITEMS", "Scanned but their status is not in stock."),
)

_SUMMARY_RE = re.compile(r"^(?P<label>[A-Za-z ]+):\s+(?P<value>[0-9.]+)%?$")


def _heading(text: str, underline: str = "-") -> List[str]:
    return [text, underline * len(text)]


def _describe(item: Mapping) -> str:
    parts = [item["security_barcode"]]
    for field in ("product_name", "generation", "part_type"):
        if item.get(field):
            parts.append(str(item[field]))
    if item.get("status"):
        parts.append(f"status: {item['status']}")
    if item.get("scanned_at"):
        parts.append(f"scanned: {item['scanned_at']}")
    return " | ".join(parts)


def _describe_resolution(entry: Mapping) -> str:
    line = f"    Resolution: {entry.get('resolution_status', 'pending')}"
    if entry.get("notes"):
        line += f" - {entry['notes']}"
    return line


def render_report_text(
    report: Mapping,
    resolutions: Optional[Mapping[str, Mapping]] = None,
    title: Optional[str] = None,
) -> str:
    """Render ``report`` and its resolutions as text.

    The output depends only on the arguments, so a stored report always
    renders the same way.
    """
    resolutions = resolutions or {}
    summary = report["summary"]
    lines: List[str] = _heading("STOCK TAKE REPORT", "=")
    if title:
        lines.append(f"Name: {title}")
    if report.get("generated_at"):
        lines.append(f"Generated: {report['generated_at']}")
    lines.append("")

    lines.extend(_heading("SUMMARY"))
    for key, label in SUMMARY_LINES:
        value = summary[key]
        if key == "accuracy_percentage":
            lines.append(f"{label}: {value:.2f}%")
        else:
            lines.append(f"{label}: {value}")

    any_discrepancies = False
    listed = set()
    for key, heading, description in _SECTIONS:
        items = report.get(key) or []
        listed.update(item["security_barcode"] for item in items)
        if not items:
            continue
        any_discrepancies = True
        lines.append("")
        lines.extend(_heading(f"{heading} ({len(items)})"))
        lines.append(description)
        for item in items:
            lines.append(f"- {_describe(item)}")
            entry = resolutions.get(item["security_barcode"])
            if entry:
                lines.append(_describe_resolution(entry))

    if not any_discrepancies:
        lines.append("")
        lines.append("No discrepancies found. All items are accounted for.")

    others = sorted(barcode for barcode in resolutions if barcode not in listed)
    if others:
        lines.append("")
        lines.extend(_heading(f"OTHER RESOLUTIONS ({len(others)})"))
        lines.append("Recorded for barcodes that are not in the lists above.")
        for barcode in others:
            entry = resolutions[barcode]
            if entry.get("discrepancy_type"):
                lines.append(f"- {barcode} | {entry['discrepancy_type']}")
            else:
                lines.append(f"- {barcode}")
            lines.append(_describe_resolution(entry))

    return "\n".join(lines) + "\n"


def parse_report_summary(text: str) -> Dict[str, object]:
    """Read the summary block of a rendered report back into a mapping."""
    labels = {label: key for key, label in SUMMARY_LINES}
    summary: Dict[str, object] = {}
    in_summary = False
    for line in text.splitlines():
        if line == "SUMMARY":
            in_summary = True
            continue
        if not in_summary or set(line) == {"-"}:
            continue
        if not line.strip():
            break
        match = _SUMMARY_RE.match(line)
        if not match or match.group("label") not in labels:
            continue
        key = labels[match.group("label")]
        value = match.group("value")
        summary[key] = float(value) if key == "accuracy_percentage" else int(value)

    missing = [key for key, _ in SUMMARY_LINES if key not in summary]
    if missing:
        raise ValueError(f"Report summary incomplete, missing: {', '.join(missing)}")
    return summary


__all__ = ["SUMMARY_LINES", "render_report_text", "parse_report_summary"]
