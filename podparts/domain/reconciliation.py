"""Discrepancy classification for completed stock takes.

Everything here is a pure function of already-loaded data: the inventory
units known to the registry and the scan records of one stock take.  The
caller is responsible for passing every in-stock unit plus every unit whose
barcode was scanned.
"""
from __future__ import annotations

from typing import Iterable, Mapping, Optional

from ..constants import (
    DISCREPANCY_MISSING,
    DISCREPANCY_UNKNOWN,
    DISCREPANCY_WRONG_STATUS,
    is_in_stock,
)

ACCURACY_PRECISION = 2

_UNIT_FIELDS = (
    "security_barcode",
    "status",
    "product_name",
    "generation",
    "part_type",
    "tracking_number",
)


def compute_accuracy(found_items: int, expected_in_stock: int) -> float:
    """Return the share of expected units that were found, in percent."""
    if expected_in_stock == 0:
        # Nothing was expected, so nothing can be missing.
        return 100.0
    return round(found_items / expected_in_stock * 100, ACCURACY_PRECISION)


def scan_stats(scans: Iterable[Mapping]) -> dict:
    """Live counters shown while scanning, based on scan-time snapshots."""
    stats = {"total": 0, "found": 0, "not_found": 0, "wrong_status": 0}
    for scan in scans:
        stats["total"] += 1
        if not scan.get("found_in_database"):
            stats["not_found"] += 1
        elif is_in_stock(scan.get("status")):
            stats["found"] += 1
        else:
            stats["wrong_status"] += 1
    return stats


def _by_barcode(item: Mapping) -> str:
    return item["security_barcode"]


def build_discrepancy_report(
    units: Iterable[Mapping],
    scans: Iterable[Mapping],
    generated_at: Optional[str] = None,
) -> dict:
    """Classify scans against inventory units.

    ``units`` are mappings with the inventory unit fields, ``scans`` are scan
    records.  The result does not depend on input order.
    """
    lookup = {unit["security_barcode"]: unit for unit in units}
    scans = list(scans)
    scanned = {scan["security_barcode"] for scan in scans}

    expected = [unit for unit in lookup.values() if is_in_stock(unit.get("status"))]
    missing_items = [
        {field: unit.get(field) for field in _UNIT_FIELDS}
        for unit in expected
        if unit["security_barcode"] not in scanned
    ]

    unknown_items = []
    wrong_status_items = []
    found_items = 0
    for scan in scans:
        unit = lookup.get(scan["security_barcode"])
        if unit is None:
            unknown_items.append(dict(scan))
        elif not is_in_stock(unit.get("status")):
            record = dict(scan)
            # classified by the status at completion, not the scan snapshot
            record["found_in_database"] = True
            record["status"] = unit.get("status")
            record["product_name"] = unit.get("product_name") or scan.get("product_name")
            record["generation"] = unit.get("generation") or scan.get("generation")
            wrong_status_items.append(record)
        else:
            found_items += 1

    missing_items.sort(key=_by_barcode)
    unknown_items.sort(key=_by_barcode)
    wrong_status_items.sort(key=_by_barcode)

    summary = {
        "total_scanned": len(scans),
        "expected_in_stock": len(expected),
        "found_items": found_items,
        "missing_items_count": len(missing_items),
        "unknown_items_count": len(unknown_items),
        "wrong_status_count": len(wrong_status_items),
        "accuracy_percentage": compute_accuracy(found_items, len(expected)),
    }
    return {
        "generated_at": generated_at,
        "summary": summary,
        "missing_items": missing_items,
        "unknown_items": unknown_items,
        "wrong_status_items": wrong_status_items,
    }


def discrepancy_type_of(report: Mapping, barcode: str) -> Optional[str]:
    """Return which discrepancy list of ``report`` contains ``barcode``."""
    for key, kind in (
        ("missing_items", DISCREPANCY_MISSING),
        ("unknown_items", DISCREPANCY_UNKNOWN),
        ("wrong_status_items", DISCREPANCY_WRONG_STATUS),
    ):
        if any(item["security_barcode"] == barcode for item in report.get(key, [])):
            return kind
    return None


__all__ = [
    "ACCURACY_PRECISION",
    "compute_accuracy",
    "scan_stats",
    "build_discrepancy_report",
    "discrepancy_type_of",
]
