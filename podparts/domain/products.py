"""Inventory unit registry used by the stock take reconciliation.

Units are keyed by their security barcode.  Status changes always leave an
entry in the unit's status history.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd
from sqlalchemy.exc import IntegrityError

from ..config import product_status_options
from ..db import get_session
from ..errors import NotFound, ValidationError
from ..metrics import PRODUCT_STATUS_UPDATES_TOTAL
from ..models import InventoryUnit, UnitStatusHistory

logger = logging.getLogger(__name__)

# Spreadsheet column -> InventoryUnit attribute
SPREADSHEET_COLUMNS = {
    "Security Barcode": "security_barcode",
    "Status": "status",
    "Product Name": "product_name",
    "Generation": "generation",
    "Part Type": "part_type",
    "Tracking Number": "tracking_number",
}


def normalize_barcode(value) -> str:
    """Return the canonical (trimmed, upper-case) form of a barcode."""
    if value is None:
        return ""
    return str(value).strip().upper()


def _clean_cell(value) -> Optional[str]:
    """Return cleaned spreadsheet cell text or None for empty/NaN values."""
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    if not text:
        return None
    # Numeric barcodes come back from Excel as floats
    if isinstance(value, float) and text.endswith(".0"):
        text = text[:-2]
    return text


def _serialize_dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_unit(unit: InventoryUnit, include_history: bool = False) -> dict:
    data = {
        "security_barcode": unit.security_barcode,
        "status": unit.status,
        "product_name": unit.product_name,
        "generation": unit.generation,
        "part_type": unit.part_type,
        "tracking_number": unit.tracking_number,
    }
    if include_history:
        data["status_history"] = [
            {
                "from_status": entry.from_status,
                "to_status": entry.to_status,
                "changed_at": _serialize_dt(entry.changed_at),
                "reason": entry.reason,
            }
            for entry in unit.status_history
        ]
    return data


def find_unit(db, barcode: str) -> Optional[InventoryUnit]:
    """Look up a unit inside an existing session without modifying it."""
    return db.query(InventoryUnit).filter_by(security_barcode=barcode).first()


def create_unit(
    security_barcode: str,
    status: str = "in_stock",
    product_name: Optional[str] = None,
    generation: Optional[str] = None,
    part_type: Optional[str] = None,
    tracking_number: Optional[str] = None,
) -> dict:
    """Register a new inventory unit and return its serialized form."""
    barcode = normalize_barcode(security_barcode)
    if not barcode:
        raise ValidationError("Security barcode is required")
    status = (status or "").strip()
    if not status:
        raise ValidationError("Status is required")

    with get_session() as db:
        unit = InventoryUnit(
            security_barcode=barcode,
            status=status,
            product_name=product_name,
            generation=generation,
            part_type=part_type,
            tracking_number=tracking_number,
        )
        db.add(unit)
        try:
            db.flush()
        except IntegrityError as exc:
            raise ValidationError(
                f"Unit with security barcode {barcode} already exists"
            ) from exc
        logger.info("Registered unit %s (%s)", barcode, status)
        return serialize_unit(unit)


def get_unit(security_barcode: str) -> dict:
    """Return a unit with its status history or raise :class:`NotFound`."""
    barcode = normalize_barcode(security_barcode)
    with get_session() as db:
        unit = find_unit(db, barcode)
        if unit is None:
            raise NotFound(f"No unit with security barcode {barcode}")
        return serialize_unit(unit, include_history=True)


def _record_status_change(db, unit: InventoryUnit, new_status: str, reason: Optional[str]):
    db.add(
        UnitStatusHistory(
            unit_id=unit.id,
            from_status=unit.status,
            to_status=new_status,
            changed_at=datetime.now(),
            reason=reason,
        )
    )
    unit.status = new_status


def update_product_status(
    security_barcode: str,
    new_status: str,
    reason: Optional[str] = None,
) -> dict:
    """Change a unit's status and append the transition to its history."""
    barcode = normalize_barcode(security_barcode)
    new_status = (new_status or "").strip()
    if not barcode:
        PRODUCT_STATUS_UPDATES_TOTAL.labels(result="invalid").inc()
        raise ValidationError("Security barcode is required")
    options = product_status_options()
    if new_status not in options:
        PRODUCT_STATUS_UPDATES_TOTAL.labels(result="invalid").inc()
        raise ValidationError(
            f"Invalid status '{new_status}'. Allowed: {', '.join(options)}"
        )

    with get_session() as db:
        unit = find_unit(db, barcode)
        if unit is None:
            PRODUCT_STATUS_UPDATES_TOTAL.labels(result="not_found").inc()
            raise NotFound(f"No unit with security barcode {barcode}")
        old_status = unit.status
        _record_status_change(db, unit, new_status, reason)
        db.flush()
        result = serialize_unit(unit, include_history=True)

    PRODUCT_STATUS_UPDATES_TOTAL.labels(result="ok").inc()
    logger.info(
        "Unit %s status changed %s -> %s (%s)",
        barcode,
        old_status,
        new_status,
        reason or "no reason given",
    )
    return result


def import_from_dataframe(df: pd.DataFrame) -> Dict[str, int]:
    """Create or update units from a spreadsheet.

    Rows without a security barcode are skipped.  A changed status on an
    existing unit goes through the status history like any other change.
    """
    missing = [col for col in ("Security Barcode",) if col not in df.columns]
    if missing:
        raise ValidationError(f"Missing column(s): {', '.join(missing)}")

    counts = {"created": 0, "updated": 0, "skipped": 0}
    with get_session() as db:
        for _, row in df.iterrows():
            values = {
                attr: _clean_cell(row.get(column))
                for column, attr in SPREADSHEET_COLUMNS.items()
            }
            barcode = normalize_barcode(values.pop("security_barcode"))
            if not barcode:
                counts["skipped"] += 1
                continue
            status = values.pop("status")
            unit = find_unit(db, barcode)
            if unit is None:
                unit = InventoryUnit(
                    security_barcode=barcode,
                    status=status or "in_stock",
                    **values,
                )
                db.add(unit)
                db.flush()
                counts["created"] += 1
                continue
            for attr, value in values.items():
                if value is not None:
                    setattr(unit, attr, value)
            if status and status != unit.status:
                _record_status_change(db, unit, status, "Spreadsheet import")
            counts["updated"] += 1

    logger.info(
        "Imported units: %s created, %s updated, %s skipped",
        counts["created"],
        counts["updated"],
        counts["skipped"],
    )
    return counts


def export_rows() -> List[dict]:
    """Return rows used for spreadsheet export, keyed by column title."""
    with get_session() as db:
        units = db.query(InventoryUnit).order_by(InventoryUnit.security_barcode).all()
        return [
            {column: getattr(unit, attr) for column, attr in SPREADSHEET_COLUMNS.items()}
            for unit in units
        ]


__all__ = [
    "SPREADSHEET_COLUMNS",
    "normalize_barcode",
    "serialize_unit",
    "find_unit",
    "create_unit",
    "get_unit",
    "update_product_status",
    "import_from_dataframe",
    "export_rows",
]
