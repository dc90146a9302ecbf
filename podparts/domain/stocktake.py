"""Stock take sessions: scanning, completion, resolutions and history.

Every function opens its own database session and re-reads the stock take,
so the database is the only source of truth for session state.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..config import keep_cancelled_stock_takes, low_accuracy_threshold
from ..constants import (
    DISCREPANCY_TYPES,
    IN_STOCK_STATUSES,
    RESOLUTION_STATUSES,
    STOCK_TAKE_CANCELLED,
    STOCK_TAKE_COMPLETED,
    STOCK_TAKE_IN_PROGRESS,
    is_in_stock,
)
from ..db import get_session
from ..errors import (
    ConsoleError,
    DuplicateScan,
    InvalidState,
    NotFound,
    UpstreamFailure,
    ValidationError,
)
from ..metrics import (
    STOCK_TAKE_DISCREPANCIES_TOTAL,
    STOCK_TAKE_LAST_ACCURACY,
    STOCK_TAKE_SCANS_TOTAL,
    STOCK_TAKES_COMPLETED_TOTAL,
    STOCK_TAKES_STARTED_TOTAL,
)
from ..models import DiscrepancyResolution, InventoryUnit, StockTake, StockTakeScan
from .products import find_unit, normalize_barcode, serialize_unit, update_product_status
from .reconciliation import build_discrepancy_report, discrepancy_type_of, scan_stats
from .report_text import render_report_text

logger = logging.getLogger(__name__)

# Keeps IN (...) lists well below SQLite's bound parameter limit
_LOOKUP_CHUNK = 500


def _serialize_dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _serialize_scan(scan: StockTakeScan) -> dict:
    return {
        "security_barcode": scan.security_barcode,
        "scanned_at": _serialize_dt(scan.scanned_at),
        "found_in_database": bool(scan.found_in_database),
        "status": scan.status,
        "product_name": scan.product_name,
        "generation": scan.generation,
    }


def _serialize_resolution(entry: DiscrepancyResolution) -> dict:
    return {
        "resolution_status": entry.resolution_status,
        "notes": entry.notes,
        "discrepancy_type": entry.discrepancy_type,
        "updated_at": _serialize_dt(entry.updated_at),
    }


def _summary_view(st: StockTake) -> dict:
    return {
        "id": st.id,
        "name": st.name,
        "notes": st.notes,
        "status": st.status,
        "started_at": _serialize_dt(st.started_at),
        "completed_at": _serialize_dt(st.completed_at),
        "scanned_count": len(st.scans),
        "summary": (st.report or {}).get("summary"),
    }


def _annotated_report(report: Optional[dict], resolutions: Dict[str, dict]) -> Optional[dict]:
    """Copy of ``report`` where each discrepancy carries its live resolution."""
    if not report:
        return None
    view = dict(report)
    for key in ("missing_items", "unknown_items", "wrong_status_items"):
        view[key] = [
            dict(item, resolution=resolutions.get(item["security_barcode"]))
            for item in report.get(key, [])
        ]
    return view


def _full_view(st: StockTake) -> dict:
    scans = [_serialize_scan(scan) for scan in st.scans]
    resolutions = {
        entry.security_barcode: _serialize_resolution(entry) for entry in st.resolutions
    }
    data = _summary_view(st)
    data.update(
        {
            "scanned_items": scans,
            "scan_stats": scan_stats(scans),
            "report": st.report,
            "discrepancy_resolutions": resolutions,
            "report_view": _annotated_report(st.report, resolutions),
        }
    )
    return data


def _load(db, stock_take_id) -> StockTake:
    st = db.get(StockTake, stock_take_id)
    if st is None:
        raise NotFound(f"Stock take {stock_take_id} not found")
    return st


def _require_in_progress(st: StockTake, action: str) -> None:
    if st.status == STOCK_TAKE_IN_PROGRESS:
        return
    if st.status == STOCK_TAKE_COMPLETED:
        raise InvalidState(f"Cannot {action} stock take {st.id}: it is already completed")
    raise InvalidState(f"Cannot {action} stock take {st.id}: status is {st.status}")


def _claim_in_progress(db, stock_take_id, action: str) -> StockTake:
    """Take the write lock on an in-progress stock take before changing it.

    The no-op conditional update runs first in the transaction, so a
    concurrent completion either finishes before it (and the claim fails) or
    waits until this transaction commits.
    """
    result = db.execute(
        update(StockTake)
        .where(
            StockTake.id == stock_take_id,
            StockTake.status == STOCK_TAKE_IN_PROGRESS,
        )
        .values(status=StockTake.status)
        .execution_options(synchronize_session=False)
    )
    st = _load(db, stock_take_id)
    if result.rowcount != 1:
        _require_in_progress(st, action)
        raise InvalidState(f"Cannot {action} stock take {st.id}")
    return st


# ----------------------------------------------------------------------
# Session lifecycle
# ----------------------------------------------------------------------
def start(name: Optional[str] = None, notes: Optional[str] = None) -> dict:
    """Open a new stock take session."""
    now = datetime.now()
    name = (name or "").strip() or f"Stock Take {now:%Y-%m-%d %H:%M}"
    with get_session() as db:
        st = StockTake(
            name=name,
            notes=(notes or "").strip() or None,
            status=STOCK_TAKE_IN_PROGRESS,
            started_at=now,
        )
        db.add(st)
        db.flush()
        data = _full_view(st)

    STOCK_TAKES_STARTED_TOTAL.inc()
    logger.info("Stock take %s started: %s", data["id"], name)
    return data


def get_active_session() -> Optional[dict]:
    """Return the most recently started stock take still in progress."""
    with get_session() as db:
        st = (
            db.query(StockTake)
            .filter_by(status=STOCK_TAKE_IN_PROGRESS)
            .order_by(StockTake.started_at.desc(), StockTake.id.desc())
            .first()
        )
        return _full_view(st) if st else None


def get_stock_take(stock_take_id) -> dict:
    """Full session including scans, report and live resolutions."""
    with get_session() as db:
        return _full_view(_load(db, stock_take_id))


def list_stock_takes() -> List[dict]:
    """All sessions, newest first, with summary fields only."""
    with get_session() as db:
        rows = (
            db.query(StockTake)
            .order_by(StockTake.started_at.desc(), StockTake.id.desc())
            .all()
        )
        return [_summary_view(st) for st in rows]


def cancel(stock_take_id) -> None:
    """Abandon an in-progress stock take.

    The session is deleted unless ``ENABLE_CANCELLED_STOCK_TAKE_HISTORY`` is
    set, in which case it is kept with status ``cancelled``.
    """
    with get_session() as db:
        st = _claim_in_progress(db, stock_take_id, "cancel")
        if keep_cancelled_stock_takes():
            st.status = STOCK_TAKE_CANCELLED
        else:
            db.delete(st)
    logger.info("Stock take %s cancelled", stock_take_id)


# ----------------------------------------------------------------------
# Scan ingest
# ----------------------------------------------------------------------
def scan_item(stock_take_id, barcode) -> dict:
    """Record a scanned barcode and return the stored scan record."""
    barcode = normalize_barcode(barcode)
    if not barcode:
        raise ValidationError("Barcode is required")

    with get_session() as db:
        st = _claim_in_progress(db, stock_take_id, "scan into")
        unit = find_unit(db, barcode)
        record = StockTakeScan(
            stock_take_id=st.id,
            security_barcode=barcode,
            scanned_at=datetime.now(),
            found_in_database=unit is not None,
            status=unit.status if unit else None,
            product_name=unit.product_name if unit else None,
            generation=unit.generation if unit else None,
        )
        db.add(record)
        # The unique constraint on (stock_take_id, security_barcode) makes
        # the duplicate check and the insert a single write.
        try:
            db.flush()
        except IntegrityError as exc:
            STOCK_TAKE_SCANS_TOTAL.labels(result="duplicate").inc()
            raise DuplicateScan(
                f"Item {barcode} has already been scanned in this stock take"
            ) from exc
        data = _serialize_scan(record)

    if not data["found_in_database"]:
        result = "not_found"
    elif is_in_stock(data["status"]):
        result = "found"
    else:
        result = "wrong_status"
    STOCK_TAKE_SCANS_TOTAL.labels(result=result).inc()
    logger.debug("Stock take %s: scanned %s (%s)", stock_take_id, barcode, result)
    return data


def get_scan_stats(stock_take_id) -> dict:
    with get_session() as db:
        st = _load(db, stock_take_id)
        return scan_stats(_serialize_scan(scan) for scan in st.scans)


def remove_scan(stock_take_id, barcode) -> None:
    """Delete a scan record while the stock take is still in progress."""
    barcode = normalize_barcode(barcode)
    with get_session() as db:
        st = _claim_in_progress(db, stock_take_id, "remove scans from")
        deleted = (
            db.query(StockTakeScan)
            .filter_by(stock_take_id=st.id, security_barcode=barcode)
            .delete(synchronize_session=False)
        )
        if not deleted:
            raise NotFound(f"Item {barcode} was not scanned in stock take {st.id}")
    logger.info("Stock take %s: removed scan %s", stock_take_id, barcode)


# ----------------------------------------------------------------------
# Completion
# ----------------------------------------------------------------------
def _chunks(values: List[str], size: int = _LOOKUP_CHUNK) -> Iterable[List[str]]:
    for start_idx in range(0, len(values), size):
        yield values[start_idx:start_idx + size]


def _load_units(db, scanned_barcodes: List[str]) -> List[dict]:
    """In-stock units plus every unit matching a scanned barcode."""
    units = {
        unit.security_barcode: unit
        for unit in db.query(InventoryUnit)
        .filter(InventoryUnit.status.in_(sorted(IN_STOCK_STATUSES)))
        .all()
    }
    for chunk in _chunks(scanned_barcodes):
        for unit in (
            db.query(InventoryUnit)
            .filter(InventoryUnit.security_barcode.in_(chunk))
            .all()
        ):
            units[unit.security_barcode] = unit
    return [serialize_unit(unit) for unit in units.values()]


def complete(stock_take_id) -> dict:
    """Reconcile the scans against inventory and freeze the report."""
    now = datetime.now()
    with get_session() as db:
        st = _claim_in_progress(db, stock_take_id, "complete")
        scans = [_serialize_scan(scan) for scan in st.scans]
        if not scans:
            raise ValidationError(
                "Please scan at least one item before completing the stock take"
            )

        units = _load_units(db, [scan["security_barcode"] for scan in scans])
        report = build_discrepancy_report(units, scans, generated_at=now.isoformat())

        # Report and status change land in one conditional write.
        result = db.execute(
            update(StockTake)
            .where(
                StockTake.id == st.id,
                StockTake.status == STOCK_TAKE_IN_PROGRESS,
            )
            .values(status=STOCK_TAKE_COMPLETED, completed_at=now, report=report)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidState(
                f"Cannot complete stock take {st.id}: it is already completed"
            )

    summary = report["summary"]
    STOCK_TAKES_COMPLETED_TOTAL.inc()
    STOCK_TAKE_LAST_ACCURACY.set(summary["accuracy_percentage"])
    STOCK_TAKE_DISCREPANCIES_TOTAL.labels(type="missing").inc(summary["missing_items_count"])
    STOCK_TAKE_DISCREPANCIES_TOTAL.labels(type="unknown").inc(summary["unknown_items_count"])
    STOCK_TAKE_DISCREPANCIES_TOTAL.labels(type="wrong_status").inc(summary["wrong_status_count"])

    if summary["accuracy_percentage"] < low_accuracy_threshold():
        logger.warning(
            "Stock take %s completed with low accuracy %.2f%% (%s missing, %s unknown, %s wrong status)",
            stock_take_id,
            summary["accuracy_percentage"],
            summary["missing_items_count"],
            summary["unknown_items_count"],
            summary["wrong_status_count"],
        )
    else:
        logger.info(
            "Stock take %s completed: accuracy %.2f%%",
            stock_take_id,
            summary["accuracy_percentage"],
        )
    return report


# ----------------------------------------------------------------------
# Resolutions
# ----------------------------------------------------------------------
def set_resolution(
    stock_take_id,
    barcode,
    resolution_status: str,
    notes: Optional[str] = None,
    discrepancy_type: Optional[str] = None,
) -> dict:
    """Create or overwrite the investigation outcome for ``barcode``.

    Allowed before and after completion.  When ``discrepancy_type`` is omitted
    it is taken from the report.
    """
    barcode = normalize_barcode(barcode)
    if not barcode:
        raise ValidationError("Barcode is required")
    if resolution_status not in RESOLUTION_STATUSES:
        raise ValidationError(
            f"Invalid resolution status '{resolution_status}'. "
            f"Allowed: {', '.join(RESOLUTION_STATUSES)}"
        )
    notes = (notes or "").strip() or None
    now = datetime.now()

    with get_session() as db:
        st = _load(db, stock_take_id)
        listed_as = discrepancy_type_of(st.report, barcode) if st.report else None
        discrepancy_type = discrepancy_type or listed_as
        if discrepancy_type not in DISCREPANCY_TYPES:
            raise ValidationError(
                f"Invalid discrepancy type '{discrepancy_type}'. "
                f"Allowed: {', '.join(DISCREPANCY_TYPES)}"
            )
        if st.report and listed_as is None:
            logger.info(
                "Stock take %s: resolution for %s which is not in the report",
                st.id,
                barcode,
            )

        values = {
            "resolution_status": resolution_status,
            "discrepancy_type": discrepancy_type,
            "notes": notes,
            "updated_at": now,
        }
        stmt = sqlite_insert(DiscrepancyResolution).values(
            stock_take_id=st.id, security_barcode=barcode, **values
        )
        db.execute(
            stmt.on_conflict_do_update(
                index_elements=["stock_take_id", "security_barcode"],
                set_=values,
            )
        )

    logger.info(
        "Stock take %s: %s marked %s (%s)",
        stock_take_id,
        barcode,
        resolution_status,
        discrepancy_type,
    )
    return {
        "security_barcode": barcode,
        "resolution_status": resolution_status,
        "notes": notes,
        "discrepancy_type": discrepancy_type,
        "updated_at": now.isoformat(),
    }


def resolve_discrepancy(
    stock_take_id,
    barcode,
    resolution_status: str,
    notes: Optional[str] = None,
    discrepancy_type: Optional[str] = None,
    new_product_status: Optional[str] = None,
) -> dict:
    """Save a resolution and optionally change the unit's status afterwards.

    The two writes are independent: a failed status update is returned under
    ``product_status_update`` and leaves the saved resolution in place.
    """
    resolution = set_resolution(
        stock_take_id, barcode, resolution_status, notes, discrepancy_type
    )
    outcome = {"resolution": resolution}
    if not new_product_status:
        return outcome

    reason = resolution["notes"] or (
        f"Stock take #{stock_take_id} discrepancy {resolution_status}"
    )
    barcode = resolution["security_barcode"]
    try:
        unit = update_product_status(barcode, new_product_status, reason)
    except ConsoleError as exc:
        logger.warning(
            "Stock take %s: status update for %s failed: %s",
            stock_take_id,
            barcode,
            exc.message,
        )
        outcome["product_status_update"] = UpstreamFailure(
            f"Resolution saved, but updating the unit status failed: {exc.message}"
        ).as_outcome(cause=exc.kind)
    except SQLAlchemyError as exc:
        logger.exception(
            "Stock take %s: status update for %s failed after the resolution was saved",
            stock_take_id,
            barcode,
        )
        outcome["product_status_update"] = UpstreamFailure(
            f"Resolution saved, but updating the unit status failed: {getattr(exc, 'orig', None) or exc}"
        ).as_outcome(cause="database_error")
    else:
        outcome["product_status_update"] = {"success": True, "unit": unit}
    return outcome


# ----------------------------------------------------------------------
# Report download
# ----------------------------------------------------------------------
def report_download(stock_take_id):
    """Return ``(filename, text)`` for the stock take's report."""
    with get_session() as db:
        st = _load(db, stock_take_id)
        if not st.report:
            raise InvalidState(f"Stock take {st.id} has no report yet")
        resolutions = {
            entry.security_barcode: _serialize_resolution(entry) for entry in st.resolutions
        }
        text = render_report_text(st.report, resolutions, title=st.name)
        day = (st.completed_at or st.started_at).strftime("%Y-%m-%d")
        filename = f"stock-take-report-{st.id}-{day}.txt"
    return filename, text


__all__ = [
    "start",
    "get_active_session",
    "get_stock_take",
    "list_stock_takes",
    "cancel",
    "scan_item",
    "get_scan_stats",
    "remove_scan",
    "complete",
    "set_resolution",
    "resolve_discrepancy",
    "report_download",
]
