"""
Stock take blueprint - JSON API used by the scanning console.

Functionality:
- Start, resume and cancel a stock take
- Scan barcodes and remove mistaken scans
- Complete the stock take and generate the discrepancy report
- Record discrepancy resolutions, optionally changing the unit status
- Download the report as text
"""
import logging

from flask import Blueprint, jsonify, make_response, request

from ..domain import stocktake as service
from ..domain.products import update_product_status

logger = logging.getLogger(__name__)

bp = Blueprint("stocktake", __name__)


def _payload() -> dict:
    return request.get_json(silent=True) or {}


@bp.route("/stock-take", methods=["GET"])
def stock_take_list():
    """All stock takes; the console filters current vs history by status."""
    return jsonify({"stock_takes": service.list_stock_takes()})


@bp.route("/stock-take/start", methods=["POST"])
def stock_take_start():
    data = _payload()
    stock_take = service.start(data.get("name"), data.get("notes"))
    return jsonify({"success": True, "stock_take": stock_take}), 201


@bp.route("/stock-take/active", methods=["GET"])
def stock_take_active():
    return jsonify({"stock_take": service.get_active_session()})


@bp.route("/stock-take/<int:stock_take_id>", methods=["GET"])
def stock_take_detail(stock_take_id):
    return jsonify({"stock_take": service.get_stock_take(stock_take_id)})


@bp.route("/stock-take/<int:stock_take_id>", methods=["DELETE"])
def stock_take_cancel(stock_take_id):
    service.cancel(stock_take_id)
    return jsonify({"success": True})


@bp.route("/stock-take/<int:stock_take_id>/scan", methods=["POST"])
def stock_take_scan(stock_take_id):
    data = _payload()
    barcode = data.get("barcode") or data.get("security_barcode")
    scanned_item = service.scan_item(stock_take_id, barcode)
    return jsonify({
        "success": True,
        "scanned_item": scanned_item,
        "scan_stats": service.get_scan_stats(stock_take_id),
    })


@bp.route("/stock-take/<int:stock_take_id>/scan/<path:barcode>", methods=["DELETE"])
def stock_take_remove_scan(stock_take_id, barcode):
    service.remove_scan(stock_take_id, barcode)
    return jsonify({"success": True})


@bp.route("/stock-take/<int:stock_take_id>/complete", methods=["POST"])
def stock_take_complete(stock_take_id):
    report = service.complete(stock_take_id)
    return jsonify({"success": True, "report": report})


@bp.route("/stock-take/<int:stock_take_id>/report/download", methods=["GET"])
def stock_take_report_download(stock_take_id):
    filename, text = service.report_download(stock_take_id)
    response = make_response(text)
    response.headers["Content-Type"] = "text/plain; charset=utf-8"
    response.headers["Content-Disposition"] = f"attachment; filename={filename}"
    return response


@bp.route("/stock-take/<int:stock_take_id>/discrepancy", methods=["PUT"])
def stock_take_discrepancy(stock_take_id):
    """Save a resolution; a requested unit status change is reported separately."""
    data = _payload()
    outcome = service.resolve_discrepancy(
        stock_take_id,
        data.get("barcode") or data.get("security_barcode"),
        data.get("resolution_status"),
        notes=data.get("notes"),
        discrepancy_type=data.get("discrepancy_type"),
        new_product_status=data.get("new_product_status"),
    )
    return jsonify(dict(outcome, success=True))


@bp.route("/stock-take/update-product-status", methods=["PUT"])
def stock_take_update_product_status():
    data = _payload()
    unit = update_product_status(
        data.get("barcode") or data.get("security_barcode"),
        data.get("new_status"),
        data.get("reason"),
    )
    return jsonify({"success": True, "unit": unit})
