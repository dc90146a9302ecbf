"""Inventory unit endpoints used by the console and by stock take tooling."""
import io
import logging

import pandas as pd
from flask import Blueprint, jsonify, request, send_file

from ..domain import products as units
from ..errors import ValidationError

logger = logging.getLogger(__name__)

bp = Blueprint("products", __name__)


@bp.route("/products", methods=["POST"])
def product_create():
    data = request.get_json(silent=True) or {}
    unit = units.create_unit(
        data.get("security_barcode"),
        status=data.get("status") or "in_stock",
        product_name=data.get("product_name"),
        generation=data.get("generation"),
        part_type=data.get("part_type"),
        tracking_number=data.get("tracking_number"),
    )
    return jsonify({"success": True, "unit": unit}), 201


@bp.route("/products/export", methods=["GET"])
def products_export():
    df = pd.DataFrame(units.export_rows(), columns=list(units.SPREADSHEET_COLUMNS))
    buffer = io.BytesIO()
    df.to_excel(buffer, index=False)
    buffer.seek(0)
    return send_file(
        buffer,
        as_attachment=True,
        download_name="inventory_units.xlsx",
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


@bp.route("/products/import", methods=["POST"])
def products_import():
    file = request.files.get("file")
    if not file or not file.filename:
        raise ValidationError("No file uploaded")
    try:
        if file.filename.lower().endswith(".csv"):
            df = pd.read_csv(file, dtype=str)
        else:
            df = pd.read_excel(file, dtype=str)
    except Exception as exc:
        logger.warning("Unreadable spreadsheet %s: %s", file.filename, exc)
        raise ValidationError(f"Could not read spreadsheet: {exc}") from exc
    counts = units.import_from_dataframe(df)
    return jsonify(dict(counts, success=True))


@bp.route("/products/<path:barcode>/status", methods=["PUT"])
def product_status(barcode):
    data = request.get_json(silent=True) or {}
    unit = units.update_product_status(
        barcode,
        data.get("status"),
        data.get("reason") or data.get("return_reason"),
    )
    return jsonify({"success": True, "unit": unit})


@bp.route("/products/<path:barcode>", methods=["GET"])
def product_detail(barcode):
    return jsonify({"unit": units.get_unit(barcode)})
