"""Blueprint exposing diagnostics and metrics endpoints."""

from __future__ import annotations

from typing import Dict, Tuple

from flask import Blueprint, Response, current_app, jsonify
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .db import get_session


bp = Blueprint("diagnostics", __name__)


def _check_database() -> Tuple[str, str]:
    """Run a simple query to ensure the database is reachable."""

    try:
        with get_session() as session:
            session.execute(text("SELECT 1"))
        return "ok", ""
    except SQLAlchemyError as exc:
        current_app.logger.error("Database health check failed: %s", exc)
        return "error", str(exc)


@bp.route("/healthz")
def healthz():
    """Return status of dependent services."""

    checks: Dict[str, Tuple[str, str]] = {
        "database": _check_database(),
    }

    overall = "ok" if all(status == "ok" for status, _ in checks.values()) else "error"
    response = {
        "status": overall,
        "checks": {
            name: {"status": status, "details": detail}
            for name, (status, detail) in checks.items()
        },
    }
    http_status = 200 if overall == "ok" else 503
    return jsonify(response), http_status


@bp.route("/metrics")
def metrics() -> Response:
    """Expose Prometheus metrics."""

    return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)
