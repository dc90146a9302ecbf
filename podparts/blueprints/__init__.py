"""
Application blueprints.

Each blueprint is a thin HTTP layer over :mod:`podparts.domain`.
"""
from flask import jsonify

from ..errors import ConsoleError
from .products import bp as products_bp
from .stocktake import bp as stocktake_bp


def handle_console_error(error: ConsoleError):
    """Turn domain errors into JSON responses with their status code."""
    return jsonify(error.to_dict()), error.status_code


__all__ = ["products_bp", "stocktake_bp", "handle_console_error"]
