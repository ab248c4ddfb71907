# Overview: Flask API routes for the shared exchange rate; parses input and returns JSON responses.

# backend/dualpos/routes/currency_rate.py
"""Exchange rate API: read the current LRD/USD rate, or replace it and re-price the catalog."""

from flask import Blueprint, request, jsonify, current_app

from ..services import currency_service
from ..validation import ValidationError


currency_rate_bp = Blueprint("currency_rate", __name__, url_prefix="/api/currency-rate")


@currency_rate_bp.get("")
def get_rate_route():
    try:
        rate = currency_service.get_current_rate()
        return jsonify(rate.to_dict()), 200
    except Exception:
        current_app.logger.exception("Failed to fetch currency rate")
        return jsonify({"error": "Internal server error"}), 500


@currency_rate_bp.put("")
def update_rate_route():
    """
    Replace the rate.

    Body: {"rate": <positive number>}

    Every product with a USD price gets its LRD price recomputed; the
    response reports how many were touched.
    """
    try:
        data = request.get_json(silent=True) or {}
        rate, repriced = currency_service.update_rate(data.get("rate"))
        return jsonify({
            "message": "Rate updated and product prices recalculated successfully",
            **rate.to_dict(),
            "products_repriced": repriced,
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update currency rate")
        return jsonify({"error": "Internal server error"}), 500
