# Overview: Flask API routes for customer tabs; parses input and returns JSON responses.

# backend/dualpos/routes/credits.py
"""
Customer tab (credit) routes.

Opening a tab takes stock immediately (201). Paying it records a sale and
marks the tab paid (200). Paying a tab that is already paid, or that
belongs to another store, is a 404.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import credit_service
from ..validation import ValidationError, NotFoundError, coerce_optional_datetime


credits_bp = Blueprint("credits", __name__, url_prefix="/api/credits")


@credits_bp.post("")
def create_credit_route():
    try:
        data = request.get_json(silent=True) or {}

        credit = credit_service.create_credit(
            store=data.get("store"),
            customer_name=data.get("customer_name"),
            line_items=data.get("line_items"),
            total_lrd_cents=data.get("total_lrd_cents"),
            total_usd_cents=data.get("total_usd_cents"),
            preferred_currency=data.get("preferred_currency"),
            occurred_at=coerce_optional_datetime(data.get("occurred_at")),
        )

        return jsonify({"credit": credit.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create credit")
        return jsonify({"error": "Internal server error"}), 500


@credits_bp.post("/<int:credit_id>/pay")
def pay_credit_route(credit_id: int):
    """
    Settle a pending tab.

    Body: store, currency (required); amount_received_lrd_cents,
    amount_received_usd_cents, change_currency, rate, occurred_at.
    """
    try:
        data = request.get_json(silent=True) or {}

        credit, transaction = credit_service.pay_credit(
            credit_id=credit_id,
            store=data.get("store"),
            currency=data.get("currency"),
            amount_received_lrd_cents=data.get("amount_received_lrd_cents"),
            amount_received_usd_cents=data.get("amount_received_usd_cents"),
            change_currency=data.get("change_currency"),
            rate=data.get("rate"),
            occurred_at=coerce_optional_datetime(data.get("occurred_at")),
        )

        return jsonify({
            "message": "Credit paid successfully",
            "credit": credit.to_dict(),
            "transaction": transaction.to_dict(),
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to pay credit")
        return jsonify({"error": "Internal server error"}), 500


@credits_bp.get("")
def list_credits_route():
    """Query params: store (required), status (pending | paid, optional)."""
    try:
        credits = credit_service.get_credits(request.args.get("store"), request.args.get("status"))
        return jsonify({"credits": [c.to_dict() for c in credits]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list credits")
        return jsonify({"error": "Internal server error"}), 500


@credits_bp.get("/<int:credit_id>")
def get_credit_route(credit_id: int):
    try:
        credit = credit_service.get_credit(credit_id, request.args.get("store"))
        return jsonify({"credit": credit.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@credits_bp.get("/customer")
def credits_by_customer_route():
    """Query params: store, name (partial, case-insensitive)."""
    try:
        credits = credit_service.get_credits_by_customer(
            request.args.get("store"),
            request.args.get("name"),
        )
        return jsonify({"credits": [c.to_dict() for c in credits]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to search credits by customer")
        return jsonify({"error": "Internal server error"}), 500


@credits_bp.get("/range")
def credits_by_range_route():
    try:
        result = credit_service.get_credits_by_date_range(
            request.args.get("start_date"),
            request.args.get("end_date"),
            request.args.get("store"),
            request.args.get("status"),
        )
        return jsonify({
            "credits": [c.to_dict() for c in result["credits"]],
            "totals": result["totals"],
        }), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to fetch credits by date range")
        return jsonify({"error": "Internal server error"}), 500


@credits_bp.get("/balance")
def credit_balance_route():
    try:
        balance = credit_service.get_credit_balance(request.args.get("store"))
        balance["recent_credits"] = [c.to_dict() for c in balance["recent_credits"]]
        return jsonify(balance), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build credit balance")
        return jsonify({"error": "Internal server error"}), 500
