# Overview: Flask API routes for sales and returns; parses input and returns JSON responses.

# backend/dualpos/routes/transactions.py
"""Sales, returns and transaction history routes"""

from flask import Blueprint, request, jsonify, current_app

from ..services import transaction_service
from ..validation import ValidationError, NotFoundError, coerce_optional_datetime


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
def create_sale_route():
    """
    Record a paid sale.

    Body:
    - store: str (required)
    - currency: LRD | USD | BOTH (required)
    - line_items: [{"product_id": int, "quantity": int}] (required, non-empty)
    - amount_received_lrd_cents / amount_received_usd_cents: int
    - change_currency: LRD | USD (BOTH only; defaults to LRD)
    - total_lrd_cents / total_usd_cents: int (optional, default to line sums)
    - rate: LRD per USD for split payments (optional)
    - occurred_at: ISO-8601 (optional)

    Returns 201 with the persisted transaction. Short stock or short payment
    is a 400 and leaves inventory untouched.
    """
    try:
        data = request.get_json(silent=True) or {}

        transaction = transaction_service.create_sale(
            store=data.get("store"),
            currency=data.get("currency"),
            line_items=data.get("line_items"),
            amount_received_lrd_cents=data.get("amount_received_lrd_cents"),
            amount_received_usd_cents=data.get("amount_received_usd_cents"),
            change_currency=data.get("change_currency"),
            total_lrd_cents=data.get("total_lrd_cents"),
            total_usd_cents=data.get("total_usd_cents"),
            rate=data.get("rate"),
            occurred_at=coerce_optional_datetime(data.get("occurred_at")),
        )

        return jsonify({"transaction": transaction.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/returns")
def create_return_route():
    """
    Take goods back into stock.

    Body: store, line_items (required); currency, reason,
    original_transaction_id, occurred_at (optional).
    """
    try:
        data = request.get_json(silent=True) or {}

        transaction = transaction_service.create_return(
            store=data.get("store"),
            line_items=data.get("line_items"),
            currency=data.get("currency"),
            reason=data.get("reason"),
            original_transaction_id=data.get("original_transaction_id"),
            occurred_at=coerce_optional_datetime(data.get("occurred_at")),
        )

        return jsonify({"transaction": transaction.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create return")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("")
def list_transactions_route():
    try:
        transactions = transaction_service.get_transactions(
            request.args.get("store"),
            limit=request.args.get("limit", type=int),
        )
        return jsonify({"transactions": [t.to_dict() for t in transactions]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/<int:transaction_id>")
def get_transaction_route(transaction_id: int):
    try:
        transaction = transaction_service.get_transaction(transaction_id, request.args.get("store"))
        return jsonify({"transaction": transaction.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to fetch transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/date/<day>")
def transactions_by_date_route(day: str):
    """All transactions on one business day (YYYY-MM-DD)."""
    try:
        transactions = transaction_service.get_transactions_by_date(day, request.args.get("store"))
        return jsonify({"transactions": [t.to_dict() for t in transactions]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to fetch transactions by date")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/range")
def transactions_by_range_route():
    """Query params: store, start_date, end_date (all required)."""
    try:
        result = transaction_service.get_transactions_by_date_range(
            request.args.get("start_date"),
            request.args.get("end_date"),
            request.args.get("store"),
        )
        return jsonify({
            "transactions": [t.to_dict() for t in result["transactions"]],
            "summary": result["summary"],
        }), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to fetch transactions by date range")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/product/<int:product_id>")
def transactions_by_product_route(product_id: int):
    try:
        result = transaction_service.get_transactions_by_product(product_id, request.args.get("store"))
        return jsonify({
            "transactions": [t.to_dict() for t in result["transactions"]],
            "totals": result["totals"],
        }), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to fetch transactions by product")
        return jsonify({"error": "Internal server error"}), 500
