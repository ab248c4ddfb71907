from flask import Blueprint, current_app, jsonify, request

from dualpos.services import reporting_service
from dualpos.validation import ValidationError


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales")
def sales_report():
    store = request.args.get("store")
    all_stores = request.args.get("all_stores", "false").lower() == "true"
    if not store and not all_stores:
        return jsonify({"error": "Either store parameter or all_stores flag is required"}), 400

    start = request.args.get("start_date")
    end = request.args.get("end_date")

    try:
        report = reporting_service.generate_sales_report(
            store=store,
            all_stores=all_stores,
            start=start,
            end=end,
        )
        return jsonify(report), 200
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to generate sales report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/top-products")
def top_products_report():
    store = request.args.get("store")
    if not store:
        return jsonify({"error": "Store is required"}), 400

    try:
        products = reporting_service.get_top_products(
            store=store,
            start=request.args.get("start_date"),
            end=request.args.get("end_date"),
        )
        return jsonify({"store": store, "top_products": products}), 200
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to fetch top products")
        return jsonify({"error": "Internal server error"}), 500
