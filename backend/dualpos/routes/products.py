# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/dualpos/routes/products.py
"""
Product catalog and stock routes.

STORE SCOPING: every call names its store, in the query string for reads
and in the JSON body for writes. A product id from another store is
reported as not found.
"""
from flask import Blueprint, request, jsonify, current_app

from ..services import inventory_service
from ..services.transaction_service import record_restock
from ..validation import ValidationError, NotFoundError, require_store

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products_route():
    """
    List a store's products, alphabetically.

    Query params:
    - store: str (required)
    - category: str (optional)
    """
    try:
        products = inventory_service.list_products(
            request.args.get("store"),
            category=request.args.get("category"),
        )
        return jsonify({"products": [p.to_dict() for p in products], "count": len(products)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/summary")
def inventory_summary_route():
    try:
        return jsonify(inventory_service.get_inventory_summary(request.args.get("store"))), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build inventory summary")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        store = require_store(request.args.get("store"))
        product = inventory_service.require_product(product_id, store)
        return jsonify({"product": product.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@products_bp.post("")
def create_product_route():
    """
    Add a product to a store.

    Body: store, item (required); quantity, price_usd_cents, price_lrd_cents,
    measurement, category, barcode, compartment, shelf (optional).
    When only price_usd_cents is sent, the LRD price is derived from the
    current rate.
    """
    payload = request.get_json(silent=True) or {}

    try:
        product = inventory_service.create_product(
            store=payload.get("store"),
            item=payload.get("item"),
            quantity=payload.get("quantity", 0),
            price_usd_cents=payload.get("price_usd_cents"),
            price_lrd_cents=payload.get("price_lrd_cents"),
            measurement=payload.get("measurement"),
            category=payload.get("category"),
            barcode=payload.get("barcode"),
            compartment=payload.get("compartment"),
            shelf=payload.get("shelf"),
        )
        return jsonify({"product": product.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/adjust")
def adjust_quantity_route(product_id: int):
    """Apply a signed stock correction. Body: {"store": str, "delta": int}"""
    payload = request.get_json(silent=True) or {}

    try:
        product = inventory_service.adjust_quantity(
            product_id, payload.get("store"), payload.get("delta")
        )
        return jsonify({"product": product.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to adjust product quantity")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/restock")
def restock_route():
    """
    Receive goods into stock.

    Body: {"store": str, "line_items": [{"product_id", "quantity"}], "note": str}
    """
    payload = request.get_json(silent=True) or {}

    try:
        transaction = record_restock(
            store=payload.get("store"),
            line_items=payload.get("line_items"),
            note=payload.get("note"),
        )
        return jsonify({"transaction": transaction.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to record restock")
        return jsonify({"error": "Internal server error"}), 500
