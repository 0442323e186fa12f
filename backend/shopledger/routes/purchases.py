# Overview: Flask API routes for supplier purchases and payments; parses input and returns JSON responses.

"""
Purchases API Routes

Supplier payments are what the daily closing counts as purchase expenses,
on the day they were paid.

SECURITY:
- VIEW_PURCHASES to read
- MANAGE_PURCHASES to book purchases and pay suppliers (owners only)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import purchase_service, tenant_service
from ..services.tenant_service import TenantAccessError
from ..validation import NotFoundError, require_json_object
from ..decorators import require_auth, require_permission


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("")
@require_auth
@require_permission("VIEW_PURCHASES")
def list_purchases_route():
    try:
        shop_id = tenant_service.resolve_shop_from_request()
        purchases = purchase_service.list_purchases(shop_id)
        return jsonify({
            "purchases": [purchase.to_dict() for purchase in purchases],
            "count": len(purchases),
        }), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to list purchases")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.post("")
@require_auth
@require_permission("MANAGE_PURCHASES")
def create_purchase_route():
    """
    Request body:
    {
        "supplier_id": 1,
        "total_amount_cents": 500000,
        "purchase_date": "2025-01-05T09:00:00",
        "reference": "INV-778",
        "initial_payment_cents": 200000,
        "payment_method": "CASH"
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        shop_id = tenant_service.resolve_shop_from_request(data)

        purchase = purchase_service.create_purchase(
            shop_id,
            supplier_id=data.get("supplier_id"),
            total_amount_cents=data.get("total_amount_cents"),
            purchase_date=data.get("purchase_date"),
            reference=data.get("reference"),
            notes=data.get("notes"),
            initial_payment_cents=data.get("initial_payment_cents"),
            payment_method=data.get("payment_method", "CASH"),
            created_by_user_id=g.current_user.id,
        )
        return jsonify({"purchase": purchase.to_dict(include_payments=True)}), 201

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.post("/<int:purchase_id>/payments")
@require_auth
@require_permission("MANAGE_PURCHASES")
def record_purchase_payment_route(purchase_id: int):
    """Request body: {"amount_cents": 100000, "payment_method": "CASH", "reference": "...", "payment_date": "..."}"""
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        shop_id = tenant_service.resolve_shop_from_request(data)

        payment = purchase_service.record_purchase_payment(
            shop_id,
            purchase_id,
            amount_cents=data.get("amount_cents"),
            payment_method=data.get("payment_method", "CASH"),
            reference=data.get("reference"),
            payment_date=data.get("payment_date"),
            user_id=g.current_user.id,
        )
        purchase = purchase_service.get_purchase(shop_id, purchase_id)
        return jsonify({
            "payment": payment.to_dict(),
            "purchase": purchase.to_dict(include_payments=True),
        }), 201

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to record supplier payment")
        return jsonify({"error": "Internal server error"}), 500
