# Overview: Flask API routes for mobile-service transactions; parses input and returns JSON responses.

"""
Mobile Services API Routes

Load, EasyPaisa/JazzCash cash-in/cash-out, bank transfer and bill payment
transactions. Amounts are integer paisa.

SECURITY:
- VIEW_SERVICE_TRANSACTIONS for reads
- RECORD_SERVICE_TRANSACTION / EDIT_SERVICE_TRANSACTION for counter staff
- DELETE_SERVICE_TRANSACTION for owners only
- Ids from another shop answer 404, never 403
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import transaction_service, fee_service, tenant_service
from ..services.tenant_service import TenantAccessError
from ..models.fees import SERVICE_TYPES
from ..validation import NotFoundError, parse_cents, parse_date_field, require_choice, require_json_object
from ..decorators import require_auth, require_permission


mobile_services_bp = Blueprint("mobile_services", __name__, url_prefix="/api/mobile-services")


@mobile_services_bp.post("")
@require_auth
@require_permission("RECORD_SERVICE_TRANSACTION")
def create_transaction_route():
    """
    Record a service transaction.

    Request body:
    {
        "service_type": "MOBILE_LOAD",
        "load_provider": "JAZZ",          (MOBILE_LOAD only)
        "amount_cents": 100000,
        "discount_cents": 0,
        "commission_cents": 2600,          (optional manual override)
        "customer_name": "...", "phone_number": "...",
        "reference_id": "...", "notes": "...",
        "transaction_date": "2025-01-05T14:30:00"   (optional)
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        shop_id = tenant_service.resolve_shop_from_request(data)

        tx = transaction_service.create_transaction(
            shop_id,
            service_type=data.get("service_type"),
            load_provider=data.get("load_provider"),
            amount_cents=data.get("amount_cents"),
            discount_cents=data.get("discount_cents", 0),
            manual_commission_cents=data.get("commission_cents"),
            customer_name=data.get("customer_name"),
            phone_number=data.get("phone_number"),
            reference_id=data.get("reference_id"),
            notes=data.get("notes"),
            status=data.get("status"),
            transaction_date=data.get("transaction_date"),
            created_by_user_id=g.current_user.id,
        )
        return jsonify({"transaction": tx.to_dict()}), 201

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to record service transaction")
        return jsonify({"error": "Internal server error"}), 500


@mobile_services_bp.post("/quote")
@require_auth
@require_permission("RECORD_SERVICE_TRANSACTION")
def quote_commission_route():
    """
    Suggested commission for an amount, for the entry form to show as the
    cashier types. Nothing is stored.
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        shop_id = tenant_service.resolve_shop_from_request(data)

        service_type = require_choice(data.get("service_type"), "service_type", SERVICE_TYPES)
        amount_cents = parse_cents(data.get("amount_cents"), "amount_cents")

        quote = fee_service.quote_commission(shop_id, service_type, amount_cents)
        return jsonify({"service_type": service_type, "amount_cents": amount_cents, **quote.to_dict()}), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to quote commission")
        return jsonify({"error": "Internal server error"}), 500


@mobile_services_bp.get("")
@require_auth
@require_permission("VIEW_SERVICE_TRANSACTIONS")
def list_transactions_route():
    """
    List transactions, newest first.

    Query params: service_type, status, search, start_date, end_date,
    page (default 1), limit (default SERVICE_TRANSACTIONS_PAGE_SIZE).
    """
    try:
        shop_id = tenant_service.resolve_shop_from_request()

        start_date = request.args.get("start_date")
        end_date = request.args.get("end_date")

        result = transaction_service.list_transactions(
            shop_id,
            service_type=request.args.get("service_type"),
            status=request.args.get("status"),
            search=request.args.get("search"),
            start_date=parse_date_field(start_date, "start_date") if start_date else None,
            end_date=parse_date_field(end_date, "end_date") if end_date else None,
            page=request.args.get("page", 1, type=int),
            limit=request.args.get(
                "limit",
                current_app.config.get("SERVICE_TRANSACTIONS_PAGE_SIZE", 20),
                type=int,
            ),
        )
        return jsonify(result), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to list service transactions")
        return jsonify({"error": "Internal server error"}), 500


@mobile_services_bp.get("/<int:transaction_id>")
@require_auth
@require_permission("VIEW_SERVICE_TRANSACTIONS")
def get_transaction_route(transaction_id: int):
    try:
        shop_id = tenant_service.resolve_shop_from_request()
        tx = transaction_service.get_transaction(shop_id, transaction_id)
        return jsonify({"transaction": tx.to_dict()}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to load service transaction")
        return jsonify({"error": "Internal server error"}), 500


@mobile_services_bp.patch("/<int:transaction_id>")
@require_auth
@require_permission("EDIT_SERVICE_TRANSACTION")
def update_transaction_route(transaction_id: int):
    """
    Partial update. net_commission_cents is re-derived from the resulting
    commission and discount; the fee schedule is not re-applied.
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        shop_id = tenant_service.resolve_shop_from_request(data)

        tx = transaction_service.update_transaction(
            shop_id,
            transaction_id,
            data,
            user_id=g.current_user.id,
        )
        return jsonify({"transaction": tx.to_dict()}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to update service transaction")
        return jsonify({"error": "Internal server error"}), 500


@mobile_services_bp.delete("/<int:transaction_id>")
@require_auth
@require_permission("DELETE_SERVICE_TRANSACTION")
def delete_transaction_route(transaction_id: int):
    try:
        shop_id = tenant_service.resolve_shop_from_request()
        transaction_service.delete_transaction(shop_id, transaction_id, user_id=g.current_user.id)
        return jsonify({"message": "Transaction deleted successfully"}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to delete service transaction")
        return jsonify({"error": "Internal server error"}), 500
