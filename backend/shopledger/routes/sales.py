# Overview: Flask API routes for POS sales; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service, tenant_service
from ..services.tenant_service import TenantAccessError
from ..validation import parse_date_field, require_json_object
from ..decorators import require_auth, require_permission


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_permission("RECORD_SALE")
def record_sale_route():
    """
    Request body:
    {
        "total_amount_cents": 150000,
        "payment_method": "CASH",
        "sale_date": "2025-01-05T10:00:00",   (optional, default now)
        "customer_name": "...", "notes": "..."
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        shop_id = tenant_service.resolve_shop_from_request(data)

        sale = sales_service.record_sale(
            shop_id,
            total_amount_cents=data.get("total_amount_cents"),
            payment_method=data.get("payment_method", "CASH"),
            sale_date=data.get("sale_date"),
            customer_name=data.get("customer_name"),
            notes=data.get("notes"),
            created_by_user_id=g.current_user.id,
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    """Sales, newest first. Optional ?date=YYYY-MM-DD narrows to one day."""
    try:
        shop_id = tenant_service.resolve_shop_from_request()
        day = request.args.get("date")

        sales = sales_service.list_sales(shop_id, parse_date_field(day, "date") if day else None)
        return jsonify({"sales": [sale.to_dict() for sale in sales], "count": len(sales)}), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500
