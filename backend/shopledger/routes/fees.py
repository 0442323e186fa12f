# Overview: Flask API routes for commission fee settings; parses input and returns JSON responses.

"""
Fee settings API routes

One rule per service type: slab, percentage or flat-per-thousand. Service
types the shop never configured are reported with their default flat rate
and "is_default": true.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import fee_service, tenant_service
from ..services.tenant_service import TenantAccessError
from ..validation import require_json_object
from ..decorators import require_auth, require_permission


fees_bp = Blueprint("fees", __name__, url_prefix="/api/settings/fees")


@fees_bp.get("")
@require_auth
@require_permission("VIEW_FEE_SETTINGS")
def get_fee_settings_route():
    try:
        shop_id = tenant_service.resolve_shop_from_request()
        return jsonify({"rules": fee_service.get_fee_settings(shop_id)}), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to load fee settings")
        return jsonify({"error": "Internal server error"}), 500


@fees_bp.put("")
@require_auth
@require_permission("MANAGE_FEE_SETTINGS")
def update_fee_settings_route():
    """
    Replace the rules for the service types listed.

    Request body:
    {
        "rules": [
            {"service_type": "EASYPAISA_CASHIN", "is_percentage": false, "rate": "10.00"},
            {"service_type": "EASYPAISA_CASHOUT", "use_slabs": true, "slabs": [
                {"min_amount_cents": 0, "max_amount_cents": 100000, "fee_cents": 2000}
            ]}
        ]
    }

    The whole list is validated before anything is written; overlapping
    slabs reject the request.
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        shop_id = tenant_service.resolve_shop_from_request(data)

        rules = fee_service.update_fee_settings(shop_id, data.get("rules"), user_id=g.current_user.id)
        return jsonify({"rules": rules, "message": "Fee settings updated"}), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to update fee settings")
        return jsonify({"error": "Internal server error"}), 500
