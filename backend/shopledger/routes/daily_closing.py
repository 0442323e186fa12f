# Overview: Flask API routes for the end-of-day closing; parses input and returns JSON responses.

"""
Daily Closing API Routes

GET shows the day's aggregates next to the stored closing (closing_data is
null until the owner submits). POST merges the owner's entries with the
aggregates and upserts the closing; resubmitting the same day overwrites it.

SECURITY:
- VIEW_DAILY_CLOSING to read (workers included)
- SUBMIT_DAILY_CLOSING to write (owners only)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import closing_service, tenant_service
from ..services.closing_service import ClosingIntegrityError
from ..services.tenant_service import TenantAccessError
from ..validation import ConflictError, coerce_int, parse_date_field, require_json_object
from ..decorators import require_auth, require_permission
from shopledger.time_utils import local_today


daily_closing_bp = Blueprint("daily_closing", __name__, url_prefix="/api/daily-closing")


def _requested_day(value):
    if value in (None, ""):
        return local_today()
    return parse_date_field(value, "date")


@daily_closing_bp.get("")
@require_auth
@require_permission("VIEW_DAILY_CLOSING")
def get_daily_closing_route():
    """
    Aggregates and stored closing for one day.

    Query params:
    - date: YYYY-MM-DD (default: today, shop-local)
    - shop_id: required for SUPER_ADMIN

    Response:
    {
        "date": "...", "shop_id": 1,
        "sales_data": {...}, "loan_data": {...},
        "purchase_data": {...}, "service_fee_data": {...},
        "suggested_closing": {...},
        "closing_data": {...} | null
    }
    """
    try:
        shop_id = tenant_service.resolve_shop_from_request()
        day = _requested_day(request.args.get("date"))

        return jsonify(closing_service.get_closing(shop_id, day)), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to load daily closing")
        return jsonify({"error": "Internal server error"}), 500


@daily_closing_bp.post("")
@require_auth
@require_permission("SUBMIT_DAILY_CLOSING")
def submit_daily_closing_route():
    """
    Submit (or resubmit) the closing for a day.

    Request body: "date" (default today), any of the amount fields in paisa,
    "notes", and "explicit_zero": [field, ...] for fields whose 0 must be
    stored as entered instead of replaced by the day's aggregate.

    Returns 201 on first submission, 200 when an existing closing was updated.
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        shop_id = tenant_service.resolve_shop_from_request(data)
        day = _requested_day(data.pop("date", None))

        result = closing_service.submit_closing(
            shop_id,
            day,
            data,
            submitted_by_user_id=g.current_user.id,
        )
        return jsonify(result.to_dict()), 201 if result.created else 200

    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except ClosingIntegrityError:
        current_app.logger.exception("Daily closing failed its integrity check")
        return jsonify({"error": "Internal server error"}), 500
    except Exception:
        current_app.logger.exception("Failed to submit daily closing")
        return jsonify({"error": "Internal server error"}), 500


@daily_closing_bp.get("/history")
@require_auth
@require_permission("VIEW_DAILY_CLOSING")
def closing_history_route():
    """Most recent closings first. limit defaults to CLOSING_HISTORY_DEFAULT_LIMIT."""
    try:
        shop_id = tenant_service.resolve_shop_from_request()

        limit = request.args.get("limit")
        if limit in (None, ""):
            limit = current_app.config.get("CLOSING_HISTORY_DEFAULT_LIMIT", 30)
        limit = min(coerce_int(limit, "limit"), current_app.config.get("CLOSING_HISTORY_MAX_LIMIT", 365))

        closings = closing_service.closing_history(shop_id, limit)
        return jsonify({"closings": closings, "count": len(closings)}), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to load closing history")
        return jsonify({"error": "Internal server error"}), 500
