# Overview: Flask API routes for customer loans and installments; parses input and returns JSON responses.

"""
Loans API Routes

Loans are split into monthly installments at creation. Remaining balances of
active and suspended loans feed the daily closing's loan field.

SECURITY:
- VIEW_LOANS to read
- MANAGE_LOANS to create or delete (owners only)
- RECORD_INSTALLMENT_PAYMENT to take a payment at the counter
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import loan_service, tenant_service
from ..services.tenant_service import TenantAccessError
from ..validation import ConflictError, NotFoundError, require_json_object
from ..decorators import require_auth, require_permission


loans_bp = Blueprint("loans", __name__, url_prefix="/api/loans")


@loans_bp.get("")
@require_auth
@require_permission("VIEW_LOANS")
def list_loans_route():
    """
    List loans, newest first, with portfolio stats.

    Query params: status, page (default 1), limit (default LOANS_PAGE_SIZE).
    """
    try:
        shop_id = tenant_service.resolve_shop_from_request()
        result = loan_service.list_loans_page(
            shop_id,
            status=request.args.get("status"),
            page=request.args.get("page", 1, type=int),
            limit=request.args.get("limit", current_app.config.get("LOANS_PAGE_SIZE", 20), type=int),
        )
        return jsonify(result), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to list loans")
        return jsonify({"error": "Internal server error"}), 500


@loans_bp.post("")
@require_auth
@require_permission("MANAGE_LOANS")
def create_loan_route():
    """
    Create a loan with its installment schedule.

    Request body:
    {
        "customer_id": 1,
        "loan_number": "L-0001",
        "principal_cents": 1000000,
        "interest_rate_bps": 500,
        "total_installments": 3,
        "start_date": "2025-01-01",
        "notes": "..."
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        shop_id = tenant_service.resolve_shop_from_request(data)

        loan = loan_service.create_loan(
            shop_id,
            customer_id=data.get("customer_id"),
            loan_number=data.get("loan_number"),
            principal_cents=data.get("principal_cents"),
            interest_rate_bps=data.get("interest_rate_bps", 0),
            total_installments=data.get("total_installments"),
            start_date=data.get("start_date"),
            notes=data.get("notes"),
            created_by_user_id=g.current_user.id,
        )
        return jsonify({"loan": loan.to_dict(include_installments=True)}), 201

    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to create loan")
        return jsonify({"error": "Internal server error"}), 500


@loans_bp.get("/overdue")
@require_auth
@require_permission("VIEW_LOANS")
def overdue_loans_route():
    try:
        shop_id = tenant_service.resolve_shop_from_request()
        loans = loan_service.list_overdue_loans(shop_id)
        return jsonify({"loans": [loan.to_dict() for loan in loans], "count": len(loans)}), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to list overdue loans")
        return jsonify({"error": "Internal server error"}), 500


@loans_bp.get("/<int:loan_id>")
@require_auth
@require_permission("VIEW_LOANS")
def get_loan_route(loan_id: int):
    try:
        shop_id = tenant_service.resolve_shop_from_request()
        loan = loan_service.get_loan(shop_id, loan_id)
        return jsonify({"loan": loan.to_dict(include_installments=True)}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to load loan")
        return jsonify({"error": "Internal server error"}), 500


@loans_bp.delete("/<int:loan_id>")
@require_auth
@require_permission("MANAGE_LOANS")
def delete_loan_route(loan_id: int):
    try:
        shop_id = tenant_service.resolve_shop_from_request()
        loan_service.delete_loan(shop_id, loan_id, user_id=g.current_user.id)
        return jsonify({"message": "Loan deleted successfully"}), 200

    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to delete loan")
        return jsonify({"error": "Internal server error"}), 500


@loans_bp.post("/<int:loan_id>/installments/<int:installment_id>/payments")
@require_auth
@require_permission("RECORD_INSTALLMENT_PAYMENT")
def record_installment_payment_route(loan_id: int, installment_id: int):
    """
    Request body: {"amount_cents": 50000, "paid_date": "2025-02-01"}

    The amount may not exceed what is still owed on the installment.
    """
    try:
        data = require_json_object(request.get_json(silent=True) or {})
        shop_id = tenant_service.resolve_shop_from_request(data)

        loan = loan_service.record_installment_payment(
            shop_id,
            loan_id,
            installment_id,
            data.get("amount_cents"),
            paid_date=data.get("paid_date"),
            user_id=g.current_user.id,
        )
        return jsonify({"loan": loan.to_dict(include_installments=True)}), 200

    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to record installment payment")
        return jsonify({"error": "Internal server error"}), 500
