# Overview: Flask API routes for reports; parses input and returns JSON responses.

"""
Reporting API routes

Read-only rollups over a date range (default today, at most 366 days):
sales by payment method, service transactions by type, supplier payments by
supplier, and loss-making service transactions.
"""

from flask import Blueprint, request, jsonify, current_app, Response

from ..services import reporting_service, tenant_service
from ..services.reporting_service import ReportError
from ..services.tenant_service import TenantAccessError
from ..decorators import require_auth, require_permission


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
@require_auth
@require_permission("VIEW_REPORTS")
def summary_report_route():
    """Query params: start_date, end_date (YYYY-MM-DD), shop_id for SUPER_ADMIN."""
    try:
        shop_id = tenant_service.resolve_shop_from_request()
        report = reporting_service.summary_report(
            shop_id,
            start=request.args.get("start_date"),
            end=request.args.get("end_date"),
        )
        return jsonify(report), 200

    except (ReportError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to build summary report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/summary.csv")
@require_auth
@require_permission("VIEW_REPORTS")
def summary_report_csv_route():
    """Same report as /summary, flattened to CSV for spreadsheets."""
    try:
        shop_id = tenant_service.resolve_shop_from_request()
        report = reporting_service.summary_report(
            shop_id,
            start=request.args.get("start_date"),
            end=request.args.get("end_date"),
        )
        filename = f"summary_{report['start_date']}_{report['end_date']}.csv"
        return Response(
            reporting_service.summary_report_csv(report),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    except (ReportError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to export summary report")
        return jsonify({"error": "Internal server error"}), 500
