# Overview: Flask API routes for sales reports.

from flask import Blueprint, g, jsonify, request

from ..decorators import get_uow, require_auth, require_manager
from ..errors import ValidationError
from ..services import report_service

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/daily-sales")
@require_auth
@require_manager
def daily_sales():
    """Query params: date=YYYY-MM-DD (defaults to today, UTC)."""
    report = report_service.daily_sales(g.tenant, get_uow(), request.args.get("date"))
    return jsonify(report), 200


@reports_bp.get("/sales-summary")
@require_auth
@require_manager
def sales_summary():
    """Query params: start_date, end_date (YYYY-MM-DD, inclusive)."""
    start = request.args.get("start_date")
    end = request.args.get("end_date")
    if not start or not end:
        raise ValidationError("start_date and end_date are required")
    report = report_service.sales_summary(g.tenant, get_uow(), start, end)
    return jsonify(report), 200
