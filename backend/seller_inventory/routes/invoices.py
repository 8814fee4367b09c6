# Overview: Flask API routes for invoices and payment recording.

from flask import Blueprint, g, jsonify, request

from ..decorators import get_uow, require_auth, require_manager
from ..errors import ValidationError
from ..services import invoice_service

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


def _serialize(uow, invoices):
    numbers = invoice_service.order_numbers(uow, invoices)
    return [inv.to_dict(order_number=numbers.get(inv.order_id)) for inv in invoices]


@invoices_bp.get("")
@require_auth
def list_invoices():
    uow = get_uow()
    invoices = invoice_service.list_invoices(
        g.tenant, uow, payment_status=request.args.get("payment_status")
    )
    return jsonify(_serialize(uow, invoices)), 200


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice(invoice_id: int):
    uow = get_uow()
    invoice = invoice_service.get_invoice(g.tenant, uow, invoice_id)
    return jsonify(_serialize(uow, [invoice])[0]), 200


@invoices_bp.get("/by-order/<int:order_id>")
@require_auth
def get_invoice_by_order(order_id: int):
    uow = get_uow()
    invoice = invoice_service.get_invoice_by_order(g.tenant, uow, order_id)
    return jsonify(_serialize(uow, [invoice])[0]), 200


@invoices_bp.post("")
@require_auth
@require_manager
def create_invoice():
    """Body: order_id, due_date? (ISO-8601), notes?"""
    data = request.get_json(silent=True) or {}
    if data.get("order_id") is None:
        raise ValidationError("order_id is required")
    uow = get_uow()
    invoice = invoice_service.create_invoice(
        g.tenant,
        uow,
        data["order_id"],
        due_date=data.get("due_date"),
        notes=data.get("notes"),
    )
    return jsonify(_serialize(uow, [invoice])[0]), 201


@invoices_bp.put("/<int:invoice_id>/payment")
@require_auth
def update_payment(invoice_id: int):
    """Body: {"amount_paid_cents": int}. The running amount paid, not an increment."""
    data = request.get_json(silent=True) or {}
    if "amount_paid_cents" not in data:
        raise ValidationError("amount_paid_cents is required")
    uow = get_uow()
    invoice = invoice_service.update_payment(g.tenant, uow, invoice_id, data["amount_paid_cents"])
    return jsonify(_serialize(uow, [invoice])[0]), 200


@invoices_bp.post("/<int:invoice_id>/mark-paid")
@require_auth
@require_manager
def mark_as_paid(invoice_id: int):
    uow = get_uow()
    invoice = invoice_service.mark_as_paid(g.tenant, uow, invoice_id)
    return jsonify(_serialize(uow, [invoice])[0]), 200


@invoices_bp.delete("/<int:invoice_id>")
@require_auth
@require_manager
def delete_invoice(invoice_id: int):
    invoice_service.delete_invoice(g.tenant, get_uow(), invoice_id)
    return "", 204
