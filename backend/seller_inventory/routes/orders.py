# Overview: Flask API routes for orders; creation, item changes and status transitions.

"""
Order routes.

Staff may place orders and change items; status changes need Manager
level. Every response carries the order's current items and totals.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import get_uow, require_auth, require_manager
from ..errors import ValidationError
from ..services import order_service

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders():
    orders = order_service.list_orders(g.tenant, get_uow(), status=request.args.get("status"))
    return jsonify([o.to_dict() for o in orders]), 200


@orders_bp.get("/mine")
@require_auth
def list_my_orders():
    orders = order_service.list_my_orders(g.tenant, get_uow())
    return jsonify([o.to_dict() for o in orders]), 200


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order(order_id: int):
    order, items = order_service.get_order_with_items(g.tenant, get_uow(), order_id)
    return jsonify(order.to_dict(items)), 200


@orders_bp.post("")
@require_auth
def create_order():
    """
    Body:
    {
        "items": [{"product_id": 1, "quantity": 2}, ...],
        "tax_cents": 0,
        "discount_cents": 0,
        "notes": "optional",
        "customer_id": null   # default customer when omitted
    }
    """
    data = request.get_json(silent=True) or {}
    order, items = order_service.create_order(
        g.tenant,
        get_uow(),
        data.get("items"),
        tax_cents=data.get("tax_cents", 0),
        discount_cents=data.get("discount_cents", 0),
        notes=data.get("notes"),
        customer_id=data.get("customer_id"),
    )
    return jsonify(order.to_dict(items)), 201


@orders_bp.post("/<int:order_id>/items")
@require_auth
def add_item(order_id: int):
    data = request.get_json(silent=True) or {}
    order, items = order_service.add_item(
        g.tenant, get_uow(), order_id, data.get("product_id"), data.get("quantity")
    )
    return jsonify(order.to_dict(items)), 200


@orders_bp.delete("/<int:order_id>/items/<int:item_id>")
@require_auth
def remove_item(order_id: int, item_id: int):
    order, items = order_service.remove_item(g.tenant, get_uow(), order_id, item_id)
    return jsonify(order.to_dict(items)), 200


@orders_bp.put("/<int:order_id>/status")
@require_auth
@require_manager
def update_status(order_id: int):
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        raise ValidationError("status is required")
    uow = get_uow()
    order = order_service.update_status(g.tenant, uow, order_id, data["status"])
    return jsonify(order.to_dict(order_service.get_order_items(uow, order))), 200
