# Overview: Flask API routes for customers and the store's default customer.

from flask import Blueprint, g, jsonify, request

from ..decorators import get_uow, require_auth, require_manager
from ..services import customer_service

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers():
    active_only = request.args.get("active_only", "false").lower() == "true"
    customers = customer_service.list_customers(g.tenant, get_uow(), active_only=active_only)
    return jsonify([c.to_dict() for c in customers]), 200


@customers_bp.get("/default")
@require_auth
def get_default_customer():
    customer = customer_service.get_or_create_default(g.tenant, get_uow())
    return jsonify(customer.to_dict()), 200


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer(customer_id: int):
    customer = customer_service.get_customer(g.tenant, get_uow(), customer_id)
    return jsonify(customer.to_dict()), 200


@customers_bp.post("")
@require_auth
@require_manager
def create_customer():
    data = request.get_json(silent=True) or {}
    store_id = data.pop("store_id", None)
    customer = customer_service.create_customer(g.tenant, get_uow(), data, store_id=store_id)
    return jsonify(customer.to_dict()), 201


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_manager
def update_customer(customer_id: int):
    data = request.get_json(silent=True) or {}
    customer = customer_service.update_customer(g.tenant, get_uow(), customer_id, data)
    return jsonify(customer.to_dict()), 200


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_manager
def delete_customer(customer_id: int):
    customer_service.delete_customer(g.tenant, get_uow(), customer_id)
    return "", 204
