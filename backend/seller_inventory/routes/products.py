# Overview: Flask API routes for products, stock corrections and bulk import.

"""
Product management routes.

MULTI-TENANT: All product operations are scoped to the caller's store
(g.tenant, set by @require_auth). SystemAdmin sees every store.

SECURITY: All routes require authentication.
- Read operations are open to every store user
- Write operations, stock corrections and import require Manager level
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import get_uow, require_auth, require_manager
from ..errors import ValidationError
from ..services import catalog_service

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _serialize(uow, products):
    names = catalog_service.category_names(uow, products)
    return [p.to_dict(category_name=names.get(p.category_id)) for p in products]


@products_bp.get("")
@require_auth
def list_products():
    """
    Query params:
    - category_id: int (optional)
    - active_only: "true" to hide inactive products
    """
    uow = get_uow()
    products = catalog_service.list_products(
        g.tenant,
        uow,
        category_id=request.args.get("category_id", type=int),
        active_only=request.args.get("active_only", "false").lower() == "true",
    )
    return jsonify(_serialize(uow, products)), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    uow = get_uow()
    product = catalog_service.get_product(g.tenant, uow, product_id)
    return jsonify(_serialize(uow, [product])[0]), 200


@products_bp.post("")
@require_auth
@require_manager
def create_product():
    data = request.get_json(silent=True) or {}
    store_id = data.pop("store_id", None)
    uow = get_uow()
    product = catalog_service.create_product(g.tenant, uow, data, store_id=store_id)
    return jsonify(_serialize(uow, [product])[0]), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_manager
def update_product(product_id: int):
    data = request.get_json(silent=True) or {}
    uow = get_uow()
    product = catalog_service.update_product(g.tenant, uow, product_id, data)
    return jsonify(_serialize(uow, [product])[0]), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_manager
def delete_product(product_id: int):
    catalog_service.delete_product(g.tenant, get_uow(), product_id)
    return "", 204


@products_bp.put("/<int:product_id>/stock")
@require_auth
@require_manager
def update_stock(product_id: int):
    """Body: {"quantity": int >= 0}. Sets stock unconditionally."""
    data = request.get_json(silent=True) or {}
    if "quantity" not in data:
        raise ValidationError("quantity is required")
    uow = get_uow()
    product = catalog_service.update_stock(g.tenant, uow, product_id, data["quantity"])
    return jsonify(_serialize(uow, [product])[0]), 200


@products_bp.post("/import")
@require_auth
@require_manager
def import_products():
    """
    Body: {"products": [...], "store_id"?: int} or a bare list of rows.

    Always 200: per-row outcomes are in the result list.
    """
    data = request.get_json(silent=True)
    store_id = None
    rows = data
    if isinstance(data, dict):
        rows = data.get("products")
        store_id = data.get("store_id")
    results = catalog_service.import_products(g.tenant, get_uow(), rows, store_id=store_id)
    return jsonify({
        "imported": sum(1 for r in results if r.success),
        "failed": sum(1 for r in results if not r.success),
        "results": [r.to_dict() for r in results],
    }), 200
