# Overview: Flask API routes for categories; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import get_uow, require_auth, require_manager
from ..services import catalog_service

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
def list_categories():
    active_only = request.args.get("active_only", "false").lower() == "true"
    categories = catalog_service.list_categories(g.tenant, get_uow(), active_only=active_only)
    return jsonify([c.to_dict() for c in categories]), 200


@categories_bp.get("/<int:category_id>")
@require_auth
def get_category(category_id: int):
    category = catalog_service.get_category(g.tenant, get_uow(), category_id)
    return jsonify(category.to_dict()), 200


@categories_bp.post("")
@require_auth
@require_manager
def create_category():
    data = request.get_json(silent=True) or {}
    store_id = data.pop("store_id", None)
    category = catalog_service.create_category(g.tenant, get_uow(), data, store_id=store_id)
    return jsonify(category.to_dict()), 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_manager
def update_category(category_id: int):
    data = request.get_json(silent=True) or {}
    category = catalog_service.update_category(g.tenant, get_uow(), category_id, data)
    return jsonify(category.to_dict()), 200


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_manager
def delete_category(category_id: int):
    catalog_service.delete_category(g.tenant, get_uow(), category_id)
    return "", 204
