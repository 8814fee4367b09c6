# Overview: Flask API routes for managing the users of the caller's store.

from flask import Blueprint, g, jsonify, request

from ..decorators import get_uow, require_auth, require_manager
from ..services import user_service

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_manager
def list_users():
    """
    Query params:
    - include_inactive: bool (default true)
    """
    include_inactive = request.args.get("include_inactive", "true").lower() == "true"
    users = user_service.list_users(g.tenant, get_uow(), include_inactive=include_inactive)
    return jsonify([u.to_dict() for u in users]), 200


@users_bp.get("/<int:user_id>")
@require_auth
@require_manager
def get_user(user_id: int):
    user = user_service.get_user(g.tenant, get_uow(), user_id)
    return jsonify(user.to_dict()), 200


@users_bp.post("")
@require_auth
@require_manager
def create_user():
    """Body: username, email, password, full_name, role (Staff|Manager), store_id? (SystemAdmin only)"""
    data = request.get_json(silent=True) or {}
    store_id = data.pop("store_id", None)
    user = user_service.create_user(g.tenant, get_uow(), data, store_id=store_id)
    return jsonify(user.to_dict()), 201


@users_bp.put("/<int:user_id>")
@require_auth
@require_manager
def update_user(user_id: int):
    data = request.get_json(silent=True) or {}
    user = user_service.update_user(g.tenant, get_uow(), user_id, data)
    return jsonify(user.to_dict()), 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_manager
def delete_user(user_id: int):
    user_service.delete_user(g.tenant, get_uow(), user_id)
    return "", 204


@users_bp.post("/<int:user_id>/toggle-active")
@require_auth
@require_manager
def toggle_active(user_id: int):
    user = user_service.toggle_active(g.tenant, get_uow(), user_id)
    return jsonify({"id": user.id, "is_active": user.is_active}), 200


@users_bp.post("/<int:user_id>/reset-password")
@require_auth
@require_manager
def reset_password(user_id: int):
    """
    Body: new_password

    Every session of the user is revoked.
    """
    data = request.get_json(silent=True) or {}
    revoked = user_service.reset_password(g.tenant, get_uow(), user_id, data.get("new_password"))
    return jsonify({"message": "Password reset", "sessions_revoked": revoked}), 200


@users_bp.post("/change-password")
@require_auth
def change_password():
    """Body: current_password, new_password"""
    data = request.get_json(silent=True) or {}
    user_service.change_password(g.tenant, get_uow(), data.get("current_password"), data.get("new_password"))
    return jsonify({"message": "Password changed"}), 200
