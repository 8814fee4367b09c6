# Overview: Flask API routes for authentication, store registration and invitation acceptance.

from flask import Blueprint, g, jsonify, request

from ..decorators import bearer_token, get_uow, require_auth
from ..services import auth_service, store_service
from ..time_utils import to_utc_z

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register-store")
def register_store():
    """
    Create a store and its first Manager, and sign the manager in.

    Body: store_name, store_slug?, location?, address?, industry?, currency?,
    owner_username, owner_email, owner_password, owner_full_name
    """
    data = request.get_json(silent=True) or {}
    store, owner, token = store_service.register_store(get_uow(), data)
    return jsonify({
        "store": store.to_dict(),
        "user": owner.to_dict(),
        "token": token,
    }), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    user, token, expires_at = auth_service.login(get_uow(), data.get("username"), data.get("password"))
    return jsonify({
        "token": token,
        "expires_at": to_utc_z(expires_at),
        "user": user.to_dict(),
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout():
    revoked = auth_service.logout(get_uow(), bearer_token())
    return jsonify({"revoked": revoked}), 200


@auth_bp.get("/me")
@require_auth
def current_user():
    return jsonify(g.current_user.to_dict()), 200


@auth_bp.post("/invitations/accept")
def accept_invitation():
    """Body: token, username, password, full_name, email?"""
    data = request.get_json(silent=True) or {}
    user, token = store_service.accept_invitation(
        get_uow(),
        data.get("token"),
        username=data.get("username"),
        password=data.get("password"),
        full_name=data.get("full_name"),
        email=data.get("email"),
    )
    return jsonify({"user": user.to_dict(), "token": token}), 201
