# Overview: Flask API routes for the caller's store settings and invitations.

from flask import Blueprint, g, jsonify, request

from ..decorators import get_uow, require_auth, require_manager
from ..services import store_service

stores_bp = Blueprint("stores", __name__, url_prefix="/api/store")


@stores_bp.get("")
@require_auth
def get_current_store():
    store = store_service.get_current_store(g.tenant, get_uow())
    return jsonify(store.to_dict()), 200


@stores_bp.put("")
@require_auth
@require_manager
def update_store():
    data = request.get_json(silent=True) or {}
    store = store_service.update_store(g.tenant, get_uow(), data)
    return jsonify(store.to_dict()), 200


@stores_bp.post("/invitations")
@require_auth
@require_manager
def invite_user():
    """
    Body: email, role (Staff|Manager), store_id? (SystemAdmin only)

    The response carries the invitation token so it can be delivered to
    the invitee out of band.
    """
    data = request.get_json(silent=True) or {}
    invitation = store_service.invite_user(
        g.tenant,
        get_uow(),
        data.get("email"),
        data.get("role", "Staff"),
        store_id=data.get("store_id"),
    )
    body = invitation.to_dict()
    body["token"] = invitation.token
    return jsonify(body), 201


@stores_bp.get("/invitations")
@require_auth
@require_manager
def list_invitations():
    include_used = request.args.get("include_used", "false").lower() == "true"
    invitations = store_service.list_invitations(g.tenant, get_uow(), include_used=include_used)
    return jsonify([inv.to_dict() for inv in invitations]), 200
