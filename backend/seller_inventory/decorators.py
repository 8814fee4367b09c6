# Overview: Request decorators that authenticate the caller and establish the tenant context.

from functools import wraps

from flask import g, jsonify, request

from .models import UserRole
from .persistence import UnitOfWork
from .services import session_service


def get_uow() -> UnitOfWork:
    """
    The request's unit of work, created on first use.

    Bound to the request-scoped db.session; the app teardown removes the
    session, which rolls back anything left uncommitted.
    """
    if "uow" not in g:
        g.uow = UnitOfWork()
    return g.uow


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require authentication and establish tenant context.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.tenant: Immutable TenantContext (store id, user id, role)
    - g.session_context: The full SessionContext object

    Routes pass g.tenant explicitly into services; services never read g.

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account or store deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(get_uow(), token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.tenant = context.tenant
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: UserRole):
    """
    Coarse route gate on the session's role. Services re-check.

    SystemAdmin always passes.
    """
    allowed = {UserRole.parse(r) for r in roles}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            tenant = getattr(g, "tenant", None)
            if tenant is None:
                return jsonify({"error": "Authentication required"}), 401

            if not tenant.is_system_admin and tenant.role not in allowed:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": sorted(r.value for r in allowed),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


# Shorthand for the common Manager-level gate
require_manager = require_role(UserRole.MANAGER)
