# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import current_app, g, jsonify, request

from .permissions import get_permission_definition, role_allows
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def get_bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require a live session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    Returns 401 if there is no Authorization header, the token is invalid,
    expired or revoked, or the account has been deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """
    Require the current user's role to allow an operation.

    Must be stacked under @require_auth.
    """
    definition = get_permission_definition(permission_code)
    if definition is None:
        raise ValueError(f"Unknown permission code: {permission_code}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            if not role_allows(user.role, permission_code):
                current_app.logger.warning(
                    "Permission denied: user=%s role=%s permission=%s path=%s",
                    user.username, user.role, permission_code, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                    "message": f"Access denied. Your role ({user.role}) cannot {definition['name'].lower()}.",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
