# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes.

- Register: the first account becomes admin, later ones start as sales
- Login returns a bearer token (plaintext, shown once)
- Logout revokes the presented token
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import get_bearer_token, require_auth
from ..permissions import get_role_permissions
from ..services import auth_service, session_service
from ..services.auth_service import PasswordValidationError
from ..validation import ConflictError, ValidationError


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_response(user, status: int, message: str):
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(get_role_permissions(user.role)),
        "token": token,
        "session": session.to_dict(),
        "message": message,
    }), status


@auth_bp.post("/register")
def register_route():
    """
    Body: {name, username, password, email?}

    Returns the new user and a session token, like login.
    """
    try:
        data = request.get_json(silent=True) or {}
        name = (data.get("name") or "").strip()
        username = (data.get("username") or "").strip()
        email = (data.get("email") or "").strip() or None
        password = data.get("password")

        if not all([name, username, password]):
            return jsonify({"error": "name, username and password required"}), 400
        if email and "@" not in email:
            return jsonify({"error": "email must be a valid email address"}), 400

        user = auth_service.register_user(name=name, username=username, password=password, email=email)
        return _session_response(user, 201, "Registration successful")

    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by username (or email) and password.

    Token must be included in the Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            current_app.logger.warning("Failed login for %s", username)
            return jsonify({"error": "Invalid credentials"}), 401
        if not user.is_active:
            return jsonify({"error": "Account is inactive"}), 401

        return _session_response(user, 200, "Login successful")

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the presented token. Unknown tokens are still a successful logout."""
    try:
        token = get_bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401
        revoked = session_service.revoke_session(token)
        return jsonify({"ok": True, "revoked": revoked}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(get_role_permissions(user.role)),
        "session": g.session_context.session.to_dict(),
    }), 200
