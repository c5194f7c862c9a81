# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/colporter/routes/auth.py
"""
Authentication API routes.

Login returns the user, the permission codes of the user's role and a
bearer token. The dashboard derives its edit/confirm capabilities from the
permission list once, at login.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Request body:
    {
        "username": str (or "email"),
        "password": str
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        identifier = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([identifier, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(identifier, password)

        if not user:
            current_app.logger.info("Failed login for %r from %s", identifier, request.remote_addr)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr
        )

        return jsonify({
            "user": user.to_dict(),
            "permissions": sorted(permission_service.get_user_permissions(user)),
            "token": token,
            "session": session.to_dict(),
            "program_id": session.program_id,
            "settings": {
                "count_success_notice_seconds": current_app.config["COUNT_SUCCESS_NOTICE_SECONDS"],
            },
            "message": "Login successful"
        }), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        token = request.headers["Authorization"].split(" ", 1)[1]
        session_service.revoke_session(token)
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.current_user.to_dict(),
        "permissions": sorted(permission_service.get_user_permissions(g.current_user)),
        "program_id": g.program_id,
    }), 200
