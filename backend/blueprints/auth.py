import logging

from flask import Blueprint, g, jsonify, request

from config import Config
from utils.decorators import rate_limit, token_required
from utils.errors import _sanitize_error_message
from utils.services import get_auth_service, get_user_service

logger = logging.getLogger(__name__)
auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _public_user(user: dict) -> dict:
    return {
        "user_id": user["user_id"],
        "username": user["username"],
        "email": user["email"],
        "role": user["role"],
    }


@auth_bp.route("/register", methods=["POST"])
@rate_limit(Config.AUTH_RATE_LIMIT_CALLS, Config.AUTH_RATE_LIMIT_WINDOW_SECONDS)
def api_register():
    """Register a job seeker or employer and sign them in."""
    try:
        data = request.get_json(silent=True)
        if not data:
            return jsonify({"error": "No data provided"}), 400

        username = data.get("username")
        email = data.get("email")
        password = data.get("password")
        role = data.get("role") or "jobseeker"

        if not all([username, email, password]):
            return jsonify({"error": "Username, email, and password are required"}), 400

        auth_service = get_auth_service()
        user_id = auth_service.register_user(username, email, password, role=role)

        user = {"user_id": user_id, "username": username, "email": email, "role": role}
        session = auth_service.issue_session(user)
        return (
            jsonify(
                {
                    "message": "User registered successfully",
                    "user": _public_user(user),
                    **session,
                }
            ),
            201,
        )

    except ValueError as e:
        return jsonify({"error": str(e)}), 400


@auth_bp.route("/login", methods=["POST"])
@rate_limit(Config.AUTH_RATE_LIMIT_CALLS, Config.AUTH_RATE_LIMIT_WINDOW_SECONDS)
def api_login():
    """Log a user in and return an access/refresh token pair."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No data provided"}), 400

    username_or_email = data.get("username") or data.get("email")
    password = data.get("password")

    if not all([username_or_email, password]):
        return jsonify({"error": "Username/email and password are required"}), 400

    auth_service = get_auth_service()
    user = auth_service.authenticate_user(username_or_email, password)

    if not user:
        return jsonify({"error": "Invalid username or password"}), 401

    session = auth_service.issue_session(user)
    return jsonify({"message": "Login successful", "user": _public_user(user), **session}), 200


@auth_bp.route("/refresh", methods=["POST"])
def api_refresh():
    """Exchange a refresh token for a new token pair."""
    data = request.get_json(silent=True) or {}
    refresh_token = data.get("refresh_token")
    if not refresh_token:
        return jsonify({"error": "Refresh token is required", "reason": "missing"}), 401

    session = get_auth_service().refresh_session(refresh_token)
    return jsonify(session), 200


@auth_bp.route("/logout", methods=["POST"])
def api_logout():
    """Acknowledge logout. Tokens are stateless, so the client discards them."""
    return jsonify({"message": "Logged out"}), 200


@auth_bp.route("/me", methods=["GET"])
@token_required()
def api_me():
    """Return the signed-in user's profile."""
    try:
        user = get_user_service().get_user_by_id(int(g.claims.subject))
    except ValueError:
        user = None
    except Exception as e:
        logger.error(f"Error fetching user {g.claims.subject}: {e}", exc_info=True)
        return jsonify({"error": _sanitize_error_message(e)}), 500

    if not user:
        return jsonify({"error": "User not found"}), 404
    return jsonify({"user": _public_user(user)}), 200
