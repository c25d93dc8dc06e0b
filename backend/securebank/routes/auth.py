# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/securebank/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Fail-fast field validation on signup (first failing rule is returned)
- Generic "Invalid credentials" for every login failure
- Session token delivered as an HttpOnly, SameSite=Strict, Secure cookie
- One session per user: signup and login invalidate earlier sessions
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..validation import AuthenticationError, ConflictError, ValidationError
from ..decorators import (
    clear_session_cookie,
    get_request_token,
    require_auth,
    set_session_cookie,
)


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/signup")
def signup_route():
    """
    Register a user and log them in.

    Request body:
    {
        "email": "jane@example.com",
        "password": "Aa1!good!",
        "firstName": "Jane", "lastName": "Doe",
        "phoneNumber": "+14155550123",
        "dateOfBirth": "1990-01-01",
        "ssn": "123456789",
        "address": "123 Main St", "city": "Newark",
        "state": "NJ", "zipCode": "07001"
    }

    Returns:
        201: {user, token} and session cookie
        400: Validation failure (message names the field/rule)
        409: Email already registered
        500: Server error
    """
    try:
        data = request.get_json(silent=True)
        user, token = auth_service.signup(data)

        current_app.logger.info("New user signed up: user_id=%s", user.id)

        response = jsonify({"user": user.to_dict(), "token": token})
        response.status_code = 201
        return set_session_cookie(response, token)

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to sign up user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Any earlier session for the user is deleted.

    Returns:
        200: {user, token} and session cookie
        400: Missing fields
        401: Invalid credentials
        500: Server error
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user, token = auth_service.login(email, password)

        current_app.logger.info("User logged in: user_id=%s", user.id)

        response = jsonify({"user": user.to_dict(), "token": token})
        return set_session_cookie(response, token)

    except AuthenticationError as e:
        current_app.logger.warning("Failed login attempt from %s", request.remote_addr)
        return jsonify({"error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke the caller's session (logout).

    The session cookie is cleared on every response. When the caller has
    no live session the result is {"success": false, "message": "No
    active session"}, which is a normal outcome, not an error.
    """
    try:
        token = get_request_token()
        context = session_service.validate_session(token)

        if context:
            user_id = context.user.id
            success, message = auth_service.logout(token)
        else:
            success, message = False, auth_service.NO_ACTIVE_SESSION_MESSAGE

        if success:
            current_app.logger.info("User logged out: user_id=%s", user_id)

        response = jsonify({"success": success, "message": message})
        return clear_session_cookie(response)

    except Exception:
        current_app.logger.exception("Failed to logout user")
        response = jsonify({"error": "Internal server error"})
        response.status_code = 500
        return clear_session_cookie(response)


@auth_bp.get("/me")
@require_auth
def me_route():
    """Return the authenticated user."""
    return jsonify({"user": g.current_user.to_dict()})
