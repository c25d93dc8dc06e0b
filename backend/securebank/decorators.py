# Overview: Request decorators and credential helpers for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .services import session_service


UNAUTHORIZED_MESSAGE = "Unauthorized"

COOKIE_MAX_AGE_SECONDS = 7 * 24 * 60 * 60


def _cookie_name() -> str:
    return current_app.config.get("SESSION_COOKIE_NAME", "session")


def get_request_token() -> str | None:
    """
    Session token from the request's credential carrier.

    The session cookie is the primary carrier; an Authorization: Bearer
    header is accepted for API clients.
    """
    token = request.cookies.get(_cookie_name())
    if token:
        return token

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None

    return None


def set_session_cookie(response, token: str):
    response.set_cookie(
        _cookie_name(),
        token,
        max_age=COOKIE_MAX_AGE_SECONDS,
        path="/",
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", True),
        samesite="Strict",
    )
    return response


def clear_session_cookie(response):
    response.set_cookie(
        _cookie_name(),
        "",
        max_age=0,
        path="/",
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", True),
        samesite="Strict",
    )
    return response


def require_auth(f):
    """
    Require a valid session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_token: The plaintext token the caller presented
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 with one generic message whether the token is
    missing, unknown, expired (or about to), or badly signed.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_request_token()
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": UNAUTHORIZED_MESSAGE}), 401

        g.current_user = context.user
        g.session_token = token
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function
