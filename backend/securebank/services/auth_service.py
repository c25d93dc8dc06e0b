# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Signup, login and logout orchestration. Field validation fails fast,
secrets are bcrypt-hashed before they touch the database, and every
successful signup/login goes through session_service.issue so a user never
holds more than one session.

SECURITY NOTES:
- Passwords hashed with bcrypt (BCRYPT_PASSWORD_ROUNDS, default 10)
- SSNs hashed independently with bcrypt (BCRYPT_SSN_ROUNDS, default 12)
- Login failures are indistinguishable: unknown email and wrong password
  both raise AuthenticationError("Invalid credentials")
- Emails are normalized (trimmed, lowercased) on both signup and login
"""

from __future__ import annotations

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..validation import (
    AuthenticationError,
    ConflictError,
    validate_signup_payload,
)
from . import session_service


INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
NO_ACTIVE_SESSION_MESSAGE = "No active session"
LOGGED_OUT_MESSAGE = "Logged out successfully"


def _hash_secret(secret: str, rounds: int) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(secret.encode("utf-8"), salt)
    return hashed.decode("utf-8")  # Store as string in database


def _check_secret(secret: str, hashed: str) -> bool:
    # bcrypt.checkpw() is timing-safe; malformed hashes count as a mismatch
    try:
        return bcrypt.checkpw(secret.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def hash_password(password: str) -> str:
    return _hash_secret(password, current_app.config.get("BCRYPT_PASSWORD_ROUNDS", 10))


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise.
    """
    return _check_secret(password, password_hash)


def hash_ssn(ssn: str) -> str:
    return _hash_secret(ssn, current_app.config.get("BCRYPT_SSN_ROUNDS", 12))


def verify_ssn(ssn: str, ssn_hash: str) -> bool:
    return _check_secret(ssn, ssn_hash)


def normalize_email(email) -> str:
    if not isinstance(email, str):
        return ""
    return email.strip().lower()


def signup(payload: dict) -> tuple[User, str]:
    """
    Register a new user and open their first session.

    Returns (user, plaintext_token).

    Raises:
        ValidationError: first field that fails validation
        ConflictError: email already registered
    """
    fields = validate_signup_payload(payload)

    existing = db.session.query(User).filter_by(email=fields["email"]).first()
    if existing:
        raise ConflictError("User already exists")

    password = fields.pop("password")
    ssn = fields.pop("ssn")

    user = User(
        password_hash=hash_password(password),
        ssn_hash=hash_ssn(ssn),
        **fields,
    )

    try:
        db.session.add(user)
        db.session.flush()
        # User row and first session commit together
        _, token = session_service.replace_user_sessions(user.id)
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same email
        db.session.rollback()
        raise ConflictError("User already exists")

    return user, token


def authenticate(email: str, password: str) -> User | None:
    """
    Return the User for valid credentials, None otherwise.

    WHY: Central authentication function. Unknown email and wrong password
    take the same path out so callers cannot tell them apart.
    """
    normalized = normalize_email(email)
    if not normalized or not isinstance(password, str) or not password:
        return None

    user = db.session.query(User).filter_by(email=normalized).first()
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user


def login(email: str, password: str) -> tuple[User, str]:
    """
    Authenticate and issue a fresh session, deleting any earlier ones.

    Raises AuthenticationError on bad credentials.
    """
    user = authenticate(email, password)
    if not user:
        raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

    _, token = session_service.issue_session(user.id)
    return user, token


def logout(token: str | None) -> tuple[bool, str]:
    """
    Revoke the caller's session.

    Returns (success, message). success=False with "No active session" is
    a normal outcome, not an error.
    """
    if session_service.revoke_session(token):
        return True, LOGGED_OUT_MESSAGE
    return False, NO_ACTIVE_SESSION_MESSAGE
