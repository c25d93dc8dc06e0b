# Overview: Service-layer operations for sessions; encapsulates business logic and database work.

"""
Session Token Management Service

WHY: A user holds at most one valid session system-wide. Logging in (or
signing up) deletes every earlier session for that user before the new one
is written, so concurrent multi-device sessions are deliberately impossible.

SECURITY FEATURES:
- Tokens are HS256-signed JWTs (sub, iat, exp, random jti)
- Only the SHA-256 hash of a token is stored
- 7-day absolute lifetime (SESSION_TTL)
- Expiry is enforced lazily whenever a session is read, with a 90-second
  safety window: a session that would expire within the window is treated
  as already expired and deleted on the spot
- Revocable on logout

States per user: NO_SESSION -> ACTIVE -> (EXPIRED | REVOKED) -> NO_SESSION
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

import jwt
from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError

from ..extensions import db
from ..models import Session, User
from securebank.time_utils import utcnow
from .concurrency import run_with_retry


# Configuration constants (overridable through app config)
SESSION_TTL = timedelta(days=7)
SESSION_SAFETY_WINDOW = timedelta(seconds=90)

TOKEN_ALGORITHM = "HS256"


@dataclass
class SessionContext:
    """Result of a successful validate_session."""
    user: User
    session: Session


def _session_ttl() -> timedelta:
    return current_app.config.get("SESSION_TTL", SESSION_TTL)


def _safety_window() -> timedelta:
    return current_app.config.get("SESSION_SAFETY_WINDOW", SESSION_SAFETY_WINDOW)


def generate_token(user_id: int, issued_at: datetime | None = None) -> str:
    """
    Mint a signed session token for user_id.

    The random jti makes every token unique, even two minted for the same
    user within the same second.
    """
    issued_at = issued_at or utcnow()
    claims = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + _session_ttl(),
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(claims, current_app.config["SECRET_KEY"], algorithm=TOKEN_ALGORITHM)


def decode_token(token: str) -> dict | None:
    """Verify signature and expiry; returns the claims or None."""
    try:
        return jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=[TOKEN_ALGORITHM])
    except jwt.InvalidTokenError:
        return None


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    SHA-256 is faster and sufficient for high-entropy inputs.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def is_expired(session: Session, now: datetime | None = None) -> bool:
    """True once now + safety window reaches expires_at."""
    now = now or utcnow()
    return now + _safety_window() >= session.expires_at


def replace_user_sessions(user_id: int) -> tuple[Session, str]:
    """
    Delete all sessions for user_id and stage exactly one new one.

    Does not commit; the caller owns the transaction (signup uses this to
    write the user and the session atomically).
    """
    db.session.query(Session).filter_by(user_id=user_id).delete(synchronize_session=False)

    now = utcnow()
    plaintext_token = generate_token(user_id, now)

    session = Session(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + _session_ttl(),
    )
    db.session.add(session)
    db.session.flush()

    return session, plaintext_token


def issue_session(user_id: int) -> tuple[Session, str]:
    """
    Create a new session for user_id, invalidating any previous ones.

    Returns (session_record, plaintext_token). The client receives the
    plaintext token; the database stores only its hash.

    Two issuers racing for the same user collide on the unique user_id
    constraint; the loser retries its delete-then-insert, so exactly one
    session survives (last writer wins).
    """
    def _op():
        session, token = replace_user_sessions(user_id)
        db.session.commit()
        return session, token

    return run_with_retry(_op, retry_on=(IntegrityError, OperationalError))


def validate_session(token: str | None) -> SessionContext | None:
    """
    Resolve a token to its user, or None if the caller is unauthenticated.

    Returns None if:
    - No token, or no session row for it
    - The session is inside the expiry safety window (row is deleted)
    - The token fails signature verification or names another user
      (row is deleted)

    WHY: Central validation point. Every protected route calls this, and
    nothing else is relied on to remove expired rows.
    """
    if not token:
        return None

    session = db.session.query(Session).filter_by(token_hash=hash_token(token)).first()
    if not session:
        return None

    if is_expired(session):
        db.session.delete(session)
        db.session.commit()
        return None

    claims = decode_token(token)
    if not claims or claims.get("sub") != str(session.user_id):
        db.session.delete(session)
        db.session.commit()
        return None

    return SessionContext(user=session.user, session=session)


def revoke_session(token: str | None) -> bool:
    """
    Delete the session matching token.

    Returns True if a session was deleted, False if there was none.
    Revoking an unknown token is not an error.
    """
    if not token:
        return False

    deleted = db.session.query(Session).filter_by(
        token_hash=hash_token(token)
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted > 0


def purge_expired_sessions() -> int:
    """
    Delete every session inside the expiry safety window.

    Returns count of sessions deleted. Maintenance only: validate_session
    never assumes this has run.
    """
    cutoff = utcnow() + _safety_window()
    deleted = db.session.query(Session).filter(
        Session.expires_at <= cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
