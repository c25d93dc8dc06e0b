"""
Session lifecycle tests.

Verifies:
- One session per user: issuing again deletes the previous row
- Lazy expiry with the 90-second safety window (row deleted on read)
- Revocation is idempotent and reports whether anything was deleted
- Tokens that fail signature verification never authenticate
"""

from datetime import timedelta

import jwt
import pytest
from sqlalchemy.exc import IntegrityError

from securebank.extensions import db
from securebank.models import Session
from securebank.services import session_service
from securebank.time_utils import utcnow


def _sessions_for(user_id):
    return db.session.query(Session).filter_by(user_id=user_id).all()


def _set_expiry(token, delta):
    session = db.session.query(Session).filter_by(token_hash=session_service.hash_token(token)).one()
    session.expires_at = utcnow() + delta
    db.session.commit()


# =============================================================================
# ISSUE
# =============================================================================


class TestIssueSession:

    def test_creates_single_session_with_seven_day_expiry(self, user):
        session, token = session_service.issue_session(user.id)

        assert session.user_id == user.id
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token
        remaining = session.expires_at - utcnow()
        assert timedelta(days=6, hours=23) < remaining <= timedelta(days=7)

    def test_second_issue_replaces_first(self, user):
        _, first = session_service.issue_session(user.id)
        _, second = session_service.issue_session(user.id)

        rows = _sessions_for(user.id)
        assert len(rows) == 1
        assert first != second
        assert rows[0].token_hash == session_service.hash_token(second)
        assert session_service.validate_session(first) is None
        assert session_service.validate_session(second) is not None

    def test_other_users_untouched(self, make_user):
        alice = make_user()
        bob = make_user()
        _, alice_token = session_service.issue_session(alice.id)
        session_service.issue_session(bob.id)

        assert session_service.validate_session(alice_token).user.id == alice.id

    def test_concurrent_issue_converges_to_one_session(self, user, monkeypatch):
        session_service.issue_session(user.id)
        staged = session_service.replace_user_sessions
        attempts = []

        def _racing_replace(user_id):
            session, token = staged(user_id)
            attempts.append(user_id)
            if len(attempts) == 1:
                # A concurrent login wrote its row between our delete and commit
                db.session.add(Session(
                    user_id=user_id,
                    token_hash=session_service.hash_token("competing-login"),
                    expires_at=utcnow() + timedelta(days=7),
                ))
                db.session.flush()
            return session, token

        monkeypatch.setattr(session_service, "replace_user_sessions", _racing_replace)

        _, token = session_service.issue_session(user.id)

        rows = _sessions_for(user.id)
        assert len(attempts) == 2
        assert len(rows) == 1
        assert rows[0].token_hash == session_service.hash_token(token)
        assert session_service.validate_session(token).user.id == user.id

    def test_issue_gives_up_after_repeated_conflicts(self, user, monkeypatch):
        def _always_conflicting(user_id):
            raise IntegrityError("INSERT INTO sessions", {}, Exception("UNIQUE constraint failed: sessions.user_id"))

        monkeypatch.setattr(session_service, "replace_user_sessions", _always_conflicting)

        with pytest.raises(IntegrityError):
            session_service.issue_session(user.id)
        assert _sessions_for(user.id) == []

    def test_token_is_signed_for_user(self, app, user):
        _, token = session_service.issue_session(user.id)
        claims = jwt.decode(token, app.config["SECRET_KEY"], algorithms=["HS256"])
        assert claims["sub"] == str(user.id)
        assert "jti" in claims


# =============================================================================
# VALIDATE
# =============================================================================


class TestValidateSession:

    def test_valid_session_resolves_user(self, user):
        _, token = session_service.issue_session(user.id)
        context = session_service.validate_session(token)
        assert context is not None
        assert context.user.id == user.id

    @pytest.mark.parametrize("token", [None, "", "unknown-token"])
    def test_missing_or_unknown(self, user, token):
        assert session_service.validate_session(token) is None

    def test_inside_safety_window_is_expired_and_deleted(self, user):
        _, token = session_service.issue_session(user.id)
        _set_expiry(token, timedelta(seconds=30))

        assert session_service.validate_session(token) is None
        assert _sessions_for(user.id) == []

    def test_already_expired_is_deleted(self, user):
        _, token = session_service.issue_session(user.id)
        _set_expiry(token, timedelta(seconds=-60))

        assert session_service.validate_session(token) is None
        assert _sessions_for(user.id) == []

    def test_outside_safety_window_is_valid(self, user):
        _, token = session_service.issue_session(user.id)
        _set_expiry(token, timedelta(seconds=120))

        assert session_service.validate_session(token) is not None
        assert len(_sessions_for(user.id)) == 1

    def test_forged_token_rejected(self, user):
        forged = jwt.encode({"sub": str(user.id), "jti": "x"}, "wrong-secret", algorithm="HS256")
        db.session.add(Session(
            user_id=user.id,
            token_hash=session_service.hash_token(forged),
            expires_at=utcnow() + timedelta(days=1),
        ))
        db.session.commit()

        assert session_service.validate_session(forged) is None
        assert _sessions_for(user.id) == []


# =============================================================================
# REVOKE / PURGE
# =============================================================================


class TestRevokeSession:

    def test_revoke_deletes_exactly_that_session(self, make_user):
        alice = make_user()
        bob = make_user()
        _, alice_token = session_service.issue_session(alice.id)
        session_service.issue_session(bob.id)

        assert session_service.revoke_session(alice_token) is True
        assert _sessions_for(alice.id) == []
        assert len(_sessions_for(bob.id)) == 1

    def test_revoke_is_idempotent(self, user):
        _, token = session_service.issue_session(user.id)
        assert session_service.revoke_session(token) is True
        assert session_service.revoke_session(token) is False
        assert session_service.revoke_session(None) is False

    def test_purge_expired(self, make_user):
        alice = make_user()
        bob = make_user()
        _, alice_token = session_service.issue_session(alice.id)
        session_service.issue_session(bob.id)
        _set_expiry(alice_token, timedelta(seconds=10))

        assert session_service.purge_expired_sessions() == 1
        assert _sessions_for(alice.id) == []
        assert len(_sessions_for(bob.id)) == 1
