from __future__ import annotations

from ..extensions import db
from securebank.time_utils import to_utc_z


class User(db.Model):
    """
    Customer identity and PII.

    Email is unique system-wide and stored lowercased. Password and SSN are
    only ever stored as bcrypt hashes (see auth_service).
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)

    # Bcrypt hashes
    password_hash = db.Column(db.String(255), nullable=False)
    ssn_hash = db.Column(db.String(255), nullable=False)

    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    phone_number = db.Column(db.String(16), nullable=False)  # E.164
    date_of_birth = db.Column(db.Date, nullable=False)

    address = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(100), nullable=False)
    state = db.Column(db.String(2), nullable=False)  # USPS code, uppercase
    zip_code = db.Column(db.String(5), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"

    def to_dict(self) -> dict:
        # Never include password_hash or ssn_hash
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phoneNumber": self.phone_number,
            "dateOfBirth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "createdAt": to_utc_z(self.created_at),
        }


class Session(db.Model):
    """
    Proof of authentication.

    SECURITY NOTES:
    - Only the SHA-256 hash of the signed token is stored
    - At most one row per user (unique user_id); issuing a new session
      deletes the old one first
    - Rows are deleted on logout, or lazily when read inside the expiry
      safety window
    """
    __tablename__ = "sessions"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_sessions_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime, nullable=False, index=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "createdAt": to_utc_z(self.created_at),
            "expiresAt": to_utc_z(self.expires_at),
        }
