from __future__ import annotations

from ..extensions import db
from securebank.time_utils import to_utc_z
from securebank.validation import format_cents


ACCOUNT_TYPES = ("checking", "savings")

ACCOUNT_STATUS_ACTIVE = "active"
ACCOUNT_STATUS_FROZEN = "frozen"
ACCOUNT_STATUS_CLOSED = "closed"

TRANSACTION_TYPE_DEPOSIT = "deposit"
TRANSACTION_STATUS_COMPLETED = "completed"


class Account(db.Model):
    """
    A named bucket of funds owned by one user.

    One account per (user, account_type). Balance is integer cents and only
    changes together with a Transaction row in the same DB transaction.
    """
    __tablename__ = "accounts"
    __table_args__ = (
        db.UniqueConstraint("user_id", "account_type", name="uq_accounts_user_type"),
        db.CheckConstraint("balance_cents >= 0", name="ck_accounts_balance_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    account_number = db.Column(db.String(10), nullable=False, unique=True, index=True)
    account_type = db.Column(db.String(16), nullable=False)

    balance_cents = db.Column(db.BigInteger, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=ACCOUNT_STATUS_ACTIVE)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("accounts", lazy=True))

    def __repr__(self) -> str:
        return f"<Account id={self.id} number={self.account_number!r} type={self.account_type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "accountNumber": self.account_number,
            "accountType": self.account_type,
            "balance": format_cents(self.balance_cents),
            "balanceCents": self.balance_cents,
            "status": self.status,
            "createdAt": to_utc_z(self.created_at),
        }


class Transaction(db.Model):
    """
    Balance-affecting event.

    IMMUTABLE: Never update or delete. Append-only.
    The description is stored raw; escape it before it leaves the API.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_transactions_amount_positive"),
        db.Index("ix_transactions_account_id", "account_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False)

    type = db.Column(db.String(16), nullable=False, default=TRANSACTION_TYPE_DEPOSIT)
    amount_cents = db.Column(db.BigInteger, nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=TRANSACTION_STATUS_COMPLETED)

    processed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    account = db.relationship("Account", backref=db.backref("transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "accountId": self.account_id,
            "type": self.type,
            "amount": format_cents(self.amount_cents),
            "amountCents": self.amount_cents,
            "description": self.description,
            "status": self.status,
            "processedAt": to_utc_z(self.processed_at),
            "createdAt": to_utc_z(self.created_at),
        }
