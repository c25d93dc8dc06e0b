# Overview: Service-layer operations for accounts and funding; encapsulates business logic and database work.

"""
Account & Funding Service

WHY: Users open at most one checking and one savings account and fund them
from a card or a bank account. Funding is the only thing that moves a
balance, and it always writes a Transaction row in the same DB transaction.

DESIGN PRINCIPLES:
- Money is integer cents end to end; decimal strings exist only in to_dict
- Account numbers are 10 random digits, redrawn until unused
- Ownership failures look exactly like missing accounts (NotFoundError)
- Transactions are append-only; descriptions are escaped on the way out
"""

from __future__ import annotations

import secrets

from markupsafe import escape
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Account, Transaction
from ..models.banking import (
    ACCOUNT_STATUS_ACTIVE,
    ACCOUNT_TYPES,
    TRANSACTION_STATUS_COMPLETED,
    TRANSACTION_TYPE_DEPOSIT,
)
from ..cards import BankFundingSource, CardFundingSource, FundingSource, parse_funding_source
from ..validation import ConflictError, NotFoundError, ValidationError, parse_amount_cents
from securebank.time_utils import utcnow
from .concurrency import is_unique_violation, lock_for_update, run_with_retry


ACCOUNT_NUMBER_DIGITS = 10
ACCOUNT_NOT_FOUND_MESSAGE = "Account not found"


# =============================================================================
# ACCOUNT CREATION
# =============================================================================

def generate_account_number() -> str:
    """Uniformly random 10-digit account number, zero-padded."""
    return str(secrets.randbelow(10 ** ACCOUNT_NUMBER_DIGITS)).zfill(ACCOUNT_NUMBER_DIGITS)


def _next_free_account_number() -> str:
    while True:
        candidate = generate_account_number()
        taken = db.session.query(Account.id).filter_by(account_number=candidate).first()
        if not taken:
            return candidate


def create_account(user_id: int, account_type: str) -> Account:
    """
    Open a new account with balance 0 and status active.

    Raises:
        ValidationError: unknown account_type
        ConflictError: user already has an account of this type
    """
    if account_type not in ACCOUNT_TYPES:
        raise ValidationError("accountType must be 'checking' or 'savings'")

    conflict_message = f"You already have a {account_type} account"

    def _op():
        existing = db.session.query(Account).filter_by(
            user_id=user_id,
            account_type=account_type,
        ).first()
        if existing:
            raise ConflictError(conflict_message)

        account = Account(
            user_id=user_id,
            account_number=_next_free_account_number(),
            account_type=account_type,
            balance_cents=0,
            status=ACCOUNT_STATUS_ACTIVE,
        )
        db.session.add(account)
        try:
            db.session.commit()
        except IntegrityError as exc:
            if is_unique_violation(exc, "uq_accounts_user_type", "accounts.user_id", "accounts.account_type"):
                db.session.rollback()
                raise ConflictError(conflict_message)
            # Account number collision: rolled back and redrawn by run_with_retry
            raise
        return account

    return run_with_retry(_op, attempts=5, retry_on=(IntegrityError,))


def get_accounts(user_id: int) -> list[Account]:
    return db.session.query(Account).filter_by(user_id=user_id).order_by(Account.id).all()


def get_owned_account(user_id: int, account_id: int, *, for_update: bool = False) -> Account:
    """
    Load an account the user owns.

    Raises NotFoundError whether the account is missing or belongs to
    someone else, so callers cannot probe for other users' accounts.
    """
    query = db.session.query(Account).filter_by(id=account_id, user_id=user_id)
    if for_update:
        query = lock_for_update(query)
    account = query.first()
    if not account:
        raise NotFoundError(ACCOUNT_NOT_FOUND_MESSAGE)
    return account


# =============================================================================
# FUNDING
# =============================================================================

def describe_funding_source(source: FundingSource) -> str:
    if isinstance(source, CardFundingSource):
        return "Funding from card"
    if isinstance(source, BankFundingSource):
        return "Funding from bank"
    raise TypeError(f"Unhandled funding source: {type(source).__name__}")


def fund_account(user_id: int, account_id: int, amount, funding_source) -> tuple[Transaction, Account]:
    """
    Deposit amount into the account from a card or bank funding source.

    The transaction insert and the balance increment commit together or
    not at all. The increment is done in SQL on a locked row so concurrent
    deposits cannot overwrite each other.

    Returns (transaction, refreshed_account).

    Raises:
        ValidationError: bad amount, bad instrument, or inactive account
        NotFoundError: account missing or not owned by user_id
    """
    amount_cents = parse_amount_cents(amount)
    source = parse_funding_source(funding_source)

    try:
        account = get_owned_account(user_id, account_id, for_update=True)

        if account.status != ACCOUNT_STATUS_ACTIVE:
            raise ValidationError("Account is not active")

        transaction = Transaction(
            account_id=account.id,
            type=TRANSACTION_TYPE_DEPOSIT,
            amount_cents=amount_cents,
            description=describe_funding_source(source),
            status=TRANSACTION_STATUS_COMPLETED,
            processed_at=utcnow(),
        )
        db.session.add(transaction)

        db.session.query(Account).filter_by(id=account.id).update(
            {Account.balance_cents: Account.balance_cents + amount_cents},
            synchronize_session=False,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    db.session.refresh(account)
    return transaction, account


# =============================================================================
# QUERIES
# =============================================================================

def serialize_transaction(transaction: Transaction, account_type: str) -> dict:
    """Transaction dict for API output, description markup-escaped."""
    data = transaction.to_dict()
    if data["description"] is not None:
        data["description"] = str(escape(data["description"]))
    data["accountType"] = account_type
    return data


def get_transactions(user_id: int, account_id: int) -> list[dict]:
    """
    All transactions for an owned account, oldest first, each annotated
    with the account's type.
    """
    account = get_owned_account(user_id, account_id)
    transactions = db.session.query(Transaction).filter_by(
        account_id=account.id
    ).order_by(Transaction.id).all()
    return [serialize_transaction(t, account.account_type) for t in transactions]
