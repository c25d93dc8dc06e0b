# Overview: Flask API routes for accounts and funding; parses input and returns JSON responses.

# backend/securebank/routes/accounts.py
"""
Account & Funding API Routes

DESIGN:
- Open checking/savings accounts (one of each per user)
- Fund an account from a card or bank account
- List accounts and transaction history

SECURITY:
- Every route requires a valid session (require_auth)
- Accounts owned by other users answer 404, same as missing ones
- Transaction descriptions are markup-escaped before they are returned
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..cards import check_card
from ..services import account_service
from ..validation import ConflictError, NotFoundError, ValidationError, format_cents
from ..decorators import require_auth


accounts_bp = Blueprint("accounts", __name__, url_prefix="/api/accounts")


# =============================================================================
# ACCOUNTS
# =============================================================================

@accounts_bp.post("")
@require_auth
def create_account_route():
    """
    Open a new account.

    Request body:
    {
        "accountType": "checking"   (or "savings")
    }

    Returns:
        201: Account created (balance 0, status active)
        400: Invalid account type
        409: User already has an account of this type
        500: Server error
    """
    try:
        data = request.get_json(silent=True) or {}
        account = account_service.create_account(
            user_id=g.current_user.id,
            account_type=data.get("accountType"),
        )
        return jsonify(account.to_dict()), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create account")
        return jsonify({"error": "Internal server error"}), 500


@accounts_bp.get("")
@require_auth
def list_accounts_route():
    accounts = account_service.get_accounts(g.current_user.id)
    return jsonify({"accounts": [a.to_dict() for a in accounts]})


# =============================================================================
# FUNDING
# =============================================================================

@accounts_bp.post("/<int:account_id>/fund")
@require_auth
def fund_account_route(account_id: int):
    """
    Fund an account.

    Request body:
    {
        "amount": 50.25,
        "fundingSource": {"type": "card", "accountNumber": "4242424242424242"}
    }
    or
    {
        "amount": "100.00",
        "fundingSource": {"type": "bank", "accountNumber": "12345678", "routingNumber": "021000021"}
    }

    Returns:
        200: {transaction, newBalance, newBalanceCents}
        400: Invalid amount, card, routing number, or inactive account
        404: Account not found
        500: Server error
    """
    try:
        data = request.get_json(silent=True) or {}
        transaction, account = account_service.fund_account(
            user_id=g.current_user.id,
            account_id=account_id,
            amount=data.get("amount"),
            funding_source=data.get("fundingSource"),
        )
        return jsonify({
            "transaction": account_service.serialize_transaction(transaction, account.account_type),
            "newBalance": format_cents(account.balance_cents),
            "newBalanceCents": account.balance_cents,
        })

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to fund account")
        return jsonify({"error": "Internal server error"}), 500


@accounts_bp.post("/funding/validate-card")
@require_auth
def validate_card_route():
    """
    Check a card number with the same rules fund_account applies.

    Lets the funding form validate client-side without its own copy of
    the Luhn and brand logic. Always 200: {valid, brand, error}.
    """
    data = request.get_json(silent=True) or {}
    return jsonify(check_card(data.get("cardNumber")))


# =============================================================================
# TRANSACTIONS
# =============================================================================

@accounts_bp.get("/<int:account_id>/transactions")
@require_auth
def list_transactions_route(account_id: int):
    try:
        transactions = account_service.get_transactions(g.current_user.id, account_id)
        return jsonify({"transactions": transactions})

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to load transactions")
        return jsonify({"error": "Internal server error"}), 500
