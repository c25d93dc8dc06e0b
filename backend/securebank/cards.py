"""
Payment instrument validation shared by the API and the funding form.

Card numbers must pass the Luhn checksum AND belong to a supported brand.
The two failures carry different messages so the client can tell a typo
("invalid") from a card we do not accept ("unsupported").

Funding sources are a tagged union keyed on "type": every consumer
dispatches on CardFundingSource / BankFundingSource explicitly.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Union

from .validation import ValidationError, validate_routing_number


CARD_BRANDS = ("visa", "mastercard", "amex", "discover", "jcb")

INVALID_CARD_MESSAGE = "Card number is invalid"
UNSUPPORTED_CARD_MESSAGE = "Unsupported or unknown card type"

_WHITESPACE_RE = re.compile(r"\s+")
_CARD_DIGITS_RE = re.compile(r"^\d{13,19}$")

# Order matters only for readability; the ranges do not overlap.
_BRAND_PATTERNS = (
    ("visa", re.compile(r"^4(\d{12}|\d{15}|\d{18})$")),
    ("mastercard", re.compile(r"^(5[1-5]\d{14}|2(22[1-9]|2[3-9]\d|[3-6]\d{2}|7[01]\d|720)\d{12})$")),
    ("amex", re.compile(r"^3[47]\d{13}$")),
    ("discover", re.compile(r"^6(011|5\d{2}|4[4-9]\d)\d{12}$")),
    ("jcb", re.compile(r"^35(2[89]|[3-8]\d)\d{12}$")),
)


def normalize_card_number(card_number: str) -> str:
    return _WHITESPACE_RE.sub("", card_number)


def passes_luhn(card_number: str) -> bool:
    digits = normalize_card_number(card_number)
    if not _CARD_DIGITS_RE.match(digits):
        return False

    total = 0
    for position, char in enumerate(reversed(digits)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit

    return total % 10 == 0


def detect_card_brand(card_number: str) -> str | None:
    """Return the card brand for a digit string, or None if unrecognized."""
    digits = normalize_card_number(card_number)
    for brand, pattern in _BRAND_PATTERNS:
        if pattern.match(digits):
            return brand
    return None


def validate_card_number(card_number: Any) -> str:
    """
    Validate a card number for funding.

    Returns the detected brand. Raises ValidationError with
    INVALID_CARD_MESSAGE (Luhn failure) or UNSUPPORTED_CARD_MESSAGE
    (no brand match).
    """
    if not isinstance(card_number, str) or not card_number.strip():
        raise ValidationError("Card number is required")
    if not passes_luhn(card_number):
        raise ValidationError(INVALID_CARD_MESSAGE)
    brand = detect_card_brand(card_number)
    if brand is None:
        raise ValidationError(UNSUPPORTED_CARD_MESSAGE)
    return brand


@dataclass(frozen=True)
class CardFundingSource:
    account_number: str
    brand: str
    type: str = "card"


@dataclass(frozen=True)
class BankFundingSource:
    account_number: str
    routing_number: str
    type: str = "bank"


FundingSource = Union[CardFundingSource, BankFundingSource]


def parse_funding_source(payload: Any) -> FundingSource:
    """
    Build a validated funding source from request JSON.

    {"type": "card", "accountNumber": "4242..."}
    {"type": "bank", "accountNumber": "12345678", "routingNumber": "123456789"}
    """
    if not isinstance(payload, dict):
        raise ValidationError("fundingSource is required")

    source_type = payload.get("type")
    account_number = payload.get("accountNumber")

    if source_type == "card":
        brand = validate_card_number(account_number)
        return CardFundingSource(
            account_number=normalize_card_number(account_number),
            brand=brand,
        )

    if source_type == "bank":
        if not isinstance(account_number, str) or not account_number.strip():
            raise ValidationError("Bank account number is required")
        routing_number = validate_routing_number(payload.get("routingNumber"))
        return BankFundingSource(
            account_number=account_number.strip(),
            routing_number=routing_number,
        )

    raise ValidationError("fundingSource.type must be 'card' or 'bank'")


def check_card(card_number: Any) -> dict:
    """Non-raising form of validate_card_number for the funding form."""
    try:
        brand = validate_card_number(card_number)
    except ValidationError as e:
        return {"valid": False, "brand": None, "error": str(e)}
    return {"valid": True, "brand": brand, "error": None}
