from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from securebank.time_utils import parse_iso_date, today_utc


# Largest single funding: $10,000.00
MAX_FUNDING_CENTS = 1_000_000

MINIMUM_AGE_YEARS = 18


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate email)."""


class NotFoundError(LookupError):
    """404-level missing resource. Also used for resources owned by someone else."""


class AuthenticationError(Exception):
    """401-level failure. Message stays generic on purpose."""


EMAIL_RE = re.compile(r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}$")
PHONE_RE = re.compile(r"^\+?\d{10,15}$")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
ZIP_RE = re.compile(r"^\d{5}$")
SSN_RE = re.compile(r"^\d{9}$")
ROUTING_RE = re.compile(r"^\d{9}$")

# Top-level domains that are almost always a mistyped ".com"
COMMON_TLD_TYPOS = {"con", "cmo", "ocm", "cpm", "vom", "xom", "comm"}

# 50 states, DC and the inhabited territories
US_STATE_CODES = frozenset({
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
    "DC", "PR", "GU", "VI", "AS", "MP",
})


def _as_str(value: Any, label: str) -> str:
    if value is None:
        raise ValidationError(f"{label} is required")
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be a string")
    return value.strip()


def require_text(payload: dict, key: str, label: str, max_length: int = 255) -> str:
    value = _as_str(payload.get(key), label)
    if not value:
        raise ValidationError(f"{label} is required")
    if len(value) > max_length:
        raise ValidationError(f"{label} exceeds max length {max_length}")
    return value


def validate_email(value: Any) -> str:
    """
    Validate an email address and return it lowercased.

    Rejects addresses whose top-level domain looks like a mistyped ".com"
    with a suggestion, e.g. "Did you mean jane@example.com?".
    """
    email = _as_str(value, "Email").lower()
    if not email:
        raise ValidationError("Email is required")
    if len(email) > 255 or not EMAIL_RE.match(email):
        raise ValidationError("Invalid email address")

    local, _, domain = email.partition("@")
    name, _, tld = domain.rpartition(".")
    if tld in COMMON_TLD_TYPOS:
        raise ValidationError(f"Did you mean {local}@{name}.com?")

    return email


def validate_password(value: Any) -> str:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one lowercase letter
    - At least one uppercase letter
    - At least one digit
    - At least one special character (anything not a letter or digit)

    Raises ValidationError for the first rule that fails.
    """
    if not isinstance(value, str) or not value:
        raise ValidationError("Password is required")

    if len(value) < 8:
        raise ValidationError("Password must be at least 8 characters long")

    if not re.search(r"[a-z]", value):
        raise ValidationError("Password must contain at least one lowercase letter")

    if not re.search(r"[A-Z]", value):
        raise ValidationError("Password must contain at least one uppercase letter")

    if not re.search(r"\d", value):
        raise ValidationError("Password must contain at least one number")

    if not re.search(r"[^A-Za-z0-9]", value):
        raise ValidationError("Password must contain at least one special character")

    return value


def validate_phone(value: Any) -> str:
    phone = _as_str(value, "Phone number")
    if not PHONE_RE.match(phone):
        raise ValidationError("Phone number must be in international format (e.g. +14155550123)")
    return phone


def calculate_age(dob: date, today: date) -> int:
    age = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        age -= 1
    return age


def validate_date_of_birth(value: Any, today: date | None = None) -> date:
    raw = _as_str(value, "Date of birth")
    if not ISO_DATE_RE.match(raw):
        raise ValidationError("Date of birth must be a valid date (YYYY-MM-DD)")
    try:
        dob = parse_iso_date(raw)
    except ValueError:
        raise ValidationError("Date of birth must be a valid date (YYYY-MM-DD)")
    if dob is None:
        raise ValidationError("Date of birth is required")

    today = today or today_utc()
    if dob > today:
        raise ValidationError("Date of birth cannot be in the future")
    if calculate_age(dob, today) < MINIMUM_AGE_YEARS:
        raise ValidationError(f"You must be at least {MINIMUM_AGE_YEARS} years old")
    return dob


def validate_state(value: Any) -> str:
    state = _as_str(value, "State").upper()
    if len(state) != 2 or not state.isalpha() or state not in US_STATE_CODES:
        raise ValidationError(f"Invalid US state code: {value}")
    return state


def validate_zip_code(value: Any) -> str:
    zip_code = _as_str(value, "ZIP code")
    if not ZIP_RE.match(zip_code):
        raise ValidationError("ZIP code must be 5 digits")
    return zip_code


def validate_ssn(value: Any) -> str:
    ssn = _as_str(value, "SSN")
    if not SSN_RE.match(ssn):
        raise ValidationError("SSN must be 9 digits")
    return ssn


def validate_routing_number(value: Any) -> str:
    if not isinstance(value, str) or not ROUTING_RE.match(value.strip()):
        raise ValidationError("Routing number must be 9 digits")
    return value.strip()


def parse_amount_cents(value: Any) -> int:
    """
    Convert a JSON amount (number or numeric string) to integer cents.

    Goes through Decimal so "0.1" is exactly ten cents. Floats are
    converted via their shortest repr, never via binary arithmetic.
    """
    if value is None:
        raise ValidationError("Amount is required")
    if isinstance(value, bool):
        raise ValidationError("Amount must be a number")

    if isinstance(value, (int, float)):
        raw = repr(value) if isinstance(value, float) else str(value)
    elif isinstance(value, str):
        raw = value.strip()
    else:
        raise ValidationError("Amount must be a number")

    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise ValidationError("Amount must be a number")

    if not amount.is_finite():
        raise ValidationError("Amount must be a number")
    if amount <= 0:
        raise ValidationError("Amount must be positive")
    if amount < Decimal("0.01"):
        raise ValidationError("Amount must be at least $0.01")
    # Ceiling first: quantize() overflows the decimal context on huge values
    if amount * 100 > MAX_FUNDING_CENTS:
        raise ValidationError(f"Amount cannot exceed ${format_cents(MAX_FUNDING_CENTS)}")
    if amount != amount.quantize(Decimal("0.01")):
        raise ValidationError("Amount cannot have more than 2 decimal places")

    return int(amount * 100)


def format_cents(cents: int) -> str:
    """Render integer cents as a fixed two-decimal string, e.g. 1050 -> "10.50"."""
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    return f"{sign}{whole}.{frac:02d}"


def validate_signup_payload(payload: Any) -> dict:
    """
    Validate + normalize a signup request.

    Checks run in a fixed order and stop at the first failure, so the
    caller always gets exactly one message. Returns snake_case keys ready
    for the User model (plaintext password/ssn still included; hash them
    before persisting).
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    return {
        "email": validate_email(payload.get("email")),
        "password": validate_password(payload.get("password")),
        "first_name": require_text(payload, "firstName", "First name", 100),
        "last_name": require_text(payload, "lastName", "Last name", 100),
        "phone_number": validate_phone(payload.get("phoneNumber")),
        "date_of_birth": validate_date_of_birth(payload.get("dateOfBirth")),
        "ssn": validate_ssn(payload.get("ssn")),
        "address": require_text(payload, "address", "Address"),
        "city": require_text(payload, "city", "City", 100),
        "state": validate_state(payload.get("state")),
        "zip_code": validate_zip_code(payload.get("zipCode")),
    }
