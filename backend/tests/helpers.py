"""Shared request builders for the test modules."""

from datetime import date
from itertools import count


DEFAULT_PASSWORD = "Aa1!good!"

_email_counter = count(1)


def unique_email() -> str:
    return f"user{next(_email_counter)}@example.com"


def signup_payload(**overrides) -> dict:
    """A valid signup request body; override any field."""
    payload = {
        "email": unique_email(),
        "password": DEFAULT_PASSWORD,
        "firstName": "Test",
        "lastName": "User",
        "phoneNumber": "+14155550123",
        "dateOfBirth": "1990-01-01",
        "ssn": "111111111",
        "address": "123 Main St",
        "city": "Newark",
        "state": "NJ",
        "zipCode": "07001",
    }
    payload.update(overrides)
    return payload


def years_ago(today: date, years: int) -> date:
    """Same month/day `years` earlier; Feb 29 falls back to Feb 28."""
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        return today.replace(year=today.year - years, day=28)


def login(client, email: str, password: str = DEFAULT_PASSWORD):
    """Log a test client in; the session cookie stays in its jar."""
    return client.post('/api/auth/login', json={
        'email': email,
        'password': password,
    })


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


CARD_FUNDING = {"type": "card", "accountNumber": "4242424242424242"}
BANK_FUNDING = {"type": "bank", "accountNumber": "12345678", "routingNumber": "021000021"}
