# backend/securebank/models/__init__.py
from .auth import User, Session
from .banking import Account, Transaction

__all__ = [
    "User",
    "Session",
    "Account",
    "Transaction",
]
