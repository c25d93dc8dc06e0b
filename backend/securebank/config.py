# backend/securebank/config.py
from __future__ import annotations
import os
from datetime import timedelta


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key. Signs session tokens.
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/securebank.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///securebank.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Frontend dev servers allowed to call the API with credentials
    CORS_ALLOWED_ORIGINS = {
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    }

    # Session lifecycle
    SESSION_TTL = timedelta(days=7)
    SESSION_SAFETY_WINDOW = timedelta(seconds=90)
    SESSION_COOKIE_NAME = "session"
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", True)

    # bcrypt cost factors; SSNs get the slower one
    BCRYPT_PASSWORD_ROUNDS = int(os.environ.get("BCRYPT_PASSWORD_ROUNDS", "10"))
    BCRYPT_SSN_ROUNDS = int(os.environ.get("BCRYPT_SSN_ROUNDS", "12"))


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SESSION_COOKIE_SECURE = False
    LOG_LEVEL = "WARNING"

    # Minimum bcrypt cost keeps the suite fast
    BCRYPT_PASSWORD_ROUNDS = 4
    BCRYPT_SSN_ROUNDS = 4
