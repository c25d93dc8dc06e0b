"""
Pytest fixtures for SecureBank backend tests.

Provides a fresh in-memory database per test, a test client, and helpers
for creating users and authenticated clients.
"""

from datetime import date

import pytest
from securebank import create_app
from securebank.config import TestConfig
from securebank.extensions import db
from securebank.models import User
from securebank.services.auth_service import hash_password, hash_ssn

from helpers import DEFAULT_PASSWORD, login, unique_email


@pytest.fixture(scope='function')
def app():
    """Create application with an empty schema for each test."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def make_user(app):
    """Factory inserting a user directly, bypassing signup validation."""
    def _make_user(email=None, password=DEFAULT_PASSWORD, ssn="000000000") -> User:
        user = User(
            email=email or unique_email(),
            password_hash=hash_password(password),
            ssn_hash=hash_ssn(ssn),
            first_name="Test",
            last_name="User",
            phone_number="+14155550123",
            date_of_birth=date(1990, 1, 1),
            address="123 Main St",
            city="Somewhere",
            state="NJ",
            zip_code="07001",
        )
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture(scope='function')
def user(make_user):
    return make_user()


@pytest.fixture(scope='function')
def auth_client(client, user):
    """Test client holding a live session cookie for `user`."""
    response = login(client, user.email)
    assert response.status_code == 200
    return client
