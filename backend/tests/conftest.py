"""
Pytest fixtures for inventory API tests.

Provides the app on an in-memory database, per-test table wipes,
account/token helpers and a fixed one-time code.
"""

from datetime import timedelta

import pytest
from inventory_api import create_app
from inventory_api.config import get_auth_settings
from inventory_api.extensions import db
from inventory_api.models import Account, OneTimeCode, OtpPurpose, Product, Role, status_for_stock
from inventory_api.services import otp_service, token_service
from inventory_api.services.auth_service import hash_password
from inventory_api.services.token_service import CallerIdentity
from inventory_api.time_utils import utcnow

TEST_PASSWORD = "secret123"
FIXED_CODE = "1234"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'JWT_SECRET': 'test-secret',
        'BCRYPT_ROUNDS': 4,
        'BREVO_API_KEY': None,
        'GOOGLE_CLIENT_ID': 'test-client-id.apps.googleusercontent.com',
        'EXPOSE_DEV_OTP': False,
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp('uploads')),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def settings(app):
    return get_auth_settings()


@pytest.fixture(scope='function')
def fixed_code(monkeypatch):
    """Every issued one-time code is FIXED_CODE."""
    monkeypatch.setattr(otp_service, "generate_code", lambda: FIXED_CODE)
    return FIXED_CODE


def make_account(email, role=Role.USER, name=None, password=TEST_PASSWORD):
    account = Account(
        name=name or email.split("@")[0],
        email=email,
        password_hash=hash_password(password, rounds=4),
        role=Role(role).value,
        is_verified=True,
        created_at=utcnow(),
    )
    db.session.add(account)
    db.session.commit()
    return account


def make_product(owner, name, stock=10, category="Tools", unit="pcs", brand="Generic"):
    now = utcnow()
    product = Product(
        owner_id=owner.id,
        name=name,
        unit=unit,
        category=category,
        brand=brand,
        stock=stock,
        status=status_for_stock(stock),
        is_deleted=False,
        created_at=now,
        updated_at=now,
    )
    db.session.add(product)
    db.session.commit()
    return product


def caller_for(account):
    return CallerIdentity(
        account_id=account.id,
        email=account.email,
        name=account.name,
        role=account.role_enum,
    )


def auth_headers(account):
    token = token_service.issue_token(account, get_auth_settings())
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope='function')
def alice(db_session):
    return make_account("alice@example.com")


@pytest.fixture(scope='function')
def bob(db_session):
    return make_account("bob@example.com")


@pytest.fixture(scope='function')
def admin(db_session):
    return make_account("admin@example.com", role=Role.ADMIN, name="Admin")


@pytest.fixture(scope='function')
def alice_headers(alice):
    return auth_headers(alice)


@pytest.fixture(scope='function')
def bob_headers(bob):
    return auth_headers(bob)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(admin)


def insert_code(email, code, purpose, expires_in=timedelta(minutes=10), used=False):
    """Store a one-time code directly, bypassing generation and delivery."""
    row = OneTimeCode(
        email=email,
        code=code,
        purpose=OtpPurpose(purpose).value,
        expires_at=utcnow() + expires_in,
        used=used,
    )
    db.session.add(row)
    db.session.commit()
    return row
