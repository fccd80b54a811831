"""
Pytest fixtures for Komersh backend tests.

Provides the application on an in-memory database, a per-test table wipe,
user factories and test clients signed in as each role.
"""

import pytest

from komersh import create_app
from komersh.extensions import db
from komersh.models import User
from komersh.services import oidc_service
from komersh.services.auth_service import hash_password

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SESSION_COOKIE_SECURE': False,
        'BCRYPT_ROUNDS': 4,
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp('uploads')),
        'OIDC_CLIENT_ID': None,
        'OIDC_ISSUER_URL': 'https://idp.example.test/oidc',
        'EMAIL_API_TOKEN': None,
        'APP_URL': 'http://localhost:5000',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        oidc_service.clear_discovery_cache()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Anonymous test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory for users with a local password."""
    def _make_user(email, role='viewer', password=PASSWORD, is_active=True, **fields):
        user = User(
            email=email,
            role=role,
            password_hash=hash_password(password) if password else None,
            is_active=is_active,
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture(scope='function')
def login_as(app, make_user):
    """Factory for a test client signed in as a fresh user of the given role."""
    def _login_as(role, email=None):
        email = email or f"{role}@komersh.test"
        user = make_user(email, role=role)
        signed_in = app.test_client()
        resp = signed_in.post('/api/auth/login', json={'email': email, 'password': PASSWORD})
        assert resp.status_code == 200, resp.get_json()
        signed_in.user_id = user.id
        return signed_in

    return _login_as


@pytest.fixture(scope='function')
def admin_client(login_as):
    return login_as('admin')


@pytest.fixture(scope='function')
def founder_client(login_as):
    return login_as('founder')


@pytest.fixture(scope='function')
def marketing_client(login_as):
    return login_as('marketing')


@pytest.fixture(scope='function')
def warehouse_client(login_as):
    return login_as('warehouse')


@pytest.fixture(scope='function')
def viewer_client(login_as):
    return login_as('viewer')


@pytest.fixture(scope='function')
def product(admin_client):
    """A potential product costing 10.00 USD per unit."""
    resp = admin_client.post('/api/potential-products', json={
        'name': 'Desk Lamp',
        'sku': 'LAMP-001',
        'costPerUnit': '10.00',
        'targetSellingPrice': '20.00',
        'currency': 'USD',
    })
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


@pytest.fixture(scope='function')
def buy(admin_client):
    """Buy units of a potential product; returns the lot payload."""
    def _buy(product_id, quantity, unit_cost='10.00', **extra):
        resp = admin_client.post(
            f'/api/potential-products/{product_id}/buy',
            json={'quantity': quantity, 'unitCost': unit_cost, **extra},
        )
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    return _buy
