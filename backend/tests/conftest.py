"""
Pytest fixtures for Stockroom backend tests.

Provides test database setup, two shops with members, and token helpers.
"""

import pytest
from stockroom import create_app
from stockroom.extensions import db
from stockroom.models import User, UserShop, Item
from stockroom.services.auth_service import hash_password
from stockroom.services import shop_service
from stockroom.services import token_service


TEST_PASSWORD = "Password123!"

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'JWT_SECRET_KEY': 'test-jwt-secret',
    'JWT_ACCESS_EXPIRES_IN': '1h',
    'JWT_REFRESH_EXPIRES_IN': '7d',
    'BCRYPT_ROUNDS': 4,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

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


def make_user(db_session, username, email, permission=None):
    user = User(
        username=username,
        email=email,
        password_hash=hash_password(TEST_PASSWORD, rounds=4),
        permission=permission,
    )
    db_session.add(user)
    db_session.commit()
    return user


def add_member(db_session, user, shop, accepted=True, permission=None):
    membership = UserShop(
        user_id=user.id,
        shop_id=shop.id,
        accepted_into_shop=accepted,
        permission=permission,
    )
    db_session.add(membership)
    db_session.commit()
    return membership


def make_item(db_session, shop, name="Widget", quantity=10, **fields):
    item = Item(shop_id=shop.id, name=name, quantity=quantity, **fields)
    db_session.add(item)
    db_session.commit()
    return item


def auth_headers(user, shop_id=None):
    """Bearer header for an access token carrying shop_id as its default shop."""
    token = token_service.issue_access_token(user.id, user.email, shop_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope='function')
def owner_a(db_session):
    """Owner of Shop A."""
    return make_user(db_session, "owner_a", "owner_a@acme.com")


@pytest.fixture(scope='function')
def owner_b(db_session):
    """Owner of Shop B."""
    return make_user(db_session, "owner_b", "owner_b@beta.com")


@pytest.fixture(scope='function')
def shop_a(db_session, owner_a):
    """Shop A, created by owner_a (ACCEPTED member)."""
    return shop_service.create_shop({"name": "Shop A - Acme"}, owner_a.id)


@pytest.fixture(scope='function')
def shop_b(db_session, owner_b):
    """Shop B, created by owner_b (ACCEPTED member)."""
    return shop_service.create_shop({"name": "Shop B - Beta"}, owner_b.id)


@pytest.fixture(scope='function')
def staff(db_session):
    """User with a global 'staff' permission and no memberships."""
    return make_user(db_session, "staff", "staff@acme.com", permission="staff")


@pytest.fixture(scope='function')
def item_a(db_session, shop_a):
    return make_item(db_session, shop_a, name="Apples", quantity=10, price=1.5)


@pytest.fixture(scope='function')
def item_b(db_session, shop_b):
    return make_item(db_session, shop_b, name="Bananas", quantity=4)
