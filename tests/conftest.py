from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from main import app
from core.db import Base, create_db_engine, get_db
from core import config as core_config
from models.order import Order
from models.payment import Payment
from models.payment_type import PaymentType
from models.user import User
from security import jwt as jwt_utils


@pytest.fixture(scope="session", autouse=True)
def test_settings():
    core_config.settings.JWT_SECRET = "test-secret"
    core_config.settings.TESTING = True
    core_config.settings.LOCK_TIMEOUT_SECONDS = 5
    yield


@pytest.fixture()
def db_session_override():
    engine = create_db_engine("sqlite+pysqlite:///:memory:")
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()

    def _get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db
    try:
        yield db
    finally:
        db.close()
        app.dependency_overrides.clear()
        engine.dispose()


@pytest.fixture()
def db(db_session_override):
    return db_session_override


@pytest.fixture()
def client(db_session_override):
    with TestClient(app) as c:
        yield c


def _create_user(db, **kwargs):
    user = User(**kwargs)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_user(db):
    """The customer placing and paying for orders."""
    return _create_user(db, name="Test User", email="test@example.com")


@pytest.fixture
def other_user(db):
    return _create_user(db, name="Other User", email="other@example.com")


@pytest.fixture
def admin_user(db):
    return _create_user(db, name="Admin", email="admin@example.com", is_admin=True)


def _headers_for(user):
    return {"Authorization": f"Bearer {jwt_utils.create_access_token(str(user.id))}"}


@pytest.fixture
def auth_headers(test_user):
    return _headers_for(test_user)


@pytest.fixture
def other_headers(other_user):
    return _headers_for(other_user)


@pytest.fixture
def admin_headers(admin_user):
    return _headers_for(admin_user)


@pytest.fixture
def payment_type(db):
    payment_type = PaymentType(name="Cash", slug="cash", is_active=True)
    db.add(payment_type)
    db.commit()
    db.refresh(payment_type)
    return payment_type


@pytest.fixture
def make_order(db, test_user):
    """Factory for unpaid orders owned by ``test_user`` unless told otherwise."""

    def _make(total="100.00", user=None, **kwargs):
        order = Order(
            user_id=(user or test_user).id,
            subtotal=Decimal(total),
            total=Decimal(total),
            is_paid=kwargs.pop("is_paid", False),
            **kwargs,
        )
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    return _make


@pytest.fixture
def payment_count(db):
    def _count(order_id=None):
        query = db.query(Payment)
        if order_id is not None:
            query = query.filter(Payment.order_id == order_id)
        return query.count()

    return _count
