"""Pytest fixtures for cart/order tests."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")

from decimal import Decimal

import fakeredis
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cartorder.data import models  # noqa: F401
from cartorder.data.database import Base
from cartorder.data.models.product import ProductModel
from cartorder.domain.schemas import AddressIn, OrderCreate
from cartorder.services.cart_service import CartService
from cartorder.services.lock_service import LockService
from cartorder.services.order_number import OrderNumberService
from cartorder.services.order_service import OrderService
from cartorder.services.order_state import OrderStateMachine
from cartorder.services.revenue_service import RevenueService

CUSTOMER = 100
OTHER_CUSTOMER = 200
SELLER_X = 1
SELLER_Y = 2


class RecordingNotifier:
    """Stands in for NotificationService; keeps what would have been sent."""

    def __init__(self):
        self.sent = []

    def send_order_notification(self, customer_id, order_number, status):
        self.sent.append((customer_id, order_number, status))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite shared by threads. BEGIN IMMEDIATE takes the write lock up front."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'shared.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _no_implicit_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def redis_client():
    server = fakeredis.FakeServer()
    return fakeredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture
def lock_service(redis_client):
    return LockService(client=redis_client, wait_attempts=3, wait_seconds=0)


@pytest.fixture
def order_numbers(redis_client):
    return OrderNumberService(client=redis_client)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def carts(db, lock_service):
    return CartService(db, lock_service)


@pytest.fixture
def orders(db, lock_service, order_numbers, notifier):
    return OrderService(
        db,
        lock_service,
        order_numbers,
        notification_service=notifier,
        tax_rate=Decimal("0.08"),
        currency="CFA",
    )


@pytest.fixture
def machine(db, notifier):
    return OrderStateMachine(db, notification_service=notifier)


@pytest.fixture
def revenue(db):
    return RevenueService(db)


@pytest.fixture
def make_product(db):
    """Insert a catalog row and return its id."""
    counter = {"n": 0}

    def _make(price="10.00", stock=10, seller_id=SELLER_X, is_active=True, discount="0", name=None):
        counter["n"] += 1
        product = ProductModel(
            seller_id=seller_id,
            name=name or f"Product {counter['n']}",
            image=None,
            price=Decimal(price),
            discount=Decimal(discount),
            stock=stock,
            total_sales=0,
            is_active=is_active,
        )
        db.add(product)
        db.commit()
        return product.id

    return _make


@pytest.fixture
def set_product(db):
    """Change catalog fields behind the services' back."""

    def _set(product_id, **values):
        product = db.get(ProductModel, product_id)
        for key, value in values.items():
            setattr(product, key, value)
        db.commit()

    return _set


@pytest.fixture
def stock_of(db):
    def _stock(product_id):
        product = db.get(ProductModel, product_id, populate_existing=True)
        return product.stock

    return _stock


@pytest.fixture
def address():
    return AddressIn(
        full_name="Awa Diallo",
        street="12 Rue de la Paix",
        city="Dakar",
        state="Dakar",
        zip_code="10200",
        country="SN",
        phone="+221770000000",
    )


@pytest.fixture
def checkout(address):
    def _checkout(**overrides):
        data = {"payment_method": "card", "shipping_address": address}
        data.update(overrides)
        return OrderCreate(**data)

    return _checkout


@pytest.fixture
def place_order(carts, orders, checkout):
    """Fill a customer's cart with (product_id, quantity) lines and check out."""

    def _place(lines, customer_id=CUSTOMER, **overrides):
        for product_id, quantity in lines:
            carts.add_item(customer_id, product_id, quantity)
        return orders.create_order(customer_id, checkout(**overrides))

    return _place
