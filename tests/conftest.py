"""Pytest fixtures for the commerce backend tests."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("PAYMENT_GATEWAY_KEY_SECRET", "test-gateway-secret")

from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.core.database import Base
import src.models  # noqa: F401
from src.models.users import User, UserRole
from src.models.locations import Address
from src.models.catalog import Product
from src.models.inventory import Shop, Warehouse, ShopInventory, WarehouseInventory
from src.services.cart_service import CartService
from src.services.email_service import NotificationSink
from src.services.payment_service import PaymentOracle


def _enable_foreign_keys(engine):
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str = "sqlite://"):
    """In-memory engine by default; pass a file URL for multi-connection tests."""
    if url == "sqlite://":
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})
    _enable_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def engine():
    engine = build_engine()
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# ================================
# TEST DOUBLES
# ================================
class RecordingSink(NotificationSink):
    """Keeps every event in memory."""

    def __init__(self, fail: bool = False):
        self.events = []
        self.fail = fail

    def order_created(self, order_id):
        self.events.append(("order_created", order_id))
        if self.fail:
            raise RuntimeError("smtp down")

    def status_changed(self, order_item_id, new_status):
        self.events.append(("status_changed", order_item_id, new_status))
        if self.fail:
            raise RuntimeError("smtp down")


class StubOracle(PaymentOracle):
    def __init__(self, accept: bool = True):
        self.accept = accept
        self.calls = 0

    def verify(self, assertion):
        self.calls += 1
        return self.accept and assertion is not None


@pytest.fixture
def notifier():
    return RecordingSink()


@pytest.fixture
def oracle():
    return StubOracle(accept=True)


# ================================
# FACTORIES
# ================================
class Factory:
    """Creates committed rows; every helper returns the persisted object."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self):
        self._seq += 1
        return self._seq

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, role=UserRole.CUSTOMER, email=None):
        n = self._next()
        return self._save(User(
            email=email or f"{role.value}{n}@example.com",
            first_name=role.value.capitalize(),
            last_name=str(n),
            role=role,
        ))

    def customer(self):
        return self.user(UserRole.CUSTOMER)

    def address(self, user):
        return self._save(Address(
            user_id=user.id,
            street_address=f"{self._next()} Market Street",
            city="Pune",
            state="MH",
            postal_code="411001",
            country="IN",
            is_primary=True,
        ))

    def product(self, creator, name=None):
        return self._save(Product(
            name=name or f"Product {self._next()}",
            description="test product",
            image_urls=[],
            creator_id=creator.id,
        ))

    def shop(self, owner=None):
        owner = owner or self.user(UserRole.RETAILER)
        return self._save(Shop(owner_id=owner.id, name=f"Shop of {owner.email}"))

    def warehouse(self, owner=None):
        owner = owner or self.user(UserRole.WHOLESALER)
        return self._save(Warehouse(owner_id=owner.id, name=f"Warehouse of {owner.email}"))

    def shop_listing(self, shop, stock=10, price="10.00", product=None):
        product = product or self.product(shop.owner)
        return self._save(ShopInventory(
            shop_id=shop.id,
            product_id=product.id,
            stock_quantity=Decimal(str(stock)),
            price=Decimal(price),
            is_proxy_item=False,
        ))

    def warehouse_listing(self, warehouse, stock=100, price="5.00", product=None):
        product = product or self.product(warehouse.owner)
        return self._save(WarehouseInventory(
            warehouse_id=warehouse.id,
            product_id=product.id,
            stock_quantity=Decimal(str(stock)),
            price=Decimal(price),
        ))

    def cart_line(self, customer, listing, quantity):
        CartService.add_item(self.db, customer, listing.id, quantity)


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def customer(factory):
    return factory.customer()


@pytest.fixture
def customer_address(factory, customer):
    return factory.address(customer)
