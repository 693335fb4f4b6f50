# Shared fixtures: a file-backed SQLite database per test, a seeded catalog,
# and a TestClient wired to that database.
import os

# Must be set before storefront.db builds its module-level engine.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from storefront.db import build_engine, init_db, make_session_factory
from storefront.main import create_app
from storefront.monitoring.api import get_engine
from storefront.orders.domain import OrderService
from storefront.orders.models import Order, OrderItem, Product, Variant
from storefront.orders.providers import get_order_service
from storefront.orders.repository import SqlAlchemyUnitOfWork


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'store.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def catalog(session_factory):
    """Seed two products and their variants.

    Variant 5: 19.90 (base price), stock 10.
    Variant 6: 49.90 (base price), stock 1.
    Variant 7: 44.45 (override), stock 4.
    Variant 8: inactive, stock 10.
    """
    with session_factory() as s:
        legging = Product(id=1, name="Legging Move", sku="LEG-001", price=Decimal("19.90"))
        top = Product(id=2, name="Top Flow", sku="TOP-002", price=Decimal("49.90"))
        s.add_all([legging, top])
        s.flush()
        s.add_all([
            Variant(id=5, product_id=1, variant_sku="LEG-001-M-BK", size="M", color="black", stock_qty=10),
            Variant(id=6, product_id=2, variant_sku="TOP-002-S-WH", size="S", color="white", stock_qty=1),
            Variant(
                id=7, product_id=2, variant_sku="TOP-002-M-WH", size="M", color="white",
                stock_qty=4, price_override=Decimal("44.45"),
            ),
            Variant(id=8, product_id=1, variant_sku="LEG-001-L-BK", size="L", color="black", stock_qty=10, active=False),
        ])
        s.commit()
    return {"products": [1, 2], "variants": [5, 6, 7, 8]}


@pytest.fixture
def stock_of(session_factory):
    def _stock(variant_id):
        with session_factory() as s:
            return s.execute(select(Variant.stock_qty).where(Variant.id == variant_id)).scalar_one()
    return _stock


@pytest.fixture
def order_counts(session_factory):
    """Return ``(orders, order_items)`` row counts."""
    def _counts():
        with session_factory() as s:
            orders = s.execute(select(func.count()).select_from(Order)).scalar_one()
            items = s.execute(select(func.count()).select_from(OrderItem)).scalar_one()
            return orders, items
    return _counts


@pytest.fixture
def service(session_factory):
    return OrderService(lambda: SqlAlchemyUnitOfWork(session_factory))


@pytest.fixture
def app(engine, service):
    application = create_app(run_startup=False)
    application.dependency_overrides[get_order_service] = lambda: service
    application.dependency_overrides[get_engine] = lambda: engine
    return application


@pytest.fixture
def client(app):
    return TestClient(app)
