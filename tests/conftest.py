"""Pytest configuration: in-memory SQLite store, app client and catalog seeding helpers."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from marketplace.data.database import Database
from marketplace.data.models import (
    CartItemModel,
    DealModel,
    MasterProductModel,
    ProductModel,
    SupplierCityModel,
    SupplierModel,
)
from marketplace.main import create_app

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def database():
    """Fresh in-memory database per test; StaticPool keeps the single connection alive."""
    db = Database("sqlite://", poolclass=StaticPool)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def file_database(tmp_path):
    """File-backed database with a real connection pool, for tests that run threads."""
    db = Database(f"sqlite:///{tmp_path / 'marketplace.db'}")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def session(database):
    s = database.session()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def client(database):
    app = create_app(database=database, create_tables=False)
    with TestClient(app) as c:
        yield c


class Seeder:
    """Small factory for catalog and cart rows. Every call commits."""

    def __init__(self, session):
        self.session = session
        self._clock = 0

    def _save(self, obj):
        self.session.add(obj)
        self.session.commit()
        return obj

    def _next_time(self):
        self._clock += 1
        return BASE_TIME + timedelta(minutes=self._clock)

    def supplier(self, name="Acme Store", is_active=True, category=None, cities=(), **kwargs):
        supplier = self._save(
            SupplierModel(
                name=name,
                is_active=is_active,
                category=category,
                created_at=kwargs.pop("created_at", self._next_time()),
                **kwargs,
            )
        )
        for city_id in cities:
            self._save(SupplierCityModel(supplier_id=supplier.id, city_id=city_id))
        return supplier

    def master_product(self, display_name, adjustment="0", **kwargs):
        return self._save(
            MasterProductModel(
                display_name=display_name,
                current_price_adjustment_percentage=Decimal(adjustment),
                **kwargs,
            )
        )

    def product(self, supplier, name, price="10.00", discount_price=None, is_on_sale=False, **kwargs):
        return self._save(
            ProductModel(
                supplier_id=supplier.id,
                name=name,
                price=Decimal(price),
                discount_price=Decimal(discount_price) if discount_price is not None else None,
                is_on_sale=is_on_sale,
                created_at=kwargs.pop("created_at", self._next_time()),
                **kwargs,
            )
        )

    def deal(self, title, supplier=None, **kwargs):
        return self._save(
            DealModel(
                title=title,
                supplier_id=supplier.id if supplier is not None else None,
                created_at=kwargs.pop("created_at", self._next_time()),
                **kwargs,
            )
        )

    def cart_item(self, user_id, product, quantity=1):
        return self._save(CartItemModel(user_id=user_id, product_id=product.id, quantity=quantity))


@pytest.fixture
def seed(session):
    return Seeder(session)


@pytest.fixture
def file_seed(file_database):
    s = file_database.session()
    try:
        yield Seeder(s)
    finally:
        s.close()
