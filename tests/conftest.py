"""
Pytest configuration and fixtures: in-memory SQLite database, sessions,
factories for users and products, and an API client bound to the same database.
"""
import os

# must be set before storefront_admin.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from werkzeug.security import generate_password_hash

from storefront_admin.database import get_db, init_db
from storefront_admin.models import Product, User

FIXED_NOW = datetime(2026, 1, 15, 9, 30, 0)


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    """Controllable clock; set ``clock.now`` to move time."""

    class Clock:
        now = FIXED_NOW

        def __call__(self):
            return self.now

    return Clock()


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make_user(**fields):
        counter["n"] += 1
        data = {
            "name": "Test User",
            "email": f"user{counter['n']}@example.com",
            "password_hash": generate_password_hash("Secret#123"),
            "status": "active",
        }
        data.update(fields)
        user = User(**data)
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_product(db_session):
    counter = {"n": 0}

    def _make_product(**fields):
        counter["n"] += 1
        data = {
            "name": f"Product {counter['n']}",
            "sku": f"SKU-{counter['n']:04d}",
            "price": Decimal("20.00"),
            "stock": 5,
            "category": "general",
            "status": "active",
        }
        data.update(fields)
        product = Product(**data)
        db_session.add(product)
        db_session.commit()
        return product

    return _make_product


@pytest.fixture
def client(session_factory):
    """API client whose requests use the test database."""
    from storefront_admin.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
