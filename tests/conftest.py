import os

# Settings are read at import time; seed them before importing the app.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("ADMIN_USER_IDS", "admin_1")

from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.auth import get_current_user_id
from app.database import get_session
from app.main import app
from app.models.cart import CartItem, options_key
from app.models.product import Product

ADMIN_ID = "admin_1"
USER_ID = "user_1"
OTHER_USER_ID = "user_2"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def caller():
    """Identity seen by the API; tests set caller.user_id."""
    return SimpleNamespace(user_id=None)


@pytest.fixture
def client(engine, caller):
    def _get_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_current_user_id] = lambda: caller.user_id
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_product(session):
    def _make(**fields) -> Product:
        data = {
            "name": "Linen Shirt",
            "price": Decimal("20000"),
            "stock_quantity": 5,
            "category": "clothing",
            "status": "active",
            "is_active": True,
        }
        data.update(fields)
        product = Product(**data)
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def make_cart_item(session):
    def _make(product: Product, quantity: int = 1, owner_id: str = USER_ID, options=None) -> CartItem:
        item = CartItem(
            owner_id=owner_id,
            product_id=product.id,
            quantity=quantity,
            options=options,
            options_key=options_key(options),
        )
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    return _make


@pytest.fixture
def shipping_address():
    return {
        "recipientName": "Kim Minji",
        "phone": "010-1234-5678",
        "postalCode": "04524",
        "address": "Seoul, Jung-gu, Sejong-daero 110",
        "detailAddress": "3F",
    }
