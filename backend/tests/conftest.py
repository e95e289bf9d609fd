"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Must be set before the application modules build their engine and settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["NOTIFICATIONS_BACKEND"] = "memory"
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["ENVIRONMENT"] = "test"

import itertools
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.models import Base, Ingredient, Product, ProductIngredient
from rest_api.services.domain import StatusSynchronizer
from shared.config.settings import get_settings
from shared.infrastructure.db import get_db
from shared.infrastructure.events import InMemoryNotificationPublisher, get_notification_publisher
from shared.security.auth import ActorContext, ACTOR_ID_HEADER, ACTOR_ROLE_HEADER
from shared.utils.schemas import OrderCreateRequest, OrderItemInput


_name_counter = itertools.count(1)


def unique_name(prefix: str) -> str:
    """Ingredient names are unique; property tests create many."""
    return f"{prefix} {next(_name_counter)}"


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def publisher():
    return InMemoryNotificationPublisher()


@pytest.fixture(scope="function")
def client(db_session, publisher):
    """
    Create a test client with database session and publisher overrides.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_publisher] = lambda: publisher

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def synchronizer(db_session, publisher):
    return StatusSynchronizer(db_session, publisher, settings=get_settings())


# =============================================================================
# Actors
# =============================================================================


@pytest.fixture
def server_actor():
    return ActorContext(actor_id="server-1", role="SERVER")


@pytest.fixture
def kitchen_actor():
    return ActorContext(actor_id="cook-1", role="KITCHEN")


@pytest.fixture
def manager_actor():
    return ActorContext(actor_id="manager-1", role="MANAGER")


@pytest.fixture
def payment_actor():
    return ActorContext(actor_id="payments-svc", role="PAYMENT")


def actor_headers(role: str, actor_id: str | None = None) -> dict[str, str]:
    return {
        ACTOR_ID_HEADER: actor_id or f"{role.lower()}-1",
        ACTOR_ROLE_HEADER: role,
    }


@pytest.fixture
def server_headers():
    return actor_headers("SERVER")


@pytest.fixture
def kitchen_headers():
    return actor_headers("KITCHEN")


@pytest.fixture
def manager_headers():
    return actor_headers("MANAGER")


@pytest.fixture
def payment_headers():
    return actor_headers("PAYMENT")


# =============================================================================
# Data factories
# =============================================================================


def make_ingredient(db, name=None, stock="10", minimum="0", unit="kg") -> Ingredient:
    ingredient = Ingredient(
        name=name or unique_name("Ingredient"),
        unit=unit,
        current_stock=Decimal(stock),
        minimum_stock=Decimal(minimum),
        unit_cost_cents=100,
    )
    db.add(ingredient)
    db.commit()
    return ingredient


def make_product(db, name="Product", price_cents=1000, recipe=()) -> Product:
    """recipe: iterable of (ingredient, quantity_required)."""
    product = Product(name=name, price_cents=price_cents, is_available=True)
    db.add(product)
    db.flush()
    for ingredient, quantity in recipe:
        db.add(
            ProductIngredient(
                product_id=product.id,
                ingredient_id=ingredient.id,
                quantity_required=Decimal(quantity),
            )
        )
    db.commit()
    return product


def order_request(*lines, order_type="takeout", table_ref=None, discount_cents=0) -> OrderCreateRequest:
    """lines: (product, quantity) pairs."""
    return OrderCreateRequest(
        order_type=order_type,
        table_ref=table_ref,
        discount_cents=discount_cents,
        items=[OrderItemInput(product_id=p.id, quantity=q) for p, q in lines],
    )


@pytest.fixture
def pizza_setup(db_session):
    """
    Ingredient X (stock 5, min 1) consumed 2 per unit of product P.
    Returns (ingredient, product).
    """
    ingredient = make_ingredient(db_session, name="Mozzarella", stock="5", minimum="1")
    product = make_product(db_session, name="Pizza", price_cents=1200, recipe=[(ingredient, "2")])
    return ingredient, product


@pytest.fixture
def untracked_product(db_session):
    return make_product(db_session, name="Sparkling water", price_cents=300)
