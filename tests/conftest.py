"""Pytest configuration and fixtures."""

import uuid
from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
# Import all models to ensure they're registered with Base.metadata
from app.models import *  # noqa: F401,F403
from app.models.business import Business, Branch
from app.models.enums import ItemStatus
from app.models.item import Item
from app.models.vendor import Vendor
from app.utils.security import create_access_token

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Let SQLAlchemy own BEGIN so SAVEPOINTs behave under pysqlite
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Don't raise server exceptions so we can test error status codes
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def business(db_session: Session) -> Business:
    """Create a test business without VAT."""
    business = Business(name="Warung Test", currency="IDR", vat_enabled=False, tax_rate=Decimal("0"))
    db_session.add(business)
    db_session.commit()
    db_session.refresh(business)
    return business


@pytest.fixture
def other_business(db_session: Session) -> Business:
    business = Business(name="Other Kitchen", currency="IDR", vat_enabled=False, tax_rate=Decimal("0"))
    db_session.add(business)
    db_session.commit()
    db_session.refresh(business)
    return business


@pytest.fixture
def branch(db_session: Session, business: Business) -> Branch:
    branch = Branch(business_id=business.id, name="Main Branch", code="MAIN")
    db_session.add(branch)
    db_session.commit()
    db_session.refresh(branch)
    return branch


@pytest.fixture
def second_branch(db_session: Session, business: Business) -> Branch:
    branch = Branch(business_id=business.id, name="Second Branch", code="SEC")
    db_session.add(branch)
    db_session.commit()
    db_session.refresh(branch)
    return branch


@pytest.fixture
def vendor(db_session: Session, business: Business) -> Vendor:
    vendor = Vendor(business_id=business.id, name="Fresh Supplies", phone="+62811111111")
    db_session.add(vendor)
    db_session.commit()
    db_session.refresh(vendor)
    return vendor


@pytest.fixture
def make_item(db_session: Session, business: Business):
    """Factory for plain (non-composite) items owned by the test business."""
    def _make(name, unit="grams", storage_unit="Kg", cost="0", business_id=None, shared=False):
        item = Item(
            business_id=None if shared else (business_id or business.id),
            name=name,
            unit=unit,
            storage_unit=storage_unit,
            cost_per_unit=Decimal(cost),
            total_stock_quantity=Decimal("0"),
            total_stock_value=Decimal("0"),
            is_composite=False,
            status=ItemStatus.ACTIVE.value,
        )
        db_session.add(item)
        db_session.commit()
        db_session.refresh(item)
        return item
    return _make


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def auth_token(business: Business, branch: Branch, user_id: uuid.UUID) -> str:
    """Get an authentication token for a business owner."""
    return create_access_token(
        data={"sub": user_id, "business_id": business.id, "branch_id": branch.id, "role": "OWNER"}
    )


@pytest.fixture
def auth_headers(auth_token: str) -> dict:
    """Get authentication headers."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def menu(db_session: Session, business: Business, make_item):
    """Fried rice with a removable egg and an extra-egg modifier, plus stock items."""
    from app.schemas.product import ProductCreate, ProductIngredientInput, ProductModifierInput
    from app.services.products import ProductService

    rice = make_item("Rice", unit="grams", storage_unit="Kg", cost="0.012")
    egg = make_item("Egg", unit="piece", storage_unit="piece", cost="2000")
    fried_rice = ProductService(db_session).create_product(business.id, ProductCreate(
        name="Fried Rice",
        price=Decimal("25000"),
        ingredients=[
            ProductIngredientInput(item_id=rice.id, quantity=Decimal("200")),
            ProductIngredientInput(item_id=egg.id, quantity=Decimal("1"), removable=True),
        ],
        modifiers=[
            ProductModifierInput(name="Extra Egg", item_id=egg.id, quantity=Decimal("1"), extra_price=Decimal("4000")),
        ],
    ))
    db_session.commit()
    return {"rice": rice, "egg": egg, "fried_rice": fried_rice}
