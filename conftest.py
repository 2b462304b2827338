# conftest.py
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import hcpos.models  # noqa: F401
from hcpos.db import Base, get_db
from hcpos.main import app
from hcpos.models.core import Branch, Customer, InventoryRecord, LoyaltyAccount, MenuItem
from hcpos.services.loyalty import tier_for
from hcpos.services.notifications import NotificationSink
from hcpos.services.orders import OrderWorkflow


@pytest.fixture()
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()

@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

@pytest.fixture()
def db(session_factory):
    s = session_factory()
    yield s
    s.close()

@pytest.fixture()
def notes():
    return NotificationSink(maxlen=200)

@pytest.fixture()
def workflow(db, notes):
    return OrderWorkflow(db, notes)

@pytest.fixture()
def shop(db):
    """One branch, one customer, two menu items with 50 units each (threshold 10)."""
    branch = Branch(name="Highlands Coffee - District 1", address="123 Nguyen Hue St", phone="0281234567")
    customer = Customer(name="Nguyen Van A", email="nguyenvana@example.com", phone="0901234567")
    coffee = MenuItem(name="Phin Sua Da", price=45000, category="Coffee")
    banh_mi = MenuItem(name="Banh Mi", price=35000, category="Food")
    db.add_all([branch, customer, coffee, banh_mi])
    db.flush()
    for item in (coffee, banh_mi):
        db.add(InventoryRecord(menu_item_id=item.id, branch_id=branch.id, quantity=50, low_stock_threshold=10))
    db.commit()
    return SimpleNamespace(branch_id=branch.id, customer_id=customer.id, coffee_id=coffee.id, banh_mi_id=banh_mi.id)

@pytest.fixture()
def client(session_factory, notes):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    previous = app.state.notifications
    app.state.notifications = notes
    yield TestClient(app)
    app.dependency_overrides.clear()
    app.state.notifications = previous


# helpers shared by the test modules
def stock_of(db, menu_item_id: int, branch_id: int) -> int:
    stmt = (
        select(InventoryRecord.quantity)
        .where(InventoryRecord.menu_item_id == menu_item_id, InventoryRecord.branch_id == branch_id)
    )
    return db.execute(stmt).scalar_one()

def set_stock(db, menu_item_id: int, branch_id: int, quantity: int, threshold: int = 10) -> None:
    rec = db.execute(
        select(InventoryRecord)
        .where(InventoryRecord.menu_item_id == menu_item_id, InventoryRecord.branch_id == branch_id)
        .execution_options(populate_existing=True)
    ).scalar_one()
    rec.quantity = quantity
    rec.low_stock_threshold = threshold
    db.commit()

def give_points(db, customer_id: int, points: int) -> None:
    acct = db.execute(
        select(LoyaltyAccount)
        .where(LoyaltyAccount.customer_id == customer_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if acct is None:
        acct = LoyaltyAccount(customer_id=customer_id)
        db.add(acct)
    acct.points = points
    acct.tier = tier_for(points).value
    db.commit()
