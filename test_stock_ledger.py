# test_stock_ledger.py
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from conftest import set_stock, stock_of
from hcpos.db import Base
from hcpos.errors import InsufficientStockError, NotFoundError, ValidationError
from hcpos.models.core import Branch, InventoryRecord, MenuItem
from hcpos.services.notifications import NotificationSink, NotificationType
from hcpos.services.stock import StockLedger


@pytest.fixture()
def ledger(db, notes):
    return StockLedger(db, notes)

def kinds(notes):
    return [n.type for n in notes.recent(100)]


def test_check_stock_reports_level(ledger, shop):
    assert ledger.check_stock(shop.coffee_id, shop.branch_id, 50) == {"available": True, "current_stock": 50}
    assert ledger.check_stock(shop.coffee_id, shop.branch_id, 51) == {"available": False, "current_stock": 50}

def test_check_stock_without_record_is_unavailable(ledger, shop):
    assert ledger.check_stock(shop.coffee_id, 999, 1) == {"available": False, "current_stock": 0}

def test_deduct_returns_new_level(db, ledger, shop):
    assert ledger.deduct(shop.coffee_id, shop.branch_id, 2) == 48
    db.commit()
    assert stock_of(db, shop.coffee_id, shop.branch_id) == 48

def test_deduct_never_goes_negative(db, ledger, shop):
    set_stock(db, shop.coffee_id, shop.branch_id, 3)
    with pytest.raises(InsufficientStockError) as exc:
        ledger.deduct(shop.coffee_id, shop.branch_id, 4)
    assert exc.value.available == 3 and exc.value.requested == 4
    assert "Phin Sua Da" in str(exc.value)
    db.rollback()
    assert stock_of(db, shop.coffee_id, shop.branch_id) == 3

def test_deduct_missing_record_raises(ledger, shop):
    with pytest.raises(InsufficientStockError):
        ledger.deduct(shop.coffee_id, 999, 1)

def test_update_stock_announces_only_when_published(db, ledger, notes, shop):
    lines = [
        SimpleNamespace(menu_item_id=shop.coffee_id, quantity=2),
        SimpleNamespace(menu_item_id=shop.banh_mi_id, quantity=1),
    ]
    result = ledger.update_stock(lines, shop.branch_id)
    assert result["success"]
    assert [u["new_stock"] for u in result["updates"]] == [48, 49]
    assert len(notes) == 0

    db.commit()
    ledger.publish(result["updates"])
    assert kinds(notes) == [NotificationType.INVENTORY_UPDATE.value] * 2
    latest = notes.recent(1)[0]
    assert latest.menu_item_name == "Banh Mi" and latest.new_stock == 49

def test_update_stock_alerts_at_threshold(db, ledger, notes, shop):
    set_stock(db, shop.coffee_id, shop.branch_id, 12, threshold=10)
    result = ledger.update_stock([SimpleNamespace(menu_item_id=shop.coffee_id, quantity=2)], shop.branch_id)
    db.commit()
    ledger.publish(result["updates"])
    alert = notes.recent(1)[0]
    assert alert.type == NotificationType.LOW_STOCK_ALERT.value
    assert alert.current_stock == 10 and alert.threshold == 10

def test_no_alert_above_threshold(ledger, notes, shop):
    assert ledger.check_low_stock(shop.coffee_id, shop.branch_id) is None
    assert len(notes) == 0

def test_interleaved_sessions_cannot_oversell(tmp_path):
    """Both sessions see enough stock; only the first deduction applies."""
    eng = create_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(eng)
    Session = sessionmaker(bind=eng, autoflush=False, expire_on_commit=False)
    with Session() as s:
        branch = Branch(name="B", address="x")
        item = MenuItem(name="Tra Dao", price=39000)
        s.add_all([branch, item])
        s.flush()
        s.add(InventoryRecord(menu_item_id=item.id, branch_id=branch.id, quantity=10))
        s.commit()
        item_id, branch_id = item.id, branch.id

    sink = NotificationSink()
    with Session() as a, Session() as b:
        first, second = StockLedger(a, sink), StockLedger(b, sink)
        assert first.check_stock(item_id, branch_id, 8)["available"]
        assert second.check_stock(item_id, branch_id, 8)["available"]
        assert first.deduct(item_id, branch_id, 8) == 2
        a.commit()
        with pytest.raises(InsufficientStockError):
            second.deduct(item_id, branch_id, 8)
        b.rollback()

    with Session() as s:
        assert stock_of(s, item_id, branch_id) == 2
    eng.dispose()

def test_restock(db, ledger, shop):
    result = ledger.restock(shop.coffee_id, shop.branch_id, 25)
    db.commit()
    assert result["new_stock"] == 75
    assert result["menu_item_name"] == "Phin Sua Da"
    assert result["branch_name"].startswith("Highlands")

@pytest.mark.parametrize("qty", [0, -5])
def test_restock_rejects_non_positive(ledger, shop, qty):
    with pytest.raises(ValidationError):
        ledger.restock(shop.coffee_id, shop.branch_id, qty)

def test_restock_unknown_record(ledger, shop):
    with pytest.raises(NotFoundError):
        ledger.restock(shop.coffee_id, 999, 5)

def test_update_threshold(db, ledger, shop):
    ledger.update_threshold(shop.coffee_id, shop.branch_id, 60)
    db.commit()
    [row] = [r for r in ledger.low_stock_items() if r["menu_item_id"] == shop.coffee_id]
    assert row["low_stock_threshold"] == 60
    with pytest.raises(ValidationError):
        ledger.update_threshold(shop.coffee_id, shop.branch_id, -1)
    with pytest.raises(NotFoundError):
        ledger.update_threshold(shop.coffee_id, 999, 5)

def test_listings(db, ledger, shop):
    rows = ledger.inventory_by_branch(shop.branch_id)
    assert [r["menu_item_name"] for r in rows] == ["Phin Sua Da", "Banh Mi"]  # Coffee < Food
    assert len(ledger.all_inventory()) == 2
    assert ledger.low_stock_items() == []
    set_stock(db, shop.banh_mi_id, shop.branch_id, 4)
    low = ledger.low_stock_items()
    assert [r["menu_item_name"] for r in low] == ["Banh Mi"]
    assert low[0]["price"] == 35000
