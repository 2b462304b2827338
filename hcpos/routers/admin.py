import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from hcpos.config import settings
from hcpos.db import get_db
from hcpos.models.core import Branch, Customer, InventoryRecord, LoyaltyAccount, LoyaltyTier, MenuItem

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

DEMO_BRANCHES = [
    {"name": "Highlands Coffee - District 1", "address": "123 Nguyen Hue St, District 1", "phone": "0281234567"},
    {"name": "Highlands Coffee - District 3", "address": "456 Le Van Sy St, District 3", "phone": "0281234568"},
    {"name": "Highlands Coffee - Tan Binh", "address": "789 Hoang Van Thu St, Tan Binh", "phone": "0281234569"},
]

DEMO_MENU = [
    {"name": "Phin Sua Da", "description": "Traditional Vietnamese Iced Coffee", "price": 45000, "category": "Coffee"},
    {"name": "Bac Xiu", "description": "Milk Coffee", "price": 42000, "category": "Coffee"},
    {"name": "Cappuccino", "description": "Italian Classic", "price": 55000, "category": "Coffee"},
    {"name": "Tra Xanh", "description": "Green Tea", "price": 38000, "category": "Tea"},
    {"name": "Tra Dao", "description": "Peach Tea", "price": 50000, "category": "Tea"},
    {"name": "Banh Mi", "description": "Vietnamese Sandwich", "price": 35000, "category": "Food"},
]

DEMO_CUSTOMERS = [
    {"name": "Nguyen Van A", "email": "nguyenvana@example.com", "phone": "0901234567"},
    {"name": "Tran Thi B", "email": "tranthib@example.com", "phone": "0901234568"},
]

DEMO_STOCK = 50


def seed_demo_data(db: Session) -> dict:
    """Insert the demo directory and stock once; a no-op when branches exist."""
    if db.query(Branch).first():
        return {"seeded": False}

    branches = [Branch(**b) for b in DEMO_BRANCHES]
    items = [MenuItem(**m) for m in DEMO_MENU]
    db.add_all(branches + items)
    db.flush()

    for c in DEMO_CUSTOMERS:
        cust = Customer(**c)
        db.add(cust); db.flush()
        db.add(LoyaltyAccount(customer_id=cust.id, points=0, tier=LoyaltyTier.BRONZE.value))

    for b in branches:
        for m in items:
            db.add(InventoryRecord(
                menu_item_id=m.id, branch_id=b.id,
                quantity=DEMO_STOCK, low_stock_threshold=settings.LOW_STOCK_DEFAULT_THRESHOLD,
            ))
    db.commit()
    logger.info("seeded %s branches, %s menu items, %s customers", len(branches), len(items), len(DEMO_CUSTOMERS))
    return {"seeded": True}


@router.post("/dev-bootstrap")
def dev_bootstrap(db: Session = Depends(get_db)):
    if settings.APP_ENV != "dev":
        raise HTTPException(403, detail="Not allowed")

    result = seed_demo_data(db)
    return {
        **result,
        "branch_ids": [b.id for b in db.query(Branch).order_by(Branch.id).all()],
        "menu_item_ids": [m.id for m in db.query(MenuItem).order_by(MenuItem.id).all()],
        "customer_ids": [c.id for c in db.query(Customer).order_by(Customer.id).all()],
    }
