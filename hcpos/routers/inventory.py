# hcpos/routers/inventory.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hcpos.db import get_db
from hcpos.deps import get_stock
from hcpos.errors import ValidationError
from hcpos.schemas.common import Msg
from hcpos.schemas.inventory import CheckStockOut, InventoryRowOut, RestockOut, StockQueryIn, ThresholdIn
from hcpos.services.catalog import BranchDirectory
from hcpos.services.stock import StockLedger

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("/")
def all_inventory(stock: StockLedger = Depends(get_stock)):
    return {"success": True, "inventory": [InventoryRowOut.model_validate(r) for r in stock.all_inventory()]}

@router.get("/branch/{branch_id}")
def branch_inventory(branch_id: int, stock: StockLedger = Depends(get_stock), db: Session = Depends(get_db)):
    branch = BranchDirectory(db).get(branch_id)
    return {
        "success": True,
        "branch": {"id": branch.id, "name": branch.name, "address": branch.address, "phone": branch.phone},
        "inventory": [InventoryRowOut.model_validate(r) for r in stock.inventory_by_branch(branch_id)],
    }

@router.get("/low-stock")
def low_stock(stock: StockLedger = Depends(get_stock)):
    rows = [InventoryRowOut.model_validate(r) for r in stock.low_stock_items()]
    return {"success": True, "lowStockItems": rows, "count": len(rows)}

@router.post("/check-stock", response_model=CheckStockOut)
def check_stock(body: StockQueryIn, stock: StockLedger = Depends(get_stock)):
    if not body.menu_item_id or not body.branch_id or not body.quantity:
        raise ValidationError("Missing required fields: menuItemId, branchId, or quantity")
    return stock.check_stock(body.menu_item_id, body.branch_id, body.quantity)

@router.post("/restock", response_model=RestockOut)
def restock(body: StockQueryIn, stock: StockLedger = Depends(get_stock), db: Session = Depends(get_db)):
    if not body.menu_item_id or not body.branch_id or body.quantity is None:
        raise ValidationError("Missing required fields: menuItemId, branchId, or quantity")
    result = stock.restock(body.menu_item_id, body.branch_id, body.quantity)
    db.commit()
    return {**result, "message": f"Successfully restocked {result['menu_item_name']} at {result['branch_name']}"}

@router.put("/threshold", response_model=Msg)
def update_threshold(body: ThresholdIn, stock: StockLedger = Depends(get_stock), db: Session = Depends(get_db)):
    if not body.menu_item_id or not body.branch_id or body.threshold is None:
        raise ValidationError("Missing required fields: menuItemId, branchId, or threshold")
    result = stock.update_threshold(body.menu_item_id, body.branch_id, body.threshold)
    db.commit()
    return result
