from typing import Optional

from hcpos.schemas.common import CamelModel

class StockQueryIn(CamelModel):
    menu_item_id: Optional[int] = None
    branch_id: Optional[int] = None
    quantity: Optional[int] = None

class ThresholdIn(CamelModel):
    menu_item_id: Optional[int] = None
    branch_id: Optional[int] = None
    threshold: Optional[int] = None

class CheckStockOut(CamelModel):
    success: bool = True
    available: bool
    current_stock: int

class RestockOut(CamelModel):
    success: bool = True
    message: str
    menu_item_name: str
    branch_name: str
    quantity_added: int
    new_stock: int

class InventoryRowOut(CamelModel):
    id: int
    menu_item_id: int
    branch_id: int
    quantity: int
    low_stock_threshold: int
    menu_item_name: str
    price: float
    category: Optional[str] = None
    branch_name: str
