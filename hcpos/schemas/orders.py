from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from hcpos.models.core import OrderStatus, PaymentStatus, PaymentType
from hcpos.schemas.common import CamelModel
from hcpos.services.payments import PaymentResult

class OrderLineIn(CamelModel):
    menu_item_id: Optional[int] = None
    quantity: Optional[int] = None

class OrderCreateIn(CamelModel):
    customer_id: Optional[int] = None
    branch_id: Optional[int] = None
    items: list[OrderLineIn] = Field(default_factory=list)
    payment_type: Optional[str] = None
    payment_details: dict[str, Any] = Field(default_factory=dict)
    loyalty_points_to_redeem: int = 0

class OrderItemOut(CamelModel):
    id: int
    order_id: int
    menu_item_id: int
    menu_item_name: str
    quantity: int
    unit_price: float
    subtotal: float

class OrderOut(CamelModel):
    id: int
    customer_id: int
    branch_id: int
    total_amount: float
    payment_type: PaymentType
    payment_status: PaymentStatus
    order_status: OrderStatus
    created_at: Optional[datetime] = None
    items: list[OrderItemOut] = Field(default_factory=list)

class OrderSummaryOut(CamelModel):
    id: int
    customer_id: int
    branch_id: int
    total_amount: float
    payment_type: str
    payment_status: str
    order_status: str
    created_at: Optional[datetime] = None
    customer_name: Optional[str] = None
    branch_name: Optional[str] = None

class LoyaltyResultOut(CamelModel):
    success: bool = True
    points_added: int
    new_balance: int
    tier: str

class OrderCreateOut(CamelModel):
    success: bool = True
    order: OrderOut
    payment: PaymentResult
    loyalty: LoyaltyResultOut
    loyalty_discount: float
    message: str

class OrderStatusIn(CamelModel):
    status: Optional[str] = None

class OrderStatisticsOut(CamelModel):
    total_orders: int
    completed_orders: int
    cancelled_orders: int
    total_revenue: float
    average_order_value: Optional[float] = None
