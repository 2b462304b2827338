from datetime import datetime
from typing import Optional

from hcpos.schemas.common import CamelModel
from hcpos.services.payments import PaymentDetails

class TransactionOut(CamelModel):
    id: int
    order_id: int
    payment_type: str
    amount: float
    status: str
    transaction_details: Optional[PaymentDetails] = None
    created_at: Optional[datetime] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None

class PaymentTypeBreakdown(CamelModel):
    payment_type: str
    count: int
    revenue: float

class PaymentStatisticsOut(CamelModel):
    total_transactions: int
    successful_transactions: int
    failed_transactions: int
    total_revenue: float
    average_transaction: Optional[float] = None
    payment_type_breakdown: list[PaymentTypeBreakdown]
