from fastapi import APIRouter, Depends

from hcpos.deps import get_payments
from hcpos.schemas.payments import PaymentStatisticsOut, TransactionOut
from hcpos.services.payments import PaymentGateway

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/")
def list_payments(payments: PaymentGateway = Depends(get_payments)):
    return {"success": True, "payments": [TransactionOut.model_validate(r) for r in payments.list_payments()]}

@router.get("/statistics")
def payment_statistics(payments: PaymentGateway = Depends(get_payments)):
    return {"success": True, "statistics": PaymentStatisticsOut.model_validate(payments.payment_statistics())}

@router.get("/transaction/{transaction_id}")
def get_transaction(transaction_id: int, payments: PaymentGateway = Depends(get_payments)):
    return {"success": True, "transaction": TransactionOut.model_validate(payments.get_transaction(transaction_id))}

@router.get("/order/{order_id}")
def payments_for_order(order_id: int, payments: PaymentGateway = Depends(get_payments)):
    return {"success": True, "payments": [TransactionOut.model_validate(r) for r in payments.payments_by_order(order_id)]}
