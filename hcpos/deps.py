from fastapi import Depends, Request
from sqlalchemy.orm import Session

from hcpos.db import get_db
from hcpos.services.loyalty import LoyaltyLedger
from hcpos.services.notifications import NotificationSink
from hcpos.services.orders import OrderWorkflow
from hcpos.services.payments import PaymentGateway
from hcpos.services.stock import StockLedger


def get_notifications(request: Request) -> NotificationSink:
    return request.app.state.notifications

def get_payments(db: Session = Depends(get_db)) -> PaymentGateway:
    return PaymentGateway(db)

def get_stock(db: Session = Depends(get_db), notes: NotificationSink = Depends(get_notifications)) -> StockLedger:
    return StockLedger(db, notes)

def get_loyalty(db: Session = Depends(get_db)) -> LoyaltyLedger:
    return LoyaltyLedger(db)

def get_workflow(
    db: Session = Depends(get_db),
    notes: NotificationSink = Depends(get_notifications),
    payments: PaymentGateway = Depends(get_payments),
    stock: StockLedger = Depends(get_stock),
    loyalty: LoyaltyLedger = Depends(get_loyalty),
) -> OrderWorkflow:
    return OrderWorkflow(db, notes, payments=payments, stock=stock, loyalty=loyalty)
