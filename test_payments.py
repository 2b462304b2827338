# test_payments.py
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from hcpos.errors import ValidationError
from hcpos.models.core import Order, OrderStatus, PaymentStatus, PaymentTransaction, PaymentType, TransactionStatus
from hcpos.services.payments import (
    CardPayment, CashPayment, EWalletPayment, PaymentGateway, QRPayment, build_payment, parse_payment_type,
)


@pytest.fixture()
def order(db, shop):
    o = Order(
        customer_id=shop.customer_id, branch_id=shop.branch_id, total_amount=90000,
        payment_type=PaymentType.CASH, payment_status=PaymentStatus.PENDING, order_status=OrderStatus.PENDING,
    )
    db.add(o)
    db.commit()
    return o

def tx_count(db, order_id=None) -> int:
    stmt = select(func.count(PaymentTransaction.id))
    if order_id is not None:
        stmt = stmt.where(PaymentTransaction.order_id == order_id)
    return db.execute(stmt).scalar_one()


# ── variants ────────────────────────────────────────────────────────────────
def test_cash_exact_amount_gives_zero_change():
    r = CashPayment(amount=90000, received_amount=90000).process()
    assert r.success
    assert r.change == 0
    assert r.details.kind == "cash"

def test_cash_defaults_received_to_amount():
    r = CashPayment(amount=50000).process()
    assert r.success and r.change == 0

def test_cash_short_is_declined_not_raised():
    r = CashPayment(amount=90000, received_amount=50000).process()
    assert not r.success
    assert r.message == "Insufficient cash provided"
    assert r.details.kind == "declined"
    assert r.details.received == 50000 and r.details.required == 90000

@pytest.mark.parametrize("card, cvv, message", [
    ("12345678", "123", "Invalid card number"),
    (None, "123", "Invalid card number"),
    ("4111111111111111", "12", "Invalid CVV"),
    ("4111111111111111", None, "Invalid CVV"),
])
def test_card_validation_failures(card, cvv, message):
    r = CardPayment(amount=1000, card_number=card, cvv=cvv).process()
    assert not r.success
    assert r.message == message

def test_card_success_masks_to_last_four():
    r = CardPayment(amount=1000, card_number="4111111111111234", card_holder="A", cvv="123").process()
    assert r.success
    assert r.details.card_last_four == "1234"
    assert r.transaction_id.startswith("CARD-")
    assert "4111111111111234" not in r.model_dump_json()

def test_ewallet_requires_ten_digit_phone():
    assert not EWalletPayment(amount=1000, phone_number="090123").process().success
    r = EWalletPayment(amount=1000, wallet_type="ZaloPay", phone_number="0901234567").process()
    assert r.success
    assert r.message == "ZaloPay payment successful"
    assert r.transaction_id.startswith("ZALOPAY-")

def test_qr_truncates_payload_preview():
    r = QRPayment(amount=1000, qr_code="PAYLOAD-0123456789").process()
    assert r.success
    assert r.details.qr_code == "PAYLOAD-01..."
    assert not QRPayment(amount=1000, qr_code="short").process().success

def test_build_payment_accepts_camel_case_details_and_generates_qr():
    cash = build_payment(PaymentType.CASH, 100.0, {"receivedAmount": 150})
    assert cash.received_amount == 150
    assert cash.type() is PaymentType.CASH
    qr = build_payment(PaymentType.QR, 100.0, {})
    assert qr.qr_code.startswith("QR-") and len(qr.qr_code) >= 10
    assert qr.process().success

def test_parse_payment_type():
    assert parse_payment_type("CASH") is PaymentType.CASH
    assert parse_payment_type(" ewallet ") is PaymentType.EWALLET
    with pytest.raises(ValidationError):
        parse_payment_type("bitcoin")


# ── gateway ─────────────────────────────────────────────────────────────────
def test_every_call_logs_exactly_one_transaction(db, order):
    gw = PaymentGateway(db)
    gw.process(order, "cash", {"receivedAmount": 100000})
    gw.process(order, "card", {"cardNumber": "1234"})
    gw.process(order, "qr", {})
    rows = db.query(PaymentTransaction).order_by(PaymentTransaction.id).all()
    assert [r.status for r in rows] == [TransactionStatus.COMPLETED, TransactionStatus.FAILED, TransactionStatus.COMPLETED]
    assert all(r.order_id == order.id for r in rows)

def test_unknown_type_raises_and_logs_error(db, order):
    gw = PaymentGateway(db)
    with pytest.raises(ValidationError):
        gw.process(order, "bitcoin", {})
    tx = db.query(PaymentTransaction).one()
    assert tx.status == TransactionStatus.ERROR
    assert tx.payment_type == "bitcoin"
    assert gw.decode_details(tx.transaction_details).kind == "error"

def test_malformed_details_are_declined(db, order):
    result = PaymentGateway(db).process(order, "card", {"cardNumber": ["not", "a", "string"]})
    assert not result.success
    assert result.message == "Invalid payment details"
    assert tx_count(db, order.id) == 1

def test_logging_failure_does_not_break_payment(db, order, monkeypatch):
    gw = PaymentGateway(db)

    def boom():
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(db, "commit", boom)
    result = gw.process(order, "cash", {"receivedAmount": 90000})
    assert result.success
    monkeypatch.undo()
    assert tx_count(db) == 0

def test_transaction_details_round_trip_as_structured_record(db, order):
    gw = PaymentGateway(db)
    gw.process(order, "ewallet", {"phoneNumber": "0901234567"})
    [row] = gw.payments_by_order(order.id)
    details = row["transaction_details"]
    assert details.kind == "ewallet"
    assert details.wallet_type == "Momo"
    assert gw.get_transaction(row["id"])["status"] == "completed"

def test_get_missing_transaction(db):
    from hcpos.errors import NotFoundError
    with pytest.raises(NotFoundError):
        PaymentGateway(db).get_transaction(404)

def test_payment_statistics(db, order):
    gw = PaymentGateway(db)
    gw.process(order, "cash", {"receivedAmount": 90000})
    gw.process(order, "card", {"cardNumber": "1"})
    gw.process(order, "card", {"cardNumber": "4111111111111111", "cvv": "123"})
    stats = gw.payment_statistics()
    assert stats["total_transactions"] == 3
    assert stats["successful_transactions"] == 2
    assert stats["failed_transactions"] == 1
    assert stats["total_revenue"] == 180000
    assert stats["average_transaction"] == 90000
    by_type = {b["payment_type"]: b for b in stats["payment_type_breakdown"]}
    assert by_type["card"]["count"] == 2 and by_type["card"]["revenue"] == 90000
    listed = gw.list_payments()
    assert len(listed) == 3 and listed[0]["customer_name"] == "Nguyen Van A"
