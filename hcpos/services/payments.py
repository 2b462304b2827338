"""
Payment execution for the four supported payment kinds.

Each kind is a small transient model (``CashPayment``, ``CardPayment``,
``EWalletPayment``, ``QRPayment``) that validates its own inputs and returns a
``PaymentResult``. Business validation failures (short cash, bad card, ...)
come back as ``success=False``; only an unknown payment type raises.

``PaymentGateway`` picks the variant by its ``PaymentType`` tag, runs it and
appends exactly one ``PaymentTransaction`` row per call. The receipt stored on
that row is one of the ``PaymentDetails`` records, JSON-encoded at the
storage boundary.
"""

import logging
import secrets
import time
import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter
from pydantic import ValidationError as SchemaError
from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hcpos.errors import NotFoundError, ValidationError
from hcpos.models.core import Customer, Order, PaymentTransaction, PaymentType, TransactionStatus
from hcpos.schemas.common import CamelModel

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _txn_id(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.randbelow(1000)}"


def generate_qr_code() -> str:
    return f"QR-{int(time.time() * 1000)}-{uuid.uuid4().hex[:13]}"


# ── Receipts (structured transaction details) ──────────────────────────────
class CashReceipt(CamelModel):
    kind: Literal["cash"] = "cash"
    received: float
    change: float
    timestamp: datetime = Field(default_factory=_now)

class CardReceipt(CamelModel):
    kind: Literal["card"] = "card"
    transaction_id: str
    card_last_four: str
    card_holder: str | None = None
    timestamp: datetime = Field(default_factory=_now)

class EWalletReceipt(CamelModel):
    kind: Literal["ewallet"] = "ewallet"
    transaction_id: str
    wallet_type: str
    phone_number: str
    timestamp: datetime = Field(default_factory=_now)

class QRReceipt(CamelModel):
    kind: Literal["qr"] = "qr"
    transaction_id: str
    qr_code: str  # truncated preview
    timestamp: datetime = Field(default_factory=_now)

class Declined(CamelModel):
    kind: Literal["declined"] = "declined"
    error: str
    received: float | None = None
    required: float | None = None

class GatewayError(CamelModel):
    kind: Literal["error"] = "error"
    error: str

PaymentDetails = Annotated[
    Union[CashReceipt, CardReceipt, EWalletReceipt, QRReceipt, Declined, GatewayError],
    Field(discriminator="kind"),
]
_details_adapter = TypeAdapter(PaymentDetails)


class PaymentResult(CamelModel):
    success: bool
    message: str
    details: PaymentDetails | None = None

    @property
    def transaction_id(self) -> str | None:
        return getattr(self.details, "transaction_id", None)

    @property
    def change(self) -> float | None:
        return getattr(self.details, "change", None)


def _declined(message: str, error: str | None = None, **extra) -> PaymentResult:
    return PaymentResult(success=False, message=message, details=Declined(error=error or message, **extra))


# ── Payment kinds ───────────────────────────────────────────────────────────
class CashPayment(CamelModel):
    kind: Literal["cash"] = "cash"
    amount: float
    received_amount: float | None = None

    def type(self) -> PaymentType:
        return PaymentType.CASH

    def process(self) -> PaymentResult:
        received = self.received_amount if self.received_amount else self.amount
        if received < self.amount:
            return _declined("Insufficient cash provided", "Insufficient cash", received=received, required=self.amount)
        return PaymentResult(
            success=True,
            message="Cash payment successful",
            details=CashReceipt(received=received, change=received - self.amount),
        )


class CardPayment(CamelModel):
    kind: Literal["card"] = "card"
    amount: float
    card_number: str | None = None
    card_holder: str | None = None
    cvv: str | None = None

    def type(self) -> PaymentType:
        return PaymentType.CARD

    def process(self) -> PaymentResult:
        if not self.card_number or len(self.card_number) < 13:
            return _declined("Invalid card number")
        if not self.cvv or len(self.cvv) < 3:
            return _declined("Invalid CVV")
        return PaymentResult(
            success=True,
            message="Card payment successful",
            details=CardReceipt(
                transaction_id=_txn_id("CARD"),
                card_last_four=self.card_number[-4:],
                card_holder=self.card_holder,
            ),
        )


class EWalletPayment(CamelModel):
    kind: Literal["ewallet"] = "ewallet"
    amount: float
    wallet_type: str = "Momo"
    phone_number: str | None = None

    def type(self) -> PaymentType:
        return PaymentType.EWALLET

    def process(self) -> PaymentResult:
        if not self.phone_number or len(self.phone_number) < 10:
            return _declined("Invalid phone number for e-wallet", "Invalid phone number")
        return PaymentResult(
            success=True,
            message=f"{self.wallet_type} payment successful",
            details=EWalletReceipt(
                transaction_id=_txn_id(self.wallet_type.upper()),
                wallet_type=self.wallet_type,
                phone_number=self.phone_number,
            ),
        )


class QRPayment(CamelModel):
    kind: Literal["qr"] = "qr"
    amount: float
    qr_code: str | None = None

    def type(self) -> PaymentType:
        return PaymentType.QR

    def process(self) -> PaymentResult:
        if not self.qr_code or len(self.qr_code) < 10:
            return _declined("Invalid QR code")
        return PaymentResult(
            success=True,
            message="QR payment successful",
            details=QRReceipt(transaction_id=_txn_id("QR"), qr_code=self.qr_code[:10] + "..."),
        )


Payment = Union[CashPayment, CardPayment, EWalletPayment, QRPayment]

PAYMENT_KINDS: dict[PaymentType, type] = {
    PaymentType.CASH: CashPayment,
    PaymentType.CARD: CardPayment,
    PaymentType.EWALLET: EWalletPayment,
    PaymentType.QR: QRPayment,
}


def parse_payment_type(value: PaymentType | str | None) -> PaymentType:
    if isinstance(value, PaymentType):
        return value
    try:
        return PaymentType(str(value or "").strip().lower())
    except ValueError:
        raise ValidationError(f"Unsupported payment type: {value}") from None


def build_payment(payment_type: PaymentType, amount: float, details: dict[str, Any] | None = None) -> Payment:
    """Instantiate the variant for ``payment_type``; raises pydantic's error on malformed details."""
    data = {k: v for k, v in (details or {}).items() if k not in ("amount", "kind")}
    data["amount"] = amount
    if payment_type is PaymentType.QR and not (data.get("qrCode") or data.get("qr_code")):
        data["qr_code"] = generate_qr_code()
    return PAYMENT_KINDS[payment_type].model_validate(data)


# ── Gateway ─────────────────────────────────────────────────────────────────
class PaymentGateway:
    def __init__(self, db: Session):
        self.db = db

    def process(self, order: Order, payment_type: PaymentType | str, payment_details: dict | None = None) -> PaymentResult:
        amount = float(order.total_amount)
        try:
            kind = parse_payment_type(payment_type)
        except ValidationError as exc:
            self.log_transaction(order.id, str(payment_type), amount, TransactionStatus.ERROR, GatewayError(error=str(exc)))
            raise

        try:
            payment = build_payment(kind, amount, payment_details)
        except SchemaError as exc:
            logger.info("order %s: malformed %s payment details: %s", order.id, kind.value, exc.errors())
            result = _declined("Invalid payment details")
        else:
            result = payment.process()

        status = TransactionStatus.COMPLETED if result.success else TransactionStatus.FAILED
        self.log_transaction(order.id, kind.value, amount, status, result.details)
        logger.info("order %s: %s payment %s (%s)", order.id, kind.value, status.value, result.message)
        return result

    def log_transaction(self, order_id: int, payment_type: str, amount: float,
                        status: TransactionStatus, details=None) -> int | None:
        try:
            tx = PaymentTransaction(
                order_id=order_id,
                payment_type=payment_type,
                amount=amount,
                status=status,
                transaction_details=details.model_dump_json(by_alias=True) if details is not None else None,
            )
            self.db.add(tx)
            self.db.commit()
            return tx.id
        except SQLAlchemyError:
            # the payment outcome still stands
            self.db.rollback()
            logger.exception("failed to log payment transaction for order %s", order_id)
            return None

    # ── queries ────────────────────────────────────────────────────────────
    @staticmethod
    def decode_details(raw: str | None):
        if not raw:
            return None
        return _details_adapter.validate_json(raw)

    def _row(self, tx: PaymentTransaction, **extra) -> dict:
        return {
            "id": tx.id,
            "order_id": tx.order_id,
            "payment_type": tx.payment_type,
            "amount": float(tx.amount),
            "status": tx.status.value,
            "transaction_details": self.decode_details(tx.transaction_details),
            "created_at": tx.created_at,
            **extra,
        }

    def get_transaction(self, transaction_id: int) -> dict:
        tx = self.db.get(PaymentTransaction, transaction_id)
        if not tx:
            raise NotFoundError("Transaction not found")
        return self._row(tx)

    def payments_by_order(self, order_id: int) -> list[dict]:
        rows = (
            self.db.query(PaymentTransaction)
            .filter(PaymentTransaction.order_id == order_id)
            .order_by(PaymentTransaction.created_at.desc(), PaymentTransaction.id.desc())
            .all()
        )
        return [self._row(tx) for tx in rows]

    def list_payments(self) -> list[dict]:
        rows = (
            self.db.query(PaymentTransaction, Order.customer_id, Customer.name)
            .join(Order, Order.id == PaymentTransaction.order_id)
            .join(Customer, Customer.id == Order.customer_id)
            .order_by(PaymentTransaction.created_at.desc(), PaymentTransaction.id.desc())
            .all()
        )
        return [self._row(tx, customer_id=cid, customer_name=name) for tx, cid, name in rows]

    def payment_statistics(self) -> dict:
        completed = PaymentTransaction.status == TransactionStatus.COMPLETED
        failed = PaymentTransaction.status == TransactionStatus.FAILED
        total, ok, bad, revenue, avg = self.db.query(
            func.count(PaymentTransaction.id),
            func.coalesce(func.sum(case((completed, 1), else_=0)), 0),
            func.coalesce(func.sum(case((failed, 1), else_=0)), 0),
            func.coalesce(func.sum(case((completed, PaymentTransaction.amount), else_=0)), 0),
            func.avg(case((completed, PaymentTransaction.amount), else_=None)),
        ).one()

        breakdown = (
            self.db.query(
                PaymentTransaction.payment_type,
                func.count(PaymentTransaction.id),
                func.coalesce(func.sum(case((completed, PaymentTransaction.amount), else_=0)), 0),
            )
            .group_by(PaymentTransaction.payment_type)
            .order_by(PaymentTransaction.payment_type)
            .all()
        )
        return {
            "total_transactions": int(total or 0),
            "successful_transactions": int(ok or 0),
            "failed_transactions": int(bad or 0),
            "total_revenue": float(revenue or 0),
            "average_transaction": float(avg) if avg is not None else None,
            "payment_type_breakdown": [
                {"payment_type": ptype, "count": int(count), "revenue": float(rev or 0)}
                for ptype, count, rev in breakdown
            ],
        }
