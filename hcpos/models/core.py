from sqlalchemy import (
    String, ForeignKey, Boolean, Numeric, Enum, Text, Integer, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from enum import Enum as PyEnum
from decimal import Decimal
from hcpos.db import Base
from hcpos.models.common import IdMixin, TSMixin

# ── Enums ───────────────────────────────────────────────────────────────────
class OrderStatus(PyEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class PaymentStatus(PyEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

class PaymentType(PyEnum):
    CASH = "cash"
    CARD = "card"
    EWALLET = "ewallet"
    QR = "qr"

class TransactionStatus(PyEnum):
    COMPLETED = "completed"
    FAILED = "failed"
    ERROR = "error"

class LoyaltyTier(str, PyEnum):
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"

# ── Directory (branches / customers / menu) ─────────────────────────────────
class Branch(Base, IdMixin, TSMixin):
    __tablename__ = "branch"
    name: Mapped[str] = mapped_column(String(160))
    address: Mapped[str] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(String(20))

class Customer(Base, IdMixin, TSMixin):
    __tablename__ = "customer"
    name: Mapped[str] = mapped_column(String(160))
    email: Mapped[str | None] = mapped_column(String(160), unique=True)
    phone: Mapped[str | None] = mapped_column(String(20))

class MenuItem(Base, IdMixin, TSMixin):
    __tablename__ = "menu_item"
    name: Mapped[str] = mapped_column(String(160))
    description: Mapped[str | None] = mapped_column(Text)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    category: Mapped[str | None] = mapped_column(String(60))
    available: Mapped[bool] = mapped_column(Boolean, default=True)

# ── Stock ───────────────────────────────────────────────────────────────────
class InventoryRecord(Base, IdMixin, TSMixin):
    __tablename__ = "inventory"
    menu_item_id: Mapped[int] = mapped_column(ForeignKey("menu_item.id"))
    branch_id: Mapped[int] = mapped_column(ForeignKey("branch.id"))
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    low_stock_threshold: Mapped[int] = mapped_column(Integer, default=10)
    __table_args__ = (
        UniqueConstraint("menu_item_id", "branch_id", name="uq_inventory_item_branch"),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        CheckConstraint("low_stock_threshold >= 0", name="ck_inventory_threshold_non_negative"),
    )

# ── Loyalty ─────────────────────────────────────────────────────────────────
class LoyaltyAccount(Base, IdMixin, TSMixin):
    __tablename__ = "loyalty_account"
    customer_id: Mapped[int] = mapped_column(ForeignKey("customer.id"), unique=True)
    points: Mapped[int] = mapped_column(Integer, default=0)
    # derived from points; only written together with points
    tier: Mapped[str] = mapped_column(String(10), default=LoyaltyTier.BRONZE.value)
    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_loyalty_points_non_negative"),
    )

# ── Orders / payments ───────────────────────────────────────────────────────
class Order(Base, IdMixin, TSMixin):
    __tablename__ = "order"
    customer_id: Mapped[int] = mapped_column(ForeignKey("customer.id"))
    branch_id: Mapped[int] = mapped_column(ForeignKey("branch.id"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    payment_type: Mapped[PaymentType] = mapped_column(Enum(PaymentType))
    payment_status: Mapped[PaymentStatus] = mapped_column(Enum(PaymentStatus), default=PaymentStatus.PENDING)
    order_status: Mapped[OrderStatus] = mapped_column(Enum(OrderStatus), default=OrderStatus.PENDING)
    items: Mapped[list["OrderItem"]] = relationship(order_by="OrderItem.id", cascade="all, delete-orphan")

class OrderItem(Base, IdMixin, TSMixin):
    __tablename__ = "order_item"
    order_id: Mapped[int] = mapped_column(ForeignKey("order.id"))
    menu_item_id: Mapped[int] = mapped_column(ForeignKey("menu_item.id"))
    menu_item_name: Mapped[str] = mapped_column(String(160))  # snapshot at order time
    quantity: Mapped[int] = mapped_column(Integer)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_item_quantity_positive"),
    )

class PaymentTransaction(Base, IdMixin, TSMixin):
    """Append-only log of every gateway invocation."""
    __tablename__ = "payment_transaction"
    order_id: Mapped[int] = mapped_column(ForeignKey("order.id"))
    payment_type: Mapped[str] = mapped_column(String(20))
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    status: Mapped[TransactionStatus] = mapped_column(Enum(TransactionStatus))
    transaction_details: Mapped[str | None] = mapped_column(Text)  # JSON-encoded PaymentDetails
