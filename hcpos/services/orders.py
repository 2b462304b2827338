"""
Order fulfillment: cart -> priced, paid, stock-adjusted, loyalty-updated order.

``OrderWorkflow.create_order`` commits in separate units, in this order:

1. loyalty redemption (committed before the order exists),
2. the pending order and its lines,
3. the payment-transaction log row (written by the gateway),
4. either the failed/cancelled status, or one transaction holding every
   stock deduction, the loyalty accrual and the confirmed status.

If any part of the last unit fails it is rolled back as a whole; the order
is then marked paid but left ``pending`` and the error is re-raised.
Points redeemed in step 1 are not returned when payment fails.
"""

import logging
from decimal import Decimal

from pydantic import ValidationError as SchemaError
from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from hcpos.errors import (
    BusinessRuleError, InsufficientStockError, NotFoundError, PaymentFailure, PersistenceError, PosError,
    ValidationError,
)
from hcpos.models.core import (
    Branch, Customer, Order, OrderItem, OrderStatus, PaymentStatus,
)
from hcpos.schemas.orders import OrderLineIn
from hcpos.services.catalog import BranchDirectory, CustomerDirectory, MenuCatalog
from hcpos.services.loyalty import LoyaltyLedger
from hcpos.services.notifications import NotificationSink
from hcpos.services.payments import PaymentGateway, parse_payment_type
from hcpos.services.stock import StockLedger

logger = logging.getLogger(__name__)


def _money(x) -> Decimal:
    return Decimal(str(x or 0)).quantize(Decimal("0.01"))


class OrderWorkflow:
    def __init__(
        self,
        db: Session,
        notifications: NotificationSink,
        payments: PaymentGateway | None = None,
        stock: StockLedger | None = None,
        loyalty: LoyaltyLedger | None = None,
        menu: MenuCatalog | None = None,
    ):
        self.db = db
        self.notifications = notifications
        self.payments = payments or PaymentGateway(db)
        self.stock = stock or StockLedger(db, notifications)
        self.loyalty = loyalty or LoyaltyLedger(db)
        self.menu = menu or MenuCatalog(db)
        self.branches = BranchDirectory(db)
        self.customers = CustomerDirectory(db)

    # ── createOrder ────────────────────────────────────────────────────────
    def create_order(
        self,
        customer_id: int,
        branch_id: int,
        items: list,
        payment_type,
        payment_details: dict | None = None,
        loyalty_points_to_redeem: int = 0,
    ) -> dict:
        try:
            return self._create_order(
                customer_id, branch_id, items, payment_type, payment_details or {}, loyalty_points_to_redeem or 0,
            )
        except PosError as exc:
            logger.warning("order creation failed: %s", exc)
            self.notifications.error("order_creation", str(exc))
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("order creation hit a storage error")
            self.notifications.error("order_creation", str(exc))
            raise PersistenceError("Failed to create order") from exc

    def _validate(self, customer_id, branch_id, items, payment_type, points) -> tuple[list[OrderLineIn], object]:
        if not customer_id or not branch_id or not items:
            raise ValidationError("Missing required order information")
        lines = []
        for raw in items:
            try:
                line = raw if isinstance(raw, OrderLineIn) else OrderLineIn.model_validate(raw)
            except SchemaError:
                raise ValidationError("Invalid item data") from None
            if not line.menu_item_id or not line.quantity or line.quantity <= 0:
                raise ValidationError("Invalid item data")
            lines.append(line)
        if points < 0:
            raise ValidationError("Loyalty points to redeem must be 0 or greater")
        kind = parse_payment_type(payment_type)
        self.customers.get(customer_id)
        self.branches.get(branch_id)
        return lines, kind

    def _create_order(self, customer_id, branch_id, items, payment_type, payment_details, points) -> dict:
        lines, kind = self._validate(customer_id, branch_id, items, payment_type, points)

        # price + availability; repeated lines for one item draw on the same stock row
        demand: dict[int, int] = {}
        for line in lines:
            demand[line.menu_item_id] = demand.get(line.menu_item_id, 0) + line.quantity

        order_items: list[OrderItem] = []
        subtotal = Decimal("0")
        for line in lines:
            menu_item = self.menu.get(line.menu_item_id)
            wanted = demand[line.menu_item_id]
            check = self.stock.check_stock(line.menu_item_id, branch_id, wanted)
            if not check["available"]:
                raise InsufficientStockError(line.menu_item_id, check["current_stock"], wanted, menu_item.name)
            unit_price = _money(menu_item.price)
            line_total = unit_price * line.quantity
            order_items.append(OrderItem(
                menu_item_id=menu_item.id,
                menu_item_name=menu_item.name,
                quantity=line.quantity,
                unit_price=unit_price,
                subtotal=line_total,
            ))
            subtotal += line_total

        loyalty_discount = 0
        if points > 0:
            redemption = self.loyalty.redeem(customer_id, points)
            self.db.commit()
            loyalty_discount = redemption["discount_amount"]
        total_amount = max(Decimal("0"), subtotal - loyalty_discount)

        order = Order(
            customer_id=customer_id,
            branch_id=branch_id,
            total_amount=total_amount,
            payment_type=kind,
            payment_status=PaymentStatus.PENDING,
            order_status=OrderStatus.PENDING,
            items=order_items,
        )
        self.db.add(order)
        self.db.commit()
        logger.info("order %s pending: %s lines, total %s", order.id, len(order_items), total_amount)

        payment_result = self.payments.process(order, kind, payment_details)

        if not payment_result.success:
            order.payment_status = PaymentStatus.FAILED
            order.order_status = OrderStatus.CANCELLED
            self.db.commit()
            raise PaymentFailure(payment_result.message)

        try:
            stock_result = self.stock.update_stock(order_items, branch_id)
            loyalty_result = self.loyalty.accrue(customer_id, total_amount)
            order.payment_status = PaymentStatus.COMPLETED
            order.order_status = OrderStatus.CONFIRMED
            self.db.commit()
        except (PosError, SQLAlchemyError):
            self.db.rollback()
            self._mark_paid_unconfirmed(order.id)
            raise

        self.stock.publish(stock_result["updates"])
        customer = self.customers.get(customer_id)
        branch = self.branches.get(branch_id)
        self.notifications.order_confirmation(order, customer.name, branch.name)
        self.notifications.payment_confirmation(payment_result, order.id, total_amount)
        self.notifications.loyalty_update(customer_id, loyalty_result["points_added"], loyalty_result["new_balance"])

        return {
            "success": True,
            "order": order,
            "payment": payment_result,
            "loyalty": loyalty_result,
            "loyalty_discount": loyalty_discount,
            "message": "Order created successfully",
        }

    def _mark_paid_unconfirmed(self, order_id: int) -> None:
        try:
            order = self.db.get(Order, order_id)
            if order:
                order.payment_status = PaymentStatus.COMPLETED
                order.order_status = OrderStatus.PENDING
                self.db.commit()
            logger.error("order %s was paid but could not be confirmed", order_id)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("could not record paid-but-unconfirmed state for order %s", order_id)

    # ── queries / lifecycle ────────────────────────────────────────────────
    def get_order_by_id(self, order_id: int) -> Order:
        order = (
            self.db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.id == order_id)
            .populate_existing()
            .first()
        )
        if not order:
            raise NotFoundError(f"Order with ID {order_id} not found")
        return order

    def update_order_status(self, order_id: int, new_status) -> dict:
        try:
            status = new_status if isinstance(new_status, OrderStatus) else OrderStatus(str(new_status))
        except ValueError:
            raise ValidationError(f"Invalid order status: {new_status}") from None
        # any valid status is reachable from any other
        updated = (
            self.db.query(Order)
            .filter(Order.id == order_id)
            .update({Order.order_status: status}, synchronize_session=False)
        )
        if updated == 0:
            self.db.rollback()
            raise NotFoundError(f"Order with ID {order_id} not found")
        self.db.commit()
        logger.info("order %s status -> %s", order_id, status.value)
        return {"success": True, "message": f"Order status updated to {status.value}"}

    def cancel_order(self, order_id: int) -> dict:
        order = self.get_order_by_id(order_id)
        if order.order_status == OrderStatus.COMPLETED:
            raise BusinessRuleError("Cannot cancel completed order")
        # stock already deducted for this order is not returned
        order.order_status = OrderStatus.CANCELLED
        order.payment_status = PaymentStatus.REFUNDED
        self.db.commit()
        logger.info("order %s cancelled", order_id)
        return {"success": True, "message": "Order cancelled successfully"}

    def _listing(self):
        return (
            self.db.query(Order, Customer.name, Branch.name)
            .join(Customer, Customer.id == Order.customer_id)
            .join(Branch, Branch.id == Order.branch_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )

    @staticmethod
    def _summary(order: Order, customer_name: str, branch_name: str) -> dict:
        return {
            "id": order.id,
            "customer_id": order.customer_id,
            "branch_id": order.branch_id,
            "total_amount": float(order.total_amount),
            "payment_type": order.payment_type.value,
            "payment_status": order.payment_status.value,
            "order_status": order.order_status.value,
            "created_at": order.created_at,
            "customer_name": customer_name,
            "branch_name": branch_name,
        }

    def list_orders(self) -> list[dict]:
        return [self._summary(*row) for row in self._listing().all()]

    def orders_by_customer(self, customer_id: int) -> list[dict]:
        return [self._summary(*row) for row in self._listing().filter(Order.customer_id == customer_id).all()]

    def orders_by_branch(self, branch_id: int) -> list[dict]:
        return [self._summary(*row) for row in self._listing().filter(Order.branch_id == branch_id).all()]

    def get_order_statistics(self) -> dict:
        paid = Order.payment_status == PaymentStatus.COMPLETED
        total, completed, cancelled, revenue, average = self.db.query(
            func.count(Order.id),
            func.coalesce(func.sum(case((Order.order_status == OrderStatus.COMPLETED, 1), else_=0)), 0),
            func.coalesce(func.sum(case((Order.order_status == OrderStatus.CANCELLED, 1), else_=0)), 0),
            func.coalesce(func.sum(case((paid, Order.total_amount), else_=0)), 0),
            func.avg(case((paid, Order.total_amount), else_=None)),
        ).one()
        return {
            "total_orders": int(total or 0),
            "completed_orders": int(completed or 0),
            "cancelled_orders": int(cancelled or 0),
            "total_revenue": float(revenue or 0),
            "average_order_value": float(average) if average is not None else None,
        }

