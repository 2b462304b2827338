"""
In-process notification log for order, payment, loyalty and stock events.

The sink is best-effort: producers call it inline and never expect it to
raise. Entries live in a bounded deque, so the oldest are dropped once the
configured capacity is reached.
"""

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    ORDER_CONFIRMATION = "order_confirmation"
    PAYMENT_CONFIRMATION = "payment_confirmation"
    LOYALTY_UPDATE = "loyalty_update"
    LOW_STOCK_ALERT = "low_stock_alert"
    INVENTORY_UPDATE = "inventory_update"
    ERROR = "error"


class Notification(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)

    type: NotificationType
    title: str
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    order_id: int | None = None
    customer_id: int | None = None
    points_added: int | None = None
    new_balance: int | None = None
    menu_item_name: str | None = None
    branch_name: str | None = None
    current_stock: int | None = None
    threshold: int | None = None
    quantity_deducted: int | None = None
    new_stock: int | None = None
    error_type: str | None = None


def _amount(x: Any) -> str:
    return f"{float(x or 0):,.0f}"


class NotificationSink:
    def __init__(self, maxlen: int = 500):
        self._entries: deque[Notification] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def emit(self, kind: NotificationType, title: str, message: str, **fields) -> Notification | None:
        try:
            note = Notification(type=kind, title=title, message=message, **fields)
            with self._lock:
                self._entries.append(note)
        except Exception:
            logger.exception("dropping %s notification", getattr(kind, "value", kind))
            return None
        if note.type == NotificationType.ERROR.value:
            logger.error("[ERROR NOTIFICATION] %s", message)
        else:
            logger.info("[NOTIFICATION] %s", message)
        return note

    # ── producers ──────────────────────────────────────────────────────────
    def order_confirmation(self, order, customer_name: str, branch_name: str):
        return self.emit(
            NotificationType.ORDER_CONFIRMATION, "Order Confirmed",
            f"Order #{order.id} has been confirmed for {customer_name} at {branch_name}. "
            f"Total: {_amount(order.total_amount)}",
            order_id=order.id,
        )

    def payment_confirmation(self, payment_result, order_id: int, amount):
        details = getattr(payment_result, "details", None)
        via = getattr(details, "transaction_id", None) or "cash"
        return self.emit(
            NotificationType.PAYMENT_CONFIRMATION, "Payment Successful",
            f"Payment of {_amount(amount)} for Order #{order_id} was successful via {via}",
            order_id=order_id,
        )

    def loyalty_update(self, customer_id: int, points_added: int, new_balance: int):
        return self.emit(
            NotificationType.LOYALTY_UPDATE, "Loyalty Points Updated",
            f"You earned {points_added} points! New balance: {new_balance} points",
            customer_id=customer_id, points_added=points_added, new_balance=new_balance,
        )

    def low_stock_alert(self, menu_item_name: str, branch_name: str, current_stock: int, threshold: int):
        return self.emit(
            NotificationType.LOW_STOCK_ALERT, "Low Stock Alert",
            f"Low stock alert: {menu_item_name} at {branch_name} has only {current_stock} units left "
            f"(threshold: {threshold})",
            menu_item_name=menu_item_name, branch_name=branch_name,
            current_stock=current_stock, threshold=threshold,
        )

    def inventory_update(self, menu_item_name: str, branch_name: str, quantity_deducted: int, new_stock: int):
        return self.emit(
            NotificationType.INVENTORY_UPDATE, "Inventory Updated",
            f"{menu_item_name} at {branch_name}: {quantity_deducted} units deducted. New stock: {new_stock}",
            menu_item_name=menu_item_name, branch_name=branch_name,
            quantity_deducted=quantity_deducted, new_stock=new_stock,
        )

    def error(self, error_type: str, message: str):
        return self.emit(NotificationType.ERROR, "Error", message, error_type=error_type)

    # ── readers ────────────────────────────────────────────────────────────
    def recent(self, limit: int = 10) -> list[Notification]:
        with self._lock:
            entries = list(self._entries)
        if limit <= 0:
            return []
        return list(reversed(entries[-limit:]))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
