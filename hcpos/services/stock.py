"""
Per-(menu item, branch) stock tracking.

Deductions never read-then-write: each one is a single guarded UPDATE
(``quantity >= :qty``) and the affected-row count tells whether it applied,
so concurrent orders cannot push a row below zero. The ledger does not
commit; the caller owns the transaction.
"""

import logging
from collections.abc import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from hcpos.errors import InsufficientStockError, NotFoundError, ValidationError
from hcpos.models.common import utcnow
from hcpos.models.core import Branch, InventoryRecord, MenuItem
from hcpos.services.notifications import NotificationSink

logger = logging.getLogger(__name__)


class StockLedger:
    def __init__(self, db: Session, notifications: NotificationSink):
        self.db = db
        self.notifications = notifications

    def _record(self, menu_item_id: int, branch_id: int) -> InventoryRecord | None:
        stmt = (
            select(InventoryRecord)
            .where(InventoryRecord.menu_item_id == menu_item_id, InventoryRecord.branch_id == branch_id)
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def _names(self, menu_item_id: int, branch_id: int) -> tuple[str, str]:
        item = self.db.get(MenuItem, menu_item_id)
        branch = self.db.get(Branch, branch_id)
        return (
            item.name if item else f"item #{menu_item_id}",
            branch.name if branch else f"branch #{branch_id}",
        )

    def check_stock(self, menu_item_id: int, branch_id: int, quantity: int) -> dict:
        rec = self._record(menu_item_id, branch_id)
        if not rec:
            return {"available": False, "current_stock": 0}
        return {"available": rec.quantity >= quantity, "current_stock": rec.quantity}

    def deduct(self, menu_item_id: int, branch_id: int, quantity: int) -> int:
        """Atomically take ``quantity`` units; returns the new level."""
        stmt = (
            update(InventoryRecord)
            .where(
                InventoryRecord.menu_item_id == menu_item_id,
                InventoryRecord.branch_id == branch_id,
                InventoryRecord.quantity >= quantity,
            )
            .values(quantity=InventoryRecord.quantity - quantity, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        if result.rowcount == 0:
            current = self.check_stock(menu_item_id, branch_id, quantity)["current_stock"]
            item = self.db.get(MenuItem, menu_item_id)
            raise InsufficientStockError(menu_item_id, current, quantity, item.name if item else None)
        return self._record(menu_item_id, branch_id).quantity

    def update_stock(self, items: Iterable, branch_id: int) -> dict:
        """Deduct every line; stops at the first short line.

        Lines before the short one stay deducted in the caller's transaction;
        rolling back is the caller's decision. Nothing is announced here: the
        caller passes ``updates`` to :meth:`publish` once it has committed.
        """
        updates = []
        for line in items:
            new_stock = self.deduct(line.menu_item_id, branch_id, line.quantity)
            rec = self._record(line.menu_item_id, branch_id)
            item_name, branch_name = self._names(line.menu_item_id, branch_id)
            updates.append({
                "menu_item_id": line.menu_item_id,
                "menu_item_name": item_name,
                "branch_name": branch_name,
                "quantity_deducted": line.quantity,
                "new_stock": new_stock,
                "low_stock_threshold": rec.low_stock_threshold,
            })
        return {"success": True, "updates": updates}

    def publish(self, updates: Iterable[dict]) -> None:
        """Emit inventory and low-stock notifications for committed deductions."""
        for u in updates:
            self.notifications.inventory_update(u["menu_item_name"], u["branch_name"], u["quantity_deducted"], u["new_stock"])
            if u["new_stock"] <= u["low_stock_threshold"]:
                logger.warning("low stock: %s at %s = %s (threshold %s)",
                               u["menu_item_name"], u["branch_name"], u["new_stock"], u["low_stock_threshold"])
                self.notifications.low_stock_alert(
                    u["menu_item_name"], u["branch_name"], u["new_stock"], u["low_stock_threshold"],
                )

    def check_low_stock(self, menu_item_id: int, branch_id: int, current_stock: int | None = None):
        rec = self._record(menu_item_id, branch_id)
        if not rec:
            return None
        stock = rec.quantity if current_stock is None else current_stock
        if stock <= rec.low_stock_threshold:
            item_name, branch_name = self._names(menu_item_id, branch_id)
            logger.warning("low stock: %s at %s = %s (threshold %s)", item_name, branch_name, stock, rec.low_stock_threshold)
            return self.notifications.low_stock_alert(item_name, branch_name, stock, rec.low_stock_threshold)
        return None

    def restock(self, menu_item_id: int, branch_id: int, quantity: int) -> dict:
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than 0")
        stmt = (
            update(InventoryRecord)
            .where(InventoryRecord.menu_item_id == menu_item_id, InventoryRecord.branch_id == branch_id)
            .values(quantity=InventoryRecord.quantity + quantity, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if self.db.execute(stmt).rowcount == 0:
            raise NotFoundError("Inventory item not found")
        rec = self._record(menu_item_id, branch_id)
        item_name, branch_name = self._names(menu_item_id, branch_id)
        logger.info("restocked %s at %s by %s -> %s", item_name, branch_name, quantity, rec.quantity)
        return {
            "success": True,
            "menu_item_name": item_name,
            "branch_name": branch_name,
            "quantity_added": quantity,
            "new_stock": rec.quantity,
        }

    def update_threshold(self, menu_item_id: int, branch_id: int, new_threshold: int) -> dict:
        if new_threshold is None or new_threshold < 0:
            raise ValidationError("Threshold must be 0 or greater")
        stmt = (
            update(InventoryRecord)
            .where(InventoryRecord.menu_item_id == menu_item_id, InventoryRecord.branch_id == branch_id)
            .values(low_stock_threshold=new_threshold, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if self.db.execute(stmt).rowcount == 0:
            raise NotFoundError("Inventory item not found")
        return {"success": True, "message": "Stock threshold updated"}

    # ── listings ───────────────────────────────────────────────────────────
    def _listing(self):
        return (
            self.db.query(InventoryRecord, MenuItem, Branch.name)
            .join(MenuItem, MenuItem.id == InventoryRecord.menu_item_id)
            .join(Branch, Branch.id == InventoryRecord.branch_id)
        )

    @staticmethod
    def _row(rec: InventoryRecord, item: MenuItem, branch_name: str) -> dict:
        return {
            "id": rec.id,
            "menu_item_id": rec.menu_item_id,
            "branch_id": rec.branch_id,
            "quantity": rec.quantity,
            "low_stock_threshold": rec.low_stock_threshold,
            "menu_item_name": item.name,
            "price": float(item.price),
            "category": item.category,
            "branch_name": branch_name,
        }

    def inventory_by_branch(self, branch_id: int) -> list[dict]:
        rows = (
            self._listing()
            .filter(InventoryRecord.branch_id == branch_id)
            .order_by(MenuItem.category, MenuItem.name)
            .all()
        )
        return [self._row(*r) for r in rows]

    def all_inventory(self) -> list[dict]:
        rows = self._listing().order_by(Branch.name, MenuItem.category, MenuItem.name).all()
        return [self._row(*r) for r in rows]

    def low_stock_items(self) -> list[dict]:
        rows = (
            self._listing()
            .filter(InventoryRecord.quantity <= InventoryRecord.low_stock_threshold)
            .order_by(InventoryRecord.quantity.asc())
            .all()
        )
        return [self._row(*r) for r in rows]
