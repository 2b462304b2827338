# Importing the module registers tables with Base for create_all()
from .core import (  # noqa: F401
    # Enums
    OrderStatus, PaymentStatus, PaymentType, TransactionStatus, LoyaltyTier,

    # Directory
    Branch, Customer, MenuItem,

    # Stock & loyalty
    InventoryRecord, LoyaltyAccount,

    # Orders / payments
    Order, OrderItem, PaymentTransaction,
)

__all__ = [
    "OrderStatus", "PaymentStatus", "PaymentType", "TransactionStatus", "LoyaltyTier",
    "Branch", "Customer", "MenuItem",
    "InventoryRecord", "LoyaltyAccount",
    "Order", "OrderItem", "PaymentTransaction",
]
