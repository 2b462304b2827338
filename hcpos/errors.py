"""Error taxonomy shared by the order fulfillment components.

Every error carries the HTTP-style status the API boundary renders it with;
the services themselves never look at it.
"""


class PosError(Exception):
    status_code = 400


class ValidationError(PosError):
    """Malformed or missing input."""


class NotFoundError(PosError):
    status_code = 404


class BusinessRuleError(PosError):
    """Request is well-formed but not allowed in the entity's current state."""


class InsufficientStockError(PosError):
    def __init__(self, menu_item_id: int, available: int, requested: int, item_name: str | None = None):
        self.menu_item_id = menu_item_id
        self.available = available
        self.requested = requested
        label = item_name or f"item ID {menu_item_id}"
        super().__init__(f"Insufficient stock for {label}. Available: {available}, Requested: {requested}")


class InsufficientPointsError(PosError):
    def __init__(self, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__(f"Insufficient points. Available: {available}, Requested: {requested}")


class PaymentFailure(PosError):
    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Payment failed: {message}")


class PersistenceError(PosError):
    status_code = 500
